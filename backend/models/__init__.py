"""
Watchtower data model: findings, event descriptors and chain contexts
"""

from .finding import Finding, FindingSeverity, FindingType
from .events import (
    EventDescriptor,
    EventInput,
    EventSignature,
    display_value,
    parse_event_signature,
)
from .chain import BlockContext, LogEntry, TransactionContext

__all__ = [
    "Finding",
    "FindingSeverity",
    "FindingType",
    "EventDescriptor",
    "EventInput",
    "EventSignature",
    "display_value",
    "parse_event_signature",
    "BlockContext",
    "LogEntry",
    "TransactionContext",
]
