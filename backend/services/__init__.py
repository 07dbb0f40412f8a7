"""
Watchtower Services
Event matching, threshold evaluation, rate limiting and finding delivery
"""

from .event_matcher import EventMatch, EventMatcher
from .thresholds import (
    Comparison,
    ThresholdResult,
    evaluate_threshold,
    format_amount,
    normalize_amount,
    to_raw_int,
)
from .reporter import MonitorState, RateLimitedReporter
from .emitter import FindingEmitter, LogEmitter, WebhookEmitter, create_emitter

__all__ = [
    # Event Matcher
    "EventMatch",
    "EventMatcher",

    # Threshold Evaluator
    "Comparison",
    "ThresholdResult",
    "evaluate_threshold",
    "format_amount",
    "normalize_amount",
    "to_raw_int",

    # Rate-Limited Reporter
    "MonitorState",
    "RateLimitedReporter",

    # Emitters
    "FindingEmitter",
    "LogEmitter",
    "WebhookEmitter",
    "create_emitter",
]
