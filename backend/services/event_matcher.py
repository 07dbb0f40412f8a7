"""
Event Matcher
Turns a table of events of interest into findings for one transaction.

A descriptor only fires when its contract is among the transaction's
involved addresses AND a log with its signature was emitted by that
contract. Descriptors are scanned in declaration order, logs in log order.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

from models import (
    EventDescriptor,
    EventSignature,
    Finding,
    LogEntry,
    TransactionContext,
    display_value,
)

logger = logging.getLogger("EventMatcher")


@dataclass(frozen=True)
class EventMatch:
    descriptor: EventDescriptor
    log: LogEntry


class EventMatcher:
    """Pure matcher over an immutable descriptor table"""

    def __init__(self, descriptors: Sequence[EventDescriptor]):
        self.descriptors = tuple(descriptors)

    @property
    def signatures(self) -> List[EventSignature]:
        """Distinct signatures, so a provider knows which logs to decode"""
        seen = {}
        for descriptor in self.descriptors:
            seen.setdefault(descriptor.signature.topic, descriptor.signature)
        return list(seen.values())

    def match(self, tx: TransactionContext) -> List[EventMatch]:
        matches = []
        for descriptor in self.descriptors:
            if not tx.involves(descriptor.contract_address):
                continue
            for log in tx.filter_log(descriptor.signature, descriptor.contract_address):
                matches.append(EventMatch(descriptor=descriptor, log=log))

        if matches:
            logger.debug(f"{len(matches)} event(s) of interest in {tx.hash}")
        return matches

    def findings(self, tx: TransactionContext) -> List[Finding]:
        return [self.to_finding(m) for m in self.match(tx)]

    @staticmethod
    def to_finding(match: EventMatch) -> Finding:
        descriptor = match.descriptor
        return Finding(
            name=descriptor.name,
            description=descriptor.render(match.log.args),
            alert_id=descriptor.alert_id,
            severity=descriptor.severity,
            type=descriptor.finding_type,
            metadata={k: display_value(v) for k, v in match.log.args.items()},
        )
