"""
Per-invocation chain contexts handed to bots by the chain data provider.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from .events import EventSignature, display_value, parse_event_signature


@dataclass(frozen=True)
class LogEntry:
    """A decoded event log"""
    address: str
    event_name: str
    args: Dict[str, Any] = field(default_factory=dict)
    topic: Optional[str] = None  # topic0, when known
    log_index: int = 0

    def __post_init__(self):
        object.__setattr__(self, "address", self.address.lower())
        if self.topic is not None:
            object.__setattr__(self, "topic", self.topic.lower())

    def matches(self, signature: EventSignature, address: Optional[str] = None) -> bool:
        if address is not None and self.address != address.lower():
            return False
        if self.event_name != signature.name:
            return False
        return self.topic is None or self.topic == signature.topic

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "event": self.event_name,
            "topic": self.topic,
            "logIndex": self.log_index,
            "args": {k: display_value(v) for k, v in self.args.items()},
        }


@dataclass(frozen=True)
class TransactionContext:
    """Everything a bot may read about one transaction"""
    hash: str
    block_number: int
    involved_addresses: FrozenSet[str] = frozenset()
    logs: Tuple[LogEntry, ...] = ()
    timestamp: int = 0

    def __post_init__(self):
        object.__setattr__(self, "involved_addresses", frozenset(a.lower() for a in self.involved_addresses))
        object.__setattr__(self, "logs", tuple(self.logs))

    def involves(self, address: str) -> bool:
        return address.lower() in self.involved_addresses

    def filter_log(
        self,
        signature: Union[str, EventSignature],
        address: Optional[str] = None,
    ) -> List[LogEntry]:
        """Logs matching `signature` (optionally emitted by `address`), in log order"""
        if isinstance(signature, str):
            signature = parse_event_signature(signature)
        return [log for log in self.logs if log.matches(signature, address)]

    @classmethod
    def build(
        cls,
        hash: str,
        block_number: int,
        addresses: Iterable[str] = (),
        logs: Iterable[LogEntry] = (),
        timestamp: int = 0,
    ) -> "TransactionContext":
        """Involved addresses always include every log emitter"""
        logs = tuple(logs)
        involved = {a.lower() for a in addresses if a}
        involved.update(log.address for log in logs)
        return cls(
            hash=hash,
            block_number=block_number,
            involved_addresses=frozenset(involved),
            logs=logs,
            timestamp=timestamp,
        )


@dataclass(frozen=True)
class BlockContext:
    block_number: int
    timestamp: int
    block_hash: Optional[str] = None
