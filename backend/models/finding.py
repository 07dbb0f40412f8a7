"""
Finding - the structured alert record every bot produces.

Findings are write-once: bots construct them only after the triggering
condition has been confirmed, then hand them to an emitter.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from infrastructure.errors import ValidationError


class FindingSeverity(str, Enum):
    INFO = "Info"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class FindingType(str, Enum):
    INFO = "Info"
    SUSPICIOUS = "Suspicious"
    DEGRADED = "Degraded"
    EXPLOIT = "Exploit"


@dataclass(frozen=True)
class Finding:
    name: str
    description: str
    alert_id: str
    severity: FindingSeverity
    type: FindingType
    metadata: Dict[str, str] = field(default_factory=dict)
    protocol: str = "ethereum"

    def __post_init__(self):
        for attr in ("name", "description", "alert_id", "protocol"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value:
                raise ValidationError(f"Finding.{attr} must be a non-empty string", {"value": repr(value)})

        try:
            object.__setattr__(self, "severity", FindingSeverity(self.severity))
            object.__setattr__(self, "type", FindingType(self.type))
        except ValueError as e:
            raise ValidationError(f"Invalid finding classification: {e}")

        for key, value in self.metadata.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ValidationError(
                    "Finding metadata must map strings to strings",
                    {"key": repr(key), "value": repr(value)}
                )
        # Own a private copy so callers can't mutate the record afterwards
        object.__setattr__(self, "metadata", dict(self.metadata))

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape handed to delivery sinks (camelCase keys)"""
        return {
            "name": self.name,
            "description": self.description,
            "alertId": self.alert_id,
            "protocol": self.protocol,
            "severity": self.severity.value,
            "type": self.type.value,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            alert_id=data.get("alertId", data.get("alert_id", "")),
            severity=data.get("severity", ""),
            type=data.get("type", ""),
            metadata=data.get("metadata", {}),
            protocol=data.get("protocol", "ethereum"),
        )
