"""
Event signatures and event-of-interest descriptors.

Signatures are written the way they appear in Solidity sources, e.g.
"event Transfer(address indexed from, address indexed to, uint256 value)",
and parsed once into a canonical form, topic hash and web3 ABI entry.
"""

import re
import string
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from web3 import Web3

from infrastructure.errors import ConfigurationError, ValidationError
from .finding import FindingSeverity, FindingType

_SIGNATURE_RE = re.compile(r"^\s*(?:event\s+)?([A-Za-z_$][\w$]*)\s*\((.*)\)\s*(anonymous)?\s*;?\s*$")

# Solidity aliases that must be expanded before hashing
_TYPE_ALIASES = {"uint": "uint256", "int": "int256", "byte": "bytes1"}


@dataclass(frozen=True)
class EventInput:
    name: str
    type: str
    indexed: bool = False


@dataclass(frozen=True)
class EventSignature:
    name: str
    inputs: Tuple[EventInput, ...]
    anonymous: bool = False

    @property
    def canonical(self) -> str:
        return f"{self.name}({','.join(i.type for i in self.inputs)})"

    @property
    def topic(self) -> str:
        """keccak256 of the canonical signature, 0x-prefixed"""
        return Web3.to_hex(Web3.keccak(text=self.canonical))

    @property
    def arg_names(self) -> List[str]:
        return [i.name for i in self.inputs]

    def to_abi(self) -> Dict[str, Any]:
        return {
            "anonymous": self.anonymous,
            "inputs": [{"indexed": i.indexed, "name": i.name, "type": i.type} for i in self.inputs],
            "name": self.name,
            "type": "event",
        }


@lru_cache(maxsize=256)
def parse_event_signature(signature: str) -> EventSignature:
    """Parse a human-readable event fragment. Raises ValidationError."""
    match = _SIGNATURE_RE.match(signature or "")
    if not match:
        raise ValidationError("Malformed event signature", {"signature": signature})

    name, params, anonymous = match.groups()
    if "(" in params or ")" in params:
        raise ValidationError("Tuple event parameters are not supported", {"signature": signature})

    inputs = []
    for position, param in enumerate(p.strip() for p in params.split(",") if p.strip()):
        tokens = param.split()
        arg_type = _TYPE_ALIASES.get(tokens[0], tokens[0])
        modifiers = tokens[1:]
        indexed = "indexed" in modifiers
        names = [t for t in modifiers if t != "indexed"]
        if len(names) > 1:
            raise ValidationError(f"Cannot parse event parameter {param!r}", {"signature": signature})
        inputs.append(EventInput(
            name=names[0] if names else f"arg{position}",
            type=arg_type,
            indexed=indexed,
        ))

    return EventSignature(name=name, inputs=tuple(inputs), anonymous=bool(anonymous))


def display_value(value: Any) -> str:
    """String form of a decoded argument for descriptions and metadata"""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, (list, tuple)):
        return ",".join(display_value(v) for v in value)
    return str(value)


def _template_fields(template: str) -> List[str]:
    fields = []
    for _, field_name, _, _ in string.Formatter().parse(template):
        if field_name is None:
            continue
        # "{amount}" -> amount, "{args[0]}" / "{x.y}" -> root name
        fields.append(re.split(r"[.\[]", field_name, maxsplit=1)[0])
    return fields


@dataclass(frozen=True)
class EventDescriptor:
    """
    An event of interest: which contract, which event, and how to describe a hit.

    `description` is a str.format template over the event's argument names.
    `formatters` optionally maps an argument name to a pure function that
    renders it (e.g. wei -> "1.50" ETH). Both are checked at construction so
    a bad table fails at startup, not on the first matching log.
    """
    contract_address: str
    event_signature: str
    alert_id: str
    name: str
    description: str
    severity: FindingSeverity
    finding_type: FindingType = FindingType.INFO
    formatters: Mapping[str, Callable[[Any], str]] = field(default_factory=dict)
    signature: EventSignature = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not Web3.is_address(self.contract_address):
            raise ConfigurationError(
                f"Descriptor {self.alert_id} has invalid contract address {self.contract_address!r}",
                setting=self.alert_id,
            )
        object.__setattr__(self, "contract_address", self.contract_address.lower())

        try:
            signature = parse_event_signature(self.event_signature)
        except ValidationError as e:
            raise ConfigurationError(f"Descriptor {self.alert_id}: {e.message}", setting=self.alert_id)
        object.__setattr__(self, "signature", signature)

        known = set(signature.arg_names)
        unknown = [f for f in _template_fields(self.description) if f not in known]
        unknown += [f for f in self.formatters if f not in known]
        if unknown:
            raise ConfigurationError(
                f"Descriptor {self.alert_id} references unknown event arguments: {sorted(set(unknown))}",
                setting=self.alert_id,
            )

        object.__setattr__(self, "formatters", MappingProxyType(dict(self.formatters)))

    def render(self, args: Mapping[str, Any]) -> str:
        values = {}
        for arg_name in self.signature.arg_names:
            if arg_name not in args:
                continue
            formatter = self.formatters.get(arg_name, display_value)
            values[arg_name] = formatter(args[arg_name])
        return self.description.format(**values)
