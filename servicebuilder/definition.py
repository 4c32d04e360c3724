"""
Definition

Data classes representing service definitions
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class RawDefinition:
    """Service definition as read from a source, before inheritance is resolved"""
    name: str
    type: Optional[str] = None  # May be inherited through extends
    extends: Optional[str] = None
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedDefinition:
    """Self-contained service definition with every ancestor's params merged in"""
    name: str
    type: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> 'ResolvedDefinition':
        return cls(name=name, type=data["type"], params=dict(data.get("params") or {}))


# Service name -> resolved definition, in declaration order
DefinitionTable = Dict[str, ResolvedDefinition]
