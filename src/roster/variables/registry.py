from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Protocol

from roster.triggers import Trigger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariableDefinition:
    handle: str
    description: str
    triggers: FrozenSet[str]
    usage: Optional[str] = None
    examples: List[Dict[str, str]] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    possible_data_output: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "handle": self.handle,
            "usage": self.usage or self.handle,
            "description": self.description,
            "examples": [dict(e) for e in self.examples],
            "triggers": sorted(self.triggers),
            "categories": list(self.categories),
            "possibleDataOutput": list(self.possible_data_output),
        }


class ReplaceVariable(Protocol):
    definition: VariableDefinition

    def evaluate(self, trigger: Trigger, *args: Any) -> Any:
        ...


class VariableRegistry:
    """Handle -> variable lookup used by the templating engine."""

    def __init__(self) -> None:
        self._variables: Dict[str, ReplaceVariable] = {}

    def register(self, variable: ReplaceVariable) -> None:
        handle = variable.definition.handle
        if handle in self._variables:
            raise ValueError(f"Variable '{handle}' is already registered")
        self._variables[handle] = variable

    def get(self, handle: str) -> Optional[ReplaceVariable]:
        return self._variables.get(handle)

    def definitions(self) -> List[Dict[str, Any]]:
        return [v.definition.to_dict() for v in self._variables.values()]

    def evaluate(self, handle: str, trigger: Trigger, *args: Any) -> Any:
        variable = self._variables.get(handle)
        if variable is None:
            raise KeyError(f"Unknown variable: {handle}")
        if trigger.type not in variable.definition.triggers:
            logger.debug("Variable %s not valid for trigger %s", handle, trigger.type)
            return None
        return variable.evaluate(trigger, *args)
