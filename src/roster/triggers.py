from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Literal, Optional

TriggerType = Literal[
    "command",
    "custom_script",
    "startup_script",
    "api",
    "event",
    "hotkey",
    "timer",
    "counter",
    "preset",
    "quick_action",
    "manual",
    "channel_reward",
]

COMMAND = "command"
CUSTOM_SCRIPT = "custom_script"
EVENT = "event"
MANUAL = "manual"
PRESET_LIST = "preset"
CHANNEL_REWARD = "channel_reward"


@dataclass
class Trigger:
    type: TriggerType
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def username(self) -> Optional[str]:
        value = self.metadata.get("username")
        text = str(value).strip() if value is not None else ""
        return text or None


def trigger_set(*types: str) -> FrozenSet[str]:
    return frozenset(types)
