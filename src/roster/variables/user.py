from __future__ import annotations

from typing import Any

from roster import triggers as t
from roster.triggers import Trigger
from roster.variables.registry import VariableDefinition


class UserVariable:
    definition = VariableDefinition(
        handle="user",
        description="The associated user (if there is one) for the given trigger",
        triggers=t.trigger_set(t.COMMAND, t.EVENT, t.MANUAL, t.CUSTOM_SCRIPT, t.PRESET_LIST),
        categories=["common", "user based"],
        possible_data_output=["text"],
    )

    def evaluate(self, trigger: Trigger, *args: Any) -> Any:
        return trigger.metadata.get("username")
