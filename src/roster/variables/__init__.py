from __future__ import annotations

from typing import Any, Optional

from roster.variables.has_roles import HasRolesVariable, TwitchRolesProvider
from roster.variables.registry import VariableDefinition, VariableRegistry
from roster.variables.user import UserVariable


def build_registry(
    *,
    manager: Any,
    identity: Any,
    twitch_roles_provider: Optional[TwitchRolesProvider] = None,
) -> VariableRegistry:
    registry = VariableRegistry()
    registry.register(UserVariable())
    registry.register(
        HasRolesVariable(
            manager=manager,
            identity=identity,
            twitch_roles_provider=twitch_roles_provider,
        )
    )
    return registry


__all__ = [
    "HasRolesVariable",
    "UserVariable",
    "VariableDefinition",
    "VariableRegistry",
    "build_registry",
]
