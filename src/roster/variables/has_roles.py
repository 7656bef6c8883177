from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence

from roster import triggers as t
from roster.roles import helpers
from roster.triggers import Trigger
from roster.types import RoleRef
from roster.variables.registry import VariableDefinition
from twitch.roles import twitch_roles_from_badges

logger = logging.getLogger(__name__)

ALL_MODE_COUNT = "count"
ALL_MODE_SET = "set"

TwitchRolesProvider = Callable[[str], Sequence[str]]


def _role_matches(role: RoleRef, wanted: str) -> bool:
    # Role names only, compared exactly.
    return role.name == wanted


def matches_any(user_roles: Sequence[RoleRef], requested: Sequence[str]) -> bool:
    return any(_role_matches(r, name) for r in user_roles for name in requested)


def matches_all_by_count(user_roles: Sequence[RoleRef], requested: Sequence[str]) -> bool:
    """Held roles that were requested must number exactly as many as requested.

    Requesting the same role twice while holding it once is False here.
    """
    held = [r for r in user_roles if any(_role_matches(r, name) for name in requested)]
    return len(requested) == len(held)


def matches_all_by_set(user_roles: Sequence[RoleRef], requested: Sequence[str]) -> bool:
    """Every distinct requested role is held, duplicates in the request ignored."""
    return all(any(_role_matches(r, name) for r in user_roles) for name in set(requested))


def _twitch_roles_from_trigger(trigger: Trigger, username: str) -> List[str]:
    """Platform tags carried by the trigger, only when it is about the same user."""
    trigger_user = trigger.username
    if not trigger_user or trigger_user.casefold() != username.casefold():
        return []
    raw = trigger.metadata.get("twitch_roles")
    if isinstance(raw, (list, tuple)):
        return [str(tag) for tag in raw]
    return twitch_roles_from_badges(trigger.metadata.get("badges"))


class HasRolesVariable:
    """``$hasRoles``: native plus custom roles held by a user, matched by role name.

    Native roles come from ``twitch_roles_provider`` when one is given. Without a
    provider they are read from the trigger's ``twitch_roles``/``badges``
    metadata, which only describe the trigger's own user; asking about anyone
    else then sees custom roles alone.
    """

    definition = VariableDefinition(
        handle="hasRoles",
        usage="hasRoles[user, any|all, role, role2, ...]",
        description="Returns true if the user has the specified roles. Only valid within $if",
        examples=[
            {
                "usage": "hasRoles[$user, any, mod, vip]",
                "description": "returns true if $user is a mod OR VIP",
            },
            {
                "usage": "hasRoles[$user, all, mod, vip]",
                "description": "Returns true if $user is a mod AND a VIP",
            },
        ],
        triggers=t.trigger_set(
            t.COMMAND, t.EVENT, t.MANUAL, t.CUSTOM_SCRIPT, t.PRESET_LIST, t.CHANNEL_REWARD
        ),
        categories=["common", "user based"],
        possible_data_output=["all"],
    )

    def __init__(
        self,
        *,
        manager: Any,
        identity: Any,
        twitch_roles_provider: Optional[TwitchRolesProvider] = None,
        all_mode: str = ALL_MODE_COUNT,
    ) -> None:
        if all_mode not in (ALL_MODE_COUNT, ALL_MODE_SET):
            raise ValueError(f"Unknown all_mode: {all_mode}")
        self._manager = manager
        self._identity = identity
        self._twitch_roles_provider = twitch_roles_provider
        self._all_mode = all_mode

    def _twitch_roles(self, trigger: Trigger, username: str, user_id: str) -> List[str]:
        if self._twitch_roles_provider is not None:
            return list(self._twitch_roles_provider(user_id) or [])
        return _twitch_roles_from_trigger(trigger, username)

    def evaluate(self, trigger: Trigger, username: Any = None, respective: Any = None, *roles: Any) -> bool:
        if username is None or username == "":
            return False

        if respective is None or respective == "":
            return False

        if not roles:
            return False

        respective = str(respective).lower()
        if respective not in ("any", "all"):
            return False

        user = self._identity.get_user_by_name(str(username))
        if user is None:
            logger.debug("hasRoles: unknown user '%s'", username)
            return False

        requested = [str(r) for r in roles]
        user_roles = helpers.get_all_roles_for_viewer(
            self._manager,
            user.id,
            self._twitch_roles(trigger, str(username), user.id),
        )

        if respective == "any":
            return matches_any(user_roles, requested)

        if self._all_mode == ALL_MODE_SET:
            return matches_all_by_set(user_roles, requested)
        return matches_all_by_count(user_roles, requested)
