from __future__ import annotations

from typing import Any, Iterable, List, Optional

from roster.types import RoleRef
from twitch.roles import map_twitch_role


def get_twitch_roles_for_viewer(twitch_roles: Optional[Iterable[str]]) -> List[RoleRef]:
    """Map platform role tags to roles; unknown tags contribute nothing.

    Repeated tags map to repeated roles, which $hasRoles "all" counts.
    """
    out: List[RoleRef] = []
    for tag in twitch_roles or []:
        role = map_twitch_role(tag)
        if role is not None:
            out.append(role)
    return out


def get_all_roles_for_viewer(
    manager: Any,
    user_id: str,
    twitch_roles: Optional[Iterable[str]] = None,
) -> List[RoleRef]:
    """Native roles first, then custom roles, in store order."""
    return [
        *get_twitch_roles_for_viewer(twitch_roles),
        *manager.get_all_custom_roles_for_viewer(user_id),
    ]


def user_is_in_role(
    manager: Any,
    user_id: str,
    twitch_roles: Optional[Iterable[str]],
    role_ids_to_check: Iterable[str],
) -> bool:
    wanted = set(role_ids_to_check or [])
    if not wanted:
        return False
    return any(r.id in wanted for r in get_all_roles_for_viewer(manager, user_id, twitch_roles))
