from __future__ import annotations

from typing import Dict, List, Optional

from roster.types import RoleRef

BROADCASTER = RoleRef(id="broadcaster", name="Streamer")
MODERATOR = RoleRef(id="mod", name="Moderator")
VIP = RoleRef(id="vip", name="VIP")
SUBSCRIBER = RoleRef(id="sub", name="Subscriber")

TWITCH_ROLES: List[RoleRef] = [BROADCASTER, MODERATOR, VIP, SUBSCRIBER]

# Chat badge / IRC tag spellings -> platform role.
_TAG_ALIASES: Dict[str, RoleRef] = {
    "broadcaster": BROADCASTER,
    "streamer": BROADCASTER,
    "mod": MODERATOR,
    "moderator": MODERATOR,
    "vip": VIP,
    "sub": SUBSCRIBER,
    "subscriber": SUBSCRIBER,
    "founder": SUBSCRIBER,
}


def map_twitch_role(tag: Optional[str]) -> Optional[RoleRef]:
    key = str(tag or "").strip().lower()
    if not key:
        return None
    return _TAG_ALIASES.get(key)


def get_twitch_roles() -> List[RoleRef]:
    return list(TWITCH_ROLES)


def twitch_roles_from_badges(badges: Optional[str]) -> List[str]:
    """Parse an IRCv3 ``badges`` tag value (``moderator/1,subscriber/12``) into role tags."""
    out: List[str] = []
    for item in str(badges or "").split(","):
        name = item.split("/", 1)[0].strip().lower()
        if name and map_twitch_role(name) is not None and name not in out:
            out.append(name)
    return out
