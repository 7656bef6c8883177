from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StoreResult(str, Enum):
    """Outcome of a role store call. Mutations return one instead of raising."""

    OK = "ok"
    NOOP = "noop"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    IO_ERROR = "io_error"

    @property
    def ok(self) -> bool:
        return self in (StoreResult.OK, StoreResult.NOOP)


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class Viewer:
    id: str
    username: str = ""
    display_name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Viewer"]:
        if isinstance(data, Viewer):
            return data
        if not isinstance(data, dict):
            return None
        viewer_id = _clean_text(data.get("id"))
        if not viewer_id:
            return None
        display = data.get("displayName", data.get("display_name"))
        return cls(
            id=viewer_id,
            username=_clean_text(data.get("username")),
            display_name=_clean_text(display),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "username": self.username,
            "displayName": self.display_name,
        }


@dataclass
class CustomRole:
    id: str
    name: str
    viewers: List[Viewer] = field(default_factory=list)

    def viewer_ids(self) -> List[str]:
        return [v.id for v in self.viewers]

    def has_viewer(self, user_id: str) -> bool:
        return any(v.id == user_id for v in self.viewers)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["CustomRole"]:
        if isinstance(data, CustomRole):
            return data
        if not isinstance(data, dict):
            return None
        role_id = _clean_text(data.get("id"))
        if not role_id:
            return None
        viewers: List[Viewer] = []
        seen: set[str] = set()
        raw_viewers = data.get("viewers") or []
        if isinstance(raw_viewers, list):
            for item in raw_viewers:
                viewer = Viewer.from_dict(item)
                if viewer is None or viewer.id in seen:
                    continue
                seen.add(viewer.id)
                viewers.append(viewer)
        return cls(id=role_id, name=_clean_text(data.get("name")), viewers=viewers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "viewers": [v.to_dict() for v in self.viewers],
        }


@dataclass
class LegacyCustomRole:
    """Pre-2.0 role record: viewers were stored as bare usernames."""

    id: str
    name: str
    viewers: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LegacyCustomRole":
        raw_viewers = data.get("viewers") or []
        if not isinstance(raw_viewers, list):
            raw_viewers = []
        return cls(
            id=_clean_text(data.get("id")),
            name=_clean_text(data.get("name")),
            viewers=[_clean_text(v) for v in raw_viewers if _clean_text(v)],
        )


@dataclass(frozen=True)
class RoleRef:
    id: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class TwitchUser:
    id: str
    login: str
    display_name: str

    @classmethod
    def from_helix(cls, row: Dict[str, Any]) -> Optional["TwitchUser"]:
        user_id = _clean_text(row.get("id"))
        if not user_id:
            return None
        login = _clean_text(row.get("login"))
        return cls(
            id=user_id,
            login=login,
            display_name=_clean_text(row.get("display_name")) or login,
        )

    def as_viewer(self) -> Viewer:
        return Viewer(id=self.id, username=self.login, display_name=self.display_name)
