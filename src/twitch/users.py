from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlencode

from roster.network import NetworkDisabledError
from roster.network.types import Transport
from roster.types import TwitchUser

logger = logging.getLogger(__name__)

HELIX_BASE_URL = "https://api.twitch.tv/helix"
# Helix /users accepts at most 100 id/login params per request.
HELIX_USERS_BATCH_SIZE = 100


class TwitchApiError(RuntimeError):
    def __init__(self, message: str, *, status: int = 0) -> None:
        super().__init__(message)
        self.status = int(status)


def _access_token_without_prefix(token: str) -> str:
    text = str(token or "").strip()
    if text.lower().startswith("oauth:"):
        return text.split(":", 1)[1].strip()
    return text


def _normalize_login(value: Any) -> str:
    return str(value or "").strip().lstrip("#").lstrip("@").lower()


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class HelixUsersClient:
    """Batch identity lookups against Helix ``GET /users``.

    Unresolvable logins/ids are simply absent from the result; callers treat a
    short result as "leave unchanged".
    """

    def __init__(
        self,
        *,
        client_id: str,
        oauth_token: str,
        transport: Transport,
        base_url: str = HELIX_BASE_URL,
    ) -> None:
        self._client_id = str(client_id or "").strip()
        self._token = _access_token_without_prefix(oauth_token)
        self._transport = transport
        self._base_url = base_url.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Client-ID": self._client_id,
        }

    def _fetch(self, param: str, values: List[str]) -> List[TwitchUser]:
        # Dedupe while keeping caller order.
        unique = list(dict.fromkeys(v for v in values if v))
        users: List[TwitchUser] = []
        for batch in _chunks(unique, HELIX_USERS_BATCH_SIZE):
            url = f"{self._base_url}/users?{urlencode([(param, v) for v in batch])}"
            resp = self._transport.get_json(url, headers=self._headers())
            if not resp.ok:
                raise TwitchApiError(
                    f"Helix users lookup failed: HTTP {resp.status}",
                    status=resp.status,
                )
            data = resp.body.get("data", []) if isinstance(resp.body, dict) else []
            if not isinstance(data, list):
                data = []
            for row in data:
                if not isinstance(row, dict):
                    continue
                user = TwitchUser.from_helix(row)
                if user is not None:
                    users.append(user)
        logger.debug("Helix %s lookup: requested=%d resolved=%d", param, len(unique), len(users))
        return users

    def get_users_by_names(self, names: Iterable[str]) -> List[TwitchUser]:
        return self._fetch("login", [_normalize_login(n) for n in names or []])

    def get_users_by_ids(self, ids: Iterable[str]) -> List[TwitchUser]:
        return self._fetch("id", [str(i or "").strip() for i in ids or []])

    def get_user_by_name(self, name: str) -> Optional[TwitchUser]:
        login = _normalize_login(name)
        if not login:
            return None
        try:
            users = self.get_users_by_names([login])
        except (TwitchApiError, NetworkDisabledError, OSError) as exc:
            logger.warning("Could not resolve Twitch user '%s': %s", login, exc)
            return None
        return users[0] if users else None
