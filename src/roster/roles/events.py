from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

CUSTOM_ROLES_UPDATED = "custom-roles-updated"
GET_CUSTOM_ROLES = "get-custom-roles"
SAVE_CUSTOM_ROLE = "save-custom-role"
DELETE_CUSTOM_ROLE = "delete-custom-role"

Listener = Callable[[Any], None]


class RoleEvents:
    """Fire-and-forget notifications from the role store to whoever renders it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: Dict[str, List[Listener]] = {}

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.setdefault(event, []).append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(event, [])
                if listener in listeners:
                    listeners.remove(listener)

        return _unsubscribe

    def emit(self, event: str, payload: Any = None) -> int:
        with self._lock:
            listeners = list(self._listeners.get(event, []))
        delivered = 0
        for listener in listeners:
            try:
                listener(payload)
                delivered += 1
            except Exception:
                logger.exception("Listener for '%s' failed", event)
        return delivered


class FrontendBridge:
    """Routes UI requests to the role store.

    Transports (the dashboard HTTP API, a websocket, tests) call
    :meth:`handle` with the event name and its payload.
    """

    def __init__(self, manager: Any) -> None:
        self._manager = manager
        self._handlers: Dict[str, Callable[[Any], Any]] = {
            GET_CUSTOM_ROLES: self._get_custom_roles,
            SAVE_CUSTOM_ROLE: self._manager.save_custom_role,
            DELETE_CUSTOM_ROLE: self._manager.delete_custom_role,
        }

    def events(self) -> List[str]:
        return sorted(self._handlers)

    def handle(self, event: str, payload: Optional[Any] = None) -> Any:
        handler = self._handlers.get(event)
        if handler is None:
            raise KeyError(f"Unknown frontend event: {event}")
        return handler(payload)

    def _get_custom_roles(self, _payload: Any) -> Dict[str, Dict[str, Any]]:
        return {role.id: role.to_dict() for role in self._manager.get_custom_roles()}
