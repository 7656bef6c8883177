from __future__ import annotations

import logging
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from roster.roles import helpers
from roster.roles.events import CUSTOM_ROLES_UPDATED, RoleEvents
from roster.storage.json_db import DataPathError, DocumentStoreError, JsonDocumentStore
from roster.types import CustomRole, LegacyCustomRole, RoleRef, StoreResult, TwitchUser, Viewer

logger = logging.getLogger(__name__)


class IdentityLookup(Protocol):
    def get_users_by_names(self, names: Iterable[str]) -> List[TwitchUser]:
        ...

    def get_users_by_ids(self, ids: Iterable[str]) -> List[TwitchUser]:
        ...

    def get_user_by_name(self, name: str) -> Optional[TwitchUser]:
        ...


def _role_path(role_id: str) -> str:
    return f"/{role_id}"


class CustomRolesManager:
    """In-memory custom role map, written through to a JSON document store.

    The map is authoritative for the running process: a failed durable write is
    logged and reported as ``StoreResult.IO_ERROR`` but the in-memory change is
    kept. Lookups return copies.
    """

    def __init__(
        self,
        *,
        db: JsonDocumentStore,
        identity: IdentityLookup,
        events: Optional[RoleEvents] = None,
        legacy_db_path: Optional[Path] = None,
    ) -> None:
        self._db = db
        self._identity = identity
        self._events = events or RoleEvents()
        self._legacy_db_path = Path(legacy_db_path) if legacy_db_path is not None else None
        self._lock = threading.Lock()
        self._custom_roles: Dict[str, CustomRole] = {}

    @property
    def events(self) -> RoleEvents:
        return self._events

    # ── load / migrate / refresh ─────────────────────────────────

    def migrate_legacy_custom_roles(self) -> StoreResult:
        legacy_path = self._legacy_db_path
        if legacy_path is None or not legacy_path.exists():
            return StoreResult.NOOP

        logger.info("Legacy custom roles file detected. Starting migration.")
        try:
            legacy_db = JsonDocumentStore(legacy_path)
            legacy_roles: Dict[str, Any] = legacy_db.get_data("/")

            for raw in legacy_roles.values():
                if not isinstance(raw, dict):
                    continue
                legacy_role = LegacyCustomRole.from_dict(raw)
                if not legacy_role.id:
                    continue
                logger.info("Migrating custom role %s", legacy_role.name)

                new_role = CustomRole(id=legacy_role.id, name=legacy_role.name, viewers=[])
                users = self._identity.get_users_by_names(legacy_role.viewers)
                for user in users:
                    if not new_role.has_viewer(user.id):
                        new_role.viewers.append(user.as_viewer())

                if self.save_custom_role(new_role, notify=False) is StoreResult.IO_ERROR:
                    raise DocumentStoreError(f"Could not persist migrated role {new_role.id}")
                logger.info("Finished migrating custom role %s", new_role.name)

            logger.info("Deleting legacy custom roles database")
            legacy_path.unlink()
            logger.info("Legacy custom role migration complete")
        except Exception:
            logger.exception("Unexpected error during custom role migration")
            return StoreResult.IO_ERROR

        self._notify()
        return StoreResult.OK

    def load_custom_roles(self) -> StoreResult:
        self.migrate_legacy_custom_roles()

        logger.debug("Attempting to load custom roles")
        try:
            self._db.reload()
            data = self._db.get_data("/")
        except (DataPathError, DocumentStoreError, OSError) as exc:
            logger.warning("There was an error reading custom roles data file: %s", exc)
            with self._lock:
                self._custom_roles = {}
            return StoreResult.IO_ERROR

        loaded: Dict[str, CustomRole] = {}
        if isinstance(data, dict):
            for key, raw in data.items():
                role = CustomRole.from_dict(raw)
                if role is None:
                    logger.warning("Skipping malformed custom role entry '%s'", key)
                    continue
                loaded[role.id] = role
        with self._lock:
            self._custom_roles = loaded
        logger.debug("Loaded %d custom roles", len(loaded))

        return self.refresh_custom_roles_user_data()

    def refresh_custom_roles_user_data(self) -> StoreResult:
        """Re-sync cached usernames/display names by id. Membership never changes here."""
        logger.debug("Refreshing custom role user data")
        with self._lock:
            role_ids = list(self._custom_roles)

        result = StoreResult.OK
        for role_id in role_ids:
            with self._lock:
                role = self._custom_roles.get(role_id)
                ids = role.viewer_ids() if role is not None else []
            if role is None:
                continue
            logger.debug("Updating custom role %s", role.name)
            try:
                users = self._identity.get_users_by_ids(ids) if ids else []
            except Exception as exc:
                logger.warning("Could not refresh viewers of role %s: %s", role.name, exc)
                result = StoreResult.IO_ERROR
                continue

            fresh = {user.id: user.as_viewer() for user in users}
            with self._lock:
                role = self._custom_roles.get(role_id)
                if role is None:
                    continue
                role.viewers = [fresh.get(v.id, v) for v in role.viewers]
                if not self._persist_locked(role):
                    result = StoreResult.IO_ERROR
            logger.debug("Custom role %s updated", role.name)

        if role_ids:
            self._notify()
        return result

    # ── mutations ────────────────────────────────────────────────

    def _persist_locked(self, role: CustomRole) -> bool:
        try:
            self._db.push(_role_path(role.id), role.to_dict())
        except (DocumentStoreError, OSError, ValueError) as exc:
            logger.warning("There was an error saving role %s: %s", role.id, exc)
            return False
        logger.debug("Saved role %s to file.", role.id)
        return True

    def _notify(self) -> None:
        self._events.emit(CUSTOM_ROLES_UPDATED)

    def save_custom_role(self, role: Any, *, notify: bool = True) -> StoreResult:
        if role is None:
            return StoreResult.NOOP
        source = role.to_dict() if isinstance(role, CustomRole) else role
        normalized = CustomRole.from_dict(source)
        if normalized is None:
            logger.warning("Refusing to save custom role without an id")
            return StoreResult.INVALID

        with self._lock:
            self._custom_roles[normalized.id] = normalized
            persisted = self._persist_locked(normalized)
        if notify:
            self._notify()
        return StoreResult.OK if persisted else StoreResult.IO_ERROR

    def delete_custom_role(self, role_id: Optional[str]) -> StoreResult:
        role_id = str(role_id or "").strip()
        if not role_id:
            return StoreResult.INVALID

        with self._lock:
            existed = self._custom_roles.pop(role_id, None) is not None
            try:
                self._db.delete(_role_path(role_id))
            except (DocumentStoreError, OSError) as exc:
                logger.warning("There was an error deleting role %s: %s", role_id, exc)
                return StoreResult.IO_ERROR
        logger.debug("Deleted role: %s", role_id)
        if not existed:
            return StoreResult.NOT_FOUND
        self._notify()
        return StoreResult.OK

    def add_viewer_to_role(self, role_id: str, viewer: Any) -> StoreResult:
        snapshot = Viewer.from_dict(viewer.to_dict() if isinstance(viewer, Viewer) else viewer)
        if snapshot is None:
            return StoreResult.INVALID

        with self._lock:
            role = self._custom_roles.get(role_id)
            if role is None:
                return StoreResult.NOT_FOUND
            if role.has_viewer(snapshot.id):
                return StoreResult.NOOP
            role.viewers.append(snapshot)
            persisted = self._persist_locked(role)
        self._notify()
        return StoreResult.OK if persisted else StoreResult.IO_ERROR

    def remove_viewer_from_role(self, role_id: str, user_id: Optional[str]) -> StoreResult:
        user_id = str(user_id or "").strip()
        if not user_id:
            return StoreResult.INVALID

        with self._lock:
            role = self._custom_roles.get(role_id)
            if role is None:
                return StoreResult.NOT_FOUND
            index = next((i for i, v in enumerate(role.viewers) if v.id == user_id), -1)
            if index == -1:
                return StoreResult.NOT_FOUND
            del role.viewers[index]
            persisted = self._persist_locked(role)
        self._notify()
        return StoreResult.OK if persisted else StoreResult.IO_ERROR

    def remove_all_viewers_from_role(self, role_id: str) -> StoreResult:
        with self._lock:
            role = self._custom_roles.get(role_id)
            if role is None:
                return StoreResult.NOT_FOUND
            role.viewers = []
            persisted = self._persist_locked(role)
        self._notify()
        return StoreResult.OK if persisted else StoreResult.IO_ERROR

    # ── lookups ──────────────────────────────────────────────────

    def get_custom_roles(self) -> List[CustomRole]:
        with self._lock:
            return deepcopy(list(self._custom_roles.values()))

    def get_custom_role(self, role_id: str) -> Optional[CustomRole]:
        with self._lock:
            role = self._custom_roles.get(str(role_id or ""))
            return deepcopy(role) if role is not None else None

    def get_role_by_name(self, name: Optional[str]) -> Optional[CustomRole]:
        wanted = str(name or "").casefold()
        # Insertion order decides between duplicate names.
        for role in self.get_custom_roles():
            if role.name.casefold() == wanted:
                return role
        return None

    def get_all_custom_roles_for_viewer(self, user_id: str) -> List[RoleRef]:
        return [
            RoleRef(id=role.id, name=role.name)
            for role in self.get_custom_roles()
            if role.has_viewer(user_id)
        ]

    def user_is_in_role(
        self,
        user_id: str,
        twitch_roles: Optional[Iterable[str]],
        role_ids_to_check: Iterable[str],
    ) -> bool:
        return helpers.user_is_in_role(self, user_id, twitch_roles, role_ids_to_check)
