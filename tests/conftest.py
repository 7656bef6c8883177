from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest
from _pytest.tmpdir import TempPathFactory

ROOT = str(Path(__file__).resolve().parents[1])
SRC = str(Path(ROOT) / "src")
for _p in (SRC, ROOT):
    if _p not in sys.path:
        sys.path.insert(0, _p)

from roster.roles.events import RoleEvents  # noqa: E402
from roster.roles.manager import CustomRolesManager  # noqa: E402
from roster.storage.json_db import JsonDocumentStore  # noqa: E402
from roster.types import TwitchUser  # noqa: E402

# Sandbox-safe temp root for pytest fixtures (tmp_path/tmpdir).
_TMP_ROOT = Path(ROOT) / ".tmp_pytest"
_TMP_ROOT.mkdir(parents=True, exist_ok=True)
os.environ["TMPDIR"] = str(_TMP_ROOT)
os.environ["TEMP"] = str(_TMP_ROOT)
os.environ["TMP"] = str(_TMP_ROOT)
tempfile.tempdir = str(_TMP_ROOT)
_SENSITIVE_TMP_FILENAMES = {"secrets.env"}


def _safe_getbasetemp(self: TempPathFactory) -> Path:
    if self._basetemp is not None:
        return self._basetemp
    run = _TMP_ROOT / f"run-{os.getpid()}"
    run.mkdir(parents=True, exist_ok=True)
    self._basetemp = run.resolve()
    return self._basetemp


def _cleanup_sensitive_tmp_files(root: Path) -> int:
    if not root.exists():
        return 0
    removed = 0
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        if path.name.lower() not in _SENSITIVE_TMP_FILENAMES:
            continue
        try:
            path.unlink()
            removed += 1
        except OSError:
            continue
    return removed


def pytest_configure(config) -> None:
    TempPathFactory.getbasetemp = _safe_getbasetemp
    _cleanup_sensitive_tmp_files(_TMP_ROOT)


def pytest_sessionfinish(session, exitstatus) -> None:
    _cleanup_sensitive_tmp_files(_TMP_ROOT)


class FakeIdentity:
    """In-memory stand-in for the Helix users client."""

    def __init__(self, users: Optional[Iterable[TwitchUser]] = None) -> None:
        self.users: Dict[str, TwitchUser] = {u.id: u for u in users or []}
        self.calls: List[tuple] = []
        self.fail_ids = False

    def rename(self, user_id: str, login: str, display_name: str) -> None:
        self.users[user_id] = TwitchUser(id=user_id, login=login, display_name=display_name)

    def get_users_by_names(self, names: Iterable[str]) -> List[TwitchUser]:
        names = [str(n).lower() for n in names]
        self.calls.append(("names", names))
        by_login = {u.login.lower(): u for u in self.users.values()}
        return [by_login[n] for n in names if n in by_login]

    def get_users_by_ids(self, ids: Iterable[str]) -> List[TwitchUser]:
        ids = list(ids)
        self.calls.append(("ids", ids))
        if self.fail_ids:
            raise RuntimeError("helix unavailable")
        return [self.users[i] for i in ids if i in self.users]

    def get_user_by_name(self, name: str) -> Optional[TwitchUser]:
        found = self.get_users_by_names([name])
        return found[0] if found else None


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity(
        [
            TwitchUser(id="u1", login="alice", display_name="Alice"),
            TwitchUser(id="u2", login="bob", display_name="Bob"),
            TwitchUser(id="u3", login="carol", display_name="Carol"),
        ]
    )


@pytest.fixture
def roles_dir(tmp_path: Path) -> Path:
    return tmp_path / "data" / "roles"


@pytest.fixture
def make_manager(roles_dir: Path, identity: FakeIdentity):
    def _make(**kwargs) -> CustomRolesManager:
        return CustomRolesManager(
            db=kwargs.pop("db", None) or JsonDocumentStore(roles_dir / "custom-roles.json"),
            identity=kwargs.pop("identity", identity),
            events=kwargs.pop("events", None) or RoleEvents(),
            legacy_db_path=roles_dir / "customroles.json",
        )

    return _make
