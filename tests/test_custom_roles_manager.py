from __future__ import annotations

import json
import random
from typing import Any, List

from roster.roles.events import CUSTOM_ROLES_UPDATED, RoleEvents
from roster.storage.json_db import JsonDocumentStore
from roster.types import CustomRole, StoreResult, Viewer

ALICE = Viewer(id="u1", username="alice", display_name="Alice")
BOB = Viewer(id="u2", username="bob", display_name="Bob")


class FailingStore(JsonDocumentStore):
    def push(self, path: str, value: Any, *, override: bool = True) -> None:
        raise OSError("disk full")

    def delete(self, path: str) -> None:
        raise OSError("disk full")


def _updates(events: RoleEvents) -> List[Any]:
    seen: List[Any] = []
    events.subscribe(CUSTOM_ROLES_UPDATED, seen.append)
    return seen


def test_save_then_get_by_name_is_case_insensitive(make_manager):
    manager = make_manager()
    assert manager.save_custom_role(CustomRole(id="r1", name="VIPs")) is StoreResult.OK
    assert manager.save_custom_role(CustomRole(id="r2", name="Regulars")) is StoreResult.OK

    for name in ("VIPs", "vips", "VIPS"):
        found = manager.get_role_by_name(name)
        assert found is not None
        assert found.id == "r1"
    assert manager.get_role_by_name("nobody") is None
    assert manager.get_role_by_name("") is None


def test_get_by_name_returns_first_inserted_on_duplicates(make_manager):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="first", name="Crew"))
    manager.save_custom_role(CustomRole(id="second", name="crew"))
    assert manager.get_role_by_name("CREW").id == "first"


def test_save_none_is_noop_and_missing_id_is_invalid(make_manager):
    manager = make_manager()
    assert manager.save_custom_role(None) is StoreResult.NOOP
    assert manager.save_custom_role({"name": "No id"}) is StoreResult.INVALID
    assert manager.get_custom_roles() == []


def test_save_accepts_ui_payload_and_persists_at_role_path(make_manager, roles_dir):
    manager = make_manager()
    payload = {
        "id": "r1",
        "name": "VIPs",
        "viewers": [
            {"id": "u1", "username": "alice", "displayName": "Alice"},
            {"id": "u1", "username": "alice", "displayName": "Alice"},
        ],
    }
    assert manager.save_custom_role(payload) is StoreResult.OK

    raw = json.loads((roles_dir / "custom-roles.json").read_text(encoding="utf-8"))
    assert raw == {
        "r1": {
            "id": "r1",
            "name": "VIPs",
            "viewers": [{"id": "u1", "username": "alice", "displayName": "Alice"}],
        }
    }


def test_add_viewer_is_idempotent(make_manager):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs"))

    assert manager.add_viewer_to_role("r1", ALICE) is StoreResult.OK
    assert len(manager.get_custom_role("r1").viewers) == 1
    assert manager.add_viewer_to_role("r1", ALICE) is StoreResult.NOOP
    assert len(manager.get_custom_role("r1").viewers) == 1


def test_add_viewer_rejects_missing_id_and_unknown_role(make_manager):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs"))
    assert manager.add_viewer_to_role("r1", {"username": "ghost"}) is StoreResult.INVALID
    assert manager.add_viewer_to_role("r1", {"id": ""}) is StoreResult.INVALID
    assert manager.add_viewer_to_role("missing", ALICE) is StoreResult.NOT_FOUND
    assert manager.get_custom_role("r1").viewers == []


def test_add_viewer_snapshots_only_identity_fields(make_manager):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs"))
    manager.add_viewer_to_role(
        "r1",
        {"id": "u9", "username": "zed", "displayName": "Zed", "twitchRoles": ["mod"], "chatMessages": 10},
    )
    assert manager.get_custom_role("r1").viewers == [Viewer(id="u9", username="zed", display_name="Zed")]


def test_remove_then_add_restores_membership(make_manager):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs", viewers=[ALICE, BOB]))

    assert manager.remove_viewer_from_role("r1", "u1") is StoreResult.OK
    assert manager.get_custom_role("r1").viewer_ids() == ["u2"]
    assert manager.add_viewer_to_role("r1", ALICE) is StoreResult.OK
    assert sorted(manager.get_custom_role("r1").viewer_ids()) == ["u1", "u2"]


def test_remove_viewer_edge_cases(make_manager):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs", viewers=[ALICE]))
    assert manager.remove_viewer_from_role("r1", "") is StoreResult.INVALID
    assert manager.remove_viewer_from_role("r1", None) is StoreResult.INVALID
    assert manager.remove_viewer_from_role("r1", "u404") is StoreResult.NOT_FOUND
    assert manager.remove_viewer_from_role("missing", "u1") is StoreResult.NOT_FOUND
    assert manager.get_custom_role("r1").viewer_ids() == ["u1"]


def test_remove_all_viewers(make_manager, roles_dir):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs", viewers=[ALICE, BOB]))
    assert manager.remove_all_viewers_from_role("r1") is StoreResult.OK
    assert len(manager.get_custom_role("r1").viewers) == 0
    assert manager.remove_all_viewers_from_role("missing") is StoreResult.NOT_FOUND

    raw = json.loads((roles_dir / "custom-roles.json").read_text(encoding="utf-8"))
    assert raw["r1"]["viewers"] == []


def test_delete_removes_memory_and_durable_entry(make_manager, roles_dir):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs"))
    manager.save_custom_role(CustomRole(id="r2", name="Crew"))

    assert manager.delete_custom_role("r1") is StoreResult.OK
    assert manager.get_custom_role("r1") is None
    raw = json.loads((roles_dir / "custom-roles.json").read_text(encoding="utf-8"))
    assert list(raw) == ["r2"]

    assert manager.delete_custom_role("") is StoreResult.INVALID
    assert manager.delete_custom_role("r1") is StoreResult.NOT_FOUND


def test_mutations_emit_ui_refresh(make_manager):
    events = RoleEvents()
    seen = _updates(events)
    manager = make_manager(events=events)

    manager.save_custom_role(CustomRole(id="r1", name="VIPs"))
    manager.add_viewer_to_role("r1", ALICE)
    manager.add_viewer_to_role("r1", ALICE)  # no-op, no event
    manager.remove_viewer_from_role("r1", "u1")
    manager.remove_viewer_from_role("r1", "u1")  # not found, no event
    manager.remove_all_viewers_from_role("r1")
    manager.delete_custom_role("r1")
    assert seen == [None] * 5


def test_listener_failure_does_not_break_mutation(make_manager):
    events = RoleEvents()

    def _boom(_payload):
        raise RuntimeError("ui went away")

    events.subscribe(CUSTOM_ROLES_UPDATED, _boom)
    manager = make_manager(events=events)
    assert manager.save_custom_role(CustomRole(id="r1", name="VIPs")) is StoreResult.OK
    assert manager.add_viewer_to_role("r1", ALICE) is StoreResult.OK


def test_unsubscribe_stops_delivery():
    events = RoleEvents()
    seen: List[Any] = []
    unsubscribe = events.subscribe(CUSTOM_ROLES_UPDATED, seen.append)
    assert events.emit(CUSTOM_ROLES_UPDATED) == 1
    unsubscribe()
    assert events.emit(CUSTOM_ROLES_UPDATED) == 0
    assert seen == [None]


def test_persistence_failure_keeps_memory_state(make_manager, tmp_path):
    manager = make_manager(db=FailingStore(tmp_path / "db.json"))
    assert manager.save_custom_role(CustomRole(id="r1", name="VIPs")) is StoreResult.IO_ERROR
    assert manager.get_role_by_name("vips").id == "r1"
    assert manager.add_viewer_to_role("r1", ALICE) is StoreResult.IO_ERROR
    assert manager.get_custom_role("r1").viewer_ids() == ["u1"]
    assert manager.delete_custom_role("r1") is StoreResult.IO_ERROR
    assert manager.get_custom_role("r1") is None


def test_lookups_return_copies(make_manager):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs"))
    role = manager.get_custom_role("r1")
    role.viewers.append(ALICE)
    assert manager.get_custom_role("r1").viewers == []


def test_roles_for_viewer_track_membership_after_random_operations(make_manager):
    manager = make_manager()
    role_ids = ["r1", "r2", "r3"]
    viewers = [Viewer(id=f"u{i}", username=f"user{i}", display_name=f"User{i}") for i in range(5)]
    for role_id in role_ids:
        manager.save_custom_role(CustomRole(id=role_id, name=role_id.upper()))

    rng = random.Random(1234)
    expected = {role_id: set() for role_id in role_ids}
    for _ in range(200):
        role_id = rng.choice(role_ids)
        viewer = rng.choice(viewers)
        op = rng.random()
        if op < 0.55:
            manager.add_viewer_to_role(role_id, viewer)
            expected[role_id].add(viewer.id)
        elif op < 0.95:
            manager.remove_viewer_from_role(role_id, viewer.id)
            expected[role_id].discard(viewer.id)
        else:
            manager.remove_all_viewers_from_role(role_id)
            expected[role_id].clear()

    for viewer in viewers:
        got = {ref.id for ref in manager.get_all_custom_roles_for_viewer(viewer.id)}
        want = {role_id for role_id, members in expected.items() if viewer.id in members}
        assert got == want
    for role in manager.get_custom_roles():
        assert len(role.viewer_ids()) == len(set(role.viewer_ids()))
