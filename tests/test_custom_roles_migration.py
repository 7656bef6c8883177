from __future__ import annotations

import json
from pathlib import Path

from roster.types import CustomRole, StoreResult, Viewer


def _write_json(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_legacy_roles_are_migrated_and_legacy_file_deleted(make_manager, roles_dir):
    legacy_path = roles_dir / "customroles.json"
    _write_json(legacy_path, {"1": {"id": "1", "name": "VIPs", "viewers": ["alice"]}})

    manager = make_manager()
    assert manager.migrate_legacy_custom_roles() is StoreResult.OK

    assert not legacy_path.exists()
    raw = json.loads((roles_dir / "custom-roles.json").read_text(encoding="utf-8"))
    assert raw == {
        "1": {
            "id": "1",
            "name": "VIPs",
            "viewers": [{"id": "u1", "username": "alice", "displayName": "Alice"}],
        }
    }


def test_unresolvable_legacy_usernames_are_dropped(make_manager, roles_dir):
    _write_json(
        roles_dir / "customroles.json",
        {"1": {"id": "1", "name": "Crew", "viewers": ["Alice", "deleted_account", "bob"]}},
    )
    manager = make_manager()
    manager.load_custom_roles()
    assert manager.get_custom_role("1").viewer_ids() == ["u1", "u2"]


def test_migration_without_legacy_file_is_noop(make_manager, identity):
    manager = make_manager()
    assert manager.migrate_legacy_custom_roles() is StoreResult.NOOP
    assert identity.calls == []


def test_migration_error_keeps_legacy_file(make_manager, roles_dir, identity):
    legacy_path = roles_dir / "customroles.json"
    _write_json(legacy_path, {"1": {"id": "1", "name": "VIPs", "viewers": ["alice"]}})

    def _broken(names):
        raise RuntimeError("helix down")

    identity.get_users_by_names = _broken
    manager = make_manager()
    assert manager.migrate_legacy_custom_roles() is StoreResult.IO_ERROR
    assert legacy_path.exists()


def test_migration_runs_once(make_manager, roles_dir, identity):
    _write_json(roles_dir / "customroles.json", {"1": {"id": "1", "name": "VIPs", "viewers": ["alice"]}})
    manager = make_manager()
    manager.load_custom_roles()
    name_lookups = [c for c in identity.calls if c[0] == "names"]

    manager.load_custom_roles()
    assert [c for c in identity.calls if c[0] == "names"] == name_lookups
    assert [r.id for r in manager.get_custom_roles()] == ["1"]


def test_load_reads_durable_roles_in_file_order(make_manager, roles_dir):
    first = make_manager()
    first.save_custom_role(CustomRole(id="b", name="Second"))
    first.save_custom_role(CustomRole(id="a", name="First", viewers=[Viewer(id="u1", username="alice")]))

    second = make_manager()
    assert second.load_custom_roles() is StoreResult.OK
    assert {r.id for r in second.get_custom_roles()} == {"a", "b"}
    assert second.get_custom_role("a").viewers[0].display_name == "Alice"


def test_load_failure_leaves_store_empty(make_manager, roles_dir):
    path = roles_dir / "custom-roles.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{broken", encoding="utf-8")

    manager = make_manager()
    assert manager.load_custom_roles() is StoreResult.IO_ERROR
    assert manager.get_custom_roles() == []


def test_load_skips_malformed_entries(make_manager, roles_dir):
    _write_json(
        roles_dir / "custom-roles.json",
        {"ok": {"id": "ok", "name": "Fine", "viewers": []}, "bad": "not a role", "noid": {"name": "x"}},
    )
    manager = make_manager()
    manager.load_custom_roles()
    assert [r.id for r in manager.get_custom_roles()] == ["ok"]


def test_refresh_updates_names_but_never_membership(make_manager, identity, roles_dir):
    manager = make_manager()
    manager.save_custom_role(
        CustomRole(
            id="r1",
            name="VIPs",
            viewers=[
                Viewer(id="u1", username="alice", display_name="Alice"),
                Viewer(id="gone", username="ghost", display_name="Ghost"),
            ],
        )
    )
    identity.rename("u1", "alice_new", "AliceNew")

    assert manager.refresh_custom_roles_user_data() is StoreResult.OK

    viewers = manager.get_custom_role("r1").viewers
    assert [v.id for v in viewers] == ["u1", "gone"]
    assert viewers[0] == Viewer(id="u1", username="alice_new", display_name="AliceNew")
    assert viewers[1] == Viewer(id="gone", username="ghost", display_name="Ghost")

    raw = json.loads((roles_dir / "custom-roles.json").read_text(encoding="utf-8"))
    assert raw["r1"]["viewers"][0]["username"] == "alice_new"


def test_refresh_lookup_failure_is_logged_and_skipped(make_manager, identity, caplog):
    manager = make_manager()
    manager.save_custom_role(CustomRole(id="r1", name="VIPs", viewers=[Viewer(id="u1", username="old")]))
    identity.fail_ids = True

    with caplog.at_level("WARNING"):
        assert manager.refresh_custom_roles_user_data() is StoreResult.IO_ERROR
    assert manager.get_custom_role("r1").viewers[0].username == "old"
    assert "Could not refresh viewers" in caplog.text
