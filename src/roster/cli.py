from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

from roster.triggers import Trigger
from roster.types import CustomRole, StoreResult
from roster.wiring import RosterApp, build_app

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NOT_FOUND = 2


def _arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="roster", description="Manage custom viewer roles.")
    p.add_argument("--base-dir", default=".", help="Directory holding config/ and data/.")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List custom roles.")
    show = sub.add_parser("show", help="Show one role with its viewers.")
    show.add_argument("role")

    save = sub.add_parser("save", help="Create or rename a role.")
    save.add_argument("id")
    save.add_argument("name")

    delete = sub.add_parser("delete", help="Delete a role.")
    delete.add_argument("role")

    add = sub.add_parser("add-viewer", help="Add a Twitch user to a role.")
    add.add_argument("role")
    add.add_argument("username")

    remove = sub.add_parser("remove-viewer", help="Remove a Twitch user from a role.")
    remove.add_argument("role")
    remove.add_argument("username")

    clear = sub.add_parser("clear", help="Remove every viewer from a role.")
    clear.add_argument("role")

    sub.add_parser("refresh", help="Re-sync viewer names from Twitch.")
    sub.add_parser("migrate", help="Migrate the legacy custom roles file.")

    has_roles = sub.add_parser("has-roles", help="Evaluate $hasRoles for a user.")
    has_roles.add_argument("username")
    has_roles.add_argument("mode", help="any | all")
    has_roles.add_argument("roles", nargs="+")

    serve = sub.add_parser("serve", help="Run the dashboard API.")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    return p


def _find_role(app: RosterApp, key: str) -> Optional[CustomRole]:
    return app.manager.get_custom_role(key) or app.manager.get_role_by_name(key)


def _exit_code(result: StoreResult) -> int:
    if result is StoreResult.NOT_FOUND:
        return EXIT_NOT_FOUND
    return EXIT_OK if result.ok else EXIT_FAILED


def _print_json(value: Any, out: TextIO) -> None:
    out.write(json.dumps(value, ensure_ascii=False, indent=2) + "\n")


def _run(args: argparse.Namespace, app: RosterApp, out: TextIO) -> int:
    manager = app.manager
    command = args.command

    if command == "list":
        for role in manager.get_custom_roles():
            out.write(f"{role.id}\t{role.name}\t{len(role.viewers)} viewers\n")
        return EXIT_OK

    if command == "save":
        existing = manager.get_custom_role(args.id)
        viewers = existing.viewers if existing else []
        return _exit_code(manager.save_custom_role(CustomRole(id=args.id, name=args.name, viewers=viewers)))

    if command in ("refresh", "migrate"):
        if command == "refresh":
            result = manager.refresh_custom_roles_user_data()
        else:
            result = manager.migrate_legacy_custom_roles()
        out.write(f"{result.value}\n")
        return _exit_code(result)

    if command == "has-roles":
        trigger = Trigger(type="manual", metadata={"username": args.username})
        matched = app.variables.evaluate("hasRoles", trigger, args.username, args.mode, *args.roles)
        out.write("true\n" if matched else "false\n")
        return EXIT_OK if matched else EXIT_FAILED

    role = _find_role(app, args.role)
    if role is None:
        out.write(f"Unknown role: {args.role}\n")
        return EXIT_NOT_FOUND

    if command == "show":
        _print_json(role.to_dict(), out)
        return EXIT_OK
    if command == "delete":
        return _exit_code(manager.delete_custom_role(role.id))
    if command == "clear":
        return _exit_code(manager.remove_all_viewers_from_role(role.id))

    if command == "add-viewer":
        user = app.identity.get_user_by_name(args.username)
        if user is None:
            out.write(f"Unknown Twitch user: {args.username}\n")
            return EXIT_NOT_FOUND
        return _exit_code(manager.add_viewer_to_role(role.id, user.as_viewer()))

    if command == "remove-viewer":
        wanted = args.username.strip().lstrip("@").casefold()
        viewer = next(
            (v for v in role.viewers if wanted in (v.username.casefold(), v.id.casefold())),
            None,
        )
        if viewer is None:
            out.write(f"{args.username} is not in {role.name}\n")
            return EXIT_NOT_FOUND
        return _exit_code(manager.remove_viewer_from_role(role.id, viewer.id))

    raise ValueError(f"Unhandled command: {command}")


def main(argv: list[str] | None = None, *, out: TextIO | None = None) -> int:
    args = _arg_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    out = out or sys.stdout
    base_dir = Path(args.base_dir).resolve()
    # migrate runs on its own so its result is what gets reported
    app = build_app(base_dir, load=args.command != "migrate")

    if args.command == "serve":
        from roster.dashboard_api.app import create_server

        host = args.host or app.cfg.dashboard_host
        port = args.port or app.cfg.dashboard_port
        server = create_server(app, host=host, port=port)
        logger.info("Roster dashboard API listening on http://%s:%d", host, port)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            server.server_close()
        return EXIT_OK

    return _run(args, app, out)
