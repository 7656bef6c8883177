from __future__ import annotations

import json
import logging
import os
import secrets
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from roster.roles.events import DELETE_CUSTOM_ROLE, GET_CUSTOM_ROLES, SAVE_CUSTOM_ROLE
from roster.roles.helpers import get_all_roles_for_viewer
from roster.types import StoreResult
from roster.wiring import RosterApp

logger = logging.getLogger(__name__)

ROLES_PREFIX = "/api/custom_roles"
OPERATOR_KEY_HEADER = "X-ROSTER-OP-KEY"

_RESULT_STATUS: Dict[StoreResult, int] = {
    StoreResult.OK: HTTPStatus.OK,
    StoreResult.NOOP: HTTPStatus.OK,
    StoreResult.NOT_FOUND: HTTPStatus.NOT_FOUND,
    StoreResult.INVALID: HTTPStatus.BAD_REQUEST,
    StoreResult.IO_ERROR: HTTPStatus.INTERNAL_SERVER_ERROR,
}


def _json_response(
    handler: BaseHTTPRequestHandler,
    payload: Any,
    status: int = 200,
) -> None:
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", "application/json; charset=utf-8")
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def _result_response(handler: BaseHTTPRequestHandler, result: StoreResult, **extra: Any) -> None:
    payload: Dict[str, Any] = {"ok": result.ok, "result": result.value}
    if result is StoreResult.IO_ERROR:
        payload["detail"] = "Change kept in memory; writing it to disk failed."
    payload.update(extra)
    _json_response(handler, payload, status=_RESULT_STATUS[result])


def _route_parts(path: str) -> Optional[List[str]]:
    """``/api/custom_roles/a/viewers/b`` -> ``["a", "viewers", "b"]``; None for other routes."""
    if path != ROLES_PREFIX and not path.startswith(ROLES_PREFIX + "/"):
        return None
    rest = path[len(ROLES_PREFIX) :]
    return [unquote(part) for part in rest.split("/") if part]


def validate_operator_key(header_value: Optional[str]) -> Tuple[bool, str]:
    configured = (os.getenv("ROSTER_OPERATOR_KEY") or "").strip()
    if not configured:
        return True, "ok"
    if not secrets.compare_digest((header_value or "").strip(), configured):
        return False, f"Forbidden: invalid {OPERATOR_KEY_HEADER}."
    return True, "ok"


def build_handler(app: RosterApp) -> type[BaseHTTPRequestHandler]:
    manager = app.manager
    frontend = app.frontend
    max_json_body_bytes = 1_048_576

    class RosterHandler(BaseHTTPRequestHandler):
        def log_message(self, fmt: str, *args: Any) -> None:
            logger.debug("%s - %s", self.address_string(), fmt % args)

        def _read_json_body(self) -> Tuple[bool, Dict[str, Any]]:
            try:
                content_length = int(self.headers.get("Content-Length", "0"))
            except (TypeError, ValueError):
                return False, {}
            if content_length > max_json_body_bytes:
                return False, {}
            if content_length <= 0:
                return True, {}
            raw = self.rfile.read(content_length)
            try:
                parsed = json.loads(raw.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                return False, {}
            if not isinstance(parsed, dict):
                return False, {}
            return True, parsed

        def _bad_request(self, detail: str) -> None:
            _json_response(
                self,
                {"ok": False, "error": "bad_request", "detail": detail},
                status=HTTPStatus.BAD_REQUEST,
            )

        def _not_found(self) -> None:
            _json_response(self, {"ok": False, "error": "not_found"}, status=HTTPStatus.NOT_FOUND)

        def _authorize_write(self) -> bool:
            ok, detail = validate_operator_key(self.headers.get(OPERATOR_KEY_HEADER))
            if not ok:
                _json_response(
                    self,
                    {"ok": False, "error": "forbidden", "detail": detail},
                    status=HTTPStatus.FORBIDDEN,
                )
            return ok

        def do_GET(self) -> None:  # noqa: N802
            parsed = urlparse(self.path)
            if parsed.path.startswith("/api/viewers/") and parsed.path.endswith("/roles"):
                user_id = unquote(parsed.path[len("/api/viewers/") : -len("/roles")]).strip("/")
                if not user_id:
                    self._bad_request("Missing viewer id.")
                    return
                roles = get_all_roles_for_viewer(manager, user_id)
                _json_response(self, {"ok": True, "roles": [r.to_dict() for r in roles]})
                return

            parts = _route_parts(parsed.path)
            if parts is None:
                self._not_found()
                return
            if not parts:
                _json_response(self, {"ok": True, "custom_roles": frontend.handle(GET_CUSTOM_ROLES)})
                return
            if len(parts) == 1:
                role = manager.get_custom_role(parts[0])
                if role is None:
                    self._not_found()
                    return
                _json_response(self, {"ok": True, "custom_role": role.to_dict()})
                return
            self._not_found()

        def do_POST(self) -> None:  # noqa: N802
            parts = _route_parts(urlparse(self.path).path)
            if parts == ["refresh"]:
                if not self._authorize_write():
                    return
                _result_response(self, manager.refresh_custom_roles_user_data())
                return
            if parts is None or len(parts) != 2 or parts[1] != "viewers":
                self._not_found()
                return
            ok_body, payload = self._read_json_body()
            if not ok_body:
                self._bad_request("Invalid JSON body.")
                return
            if not self._authorize_write():
                return
            _result_response(self, manager.add_viewer_to_role(parts[0], payload))

        def do_PUT(self) -> None:  # noqa: N802
            parts = _route_parts(urlparse(self.path).path)
            if parts is None or len(parts) != 1:
                self._not_found()
                return
            ok_body, payload = self._read_json_body()
            if not ok_body:
                self._bad_request("Invalid JSON body.")
                return
            body_id = str(payload.get("id") or "").strip()
            if body_id and body_id != parts[0]:
                self._bad_request("Role id in body does not match the URL.")
                return
            if not self._authorize_write():
                return
            result = frontend.handle(SAVE_CUSTOM_ROLE, {**payload, "id": parts[0]})
            role = manager.get_custom_role(parts[0])
            _result_response(self, result, custom_role=role.to_dict() if role else None)

        def do_DELETE(self) -> None:  # noqa: N802
            parts = _route_parts(urlparse(self.path).path)
            if not parts or len(parts) > 3 or (len(parts) > 1 and parts[1] != "viewers"):
                self._not_found()
                return
            if not self._authorize_write():
                return
            role_id = parts[0]
            if len(parts) == 1:
                _result_response(self, frontend.handle(DELETE_CUSTOM_ROLE, role_id))
            elif len(parts) == 2:
                _result_response(self, manager.remove_all_viewers_from_role(role_id))
            else:
                _result_response(self, manager.remove_viewer_from_role(role_id, parts[2]))

    return RosterHandler


def create_server(app: RosterApp, *, host: str = "127.0.0.1", port: int = 8788) -> ThreadingHTTPServer:
    server = ThreadingHTTPServer((host, port), build_handler(app))
    setattr(server, "_roster_app", app)
    return server
