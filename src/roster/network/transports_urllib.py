from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from roster.network.types import HttpResponse


@dataclass
class UrllibJsonTransport:
    """
    Real HTTP transport.
    - Standard library only (urllib)
    - Non-2xx and connection errors come back as HttpResponse, never raised
    """
    user_agent: str
    timeout_seconds: int = 10

    def get_json(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
    ) -> HttpResponse:
        req_headers: Dict[str, str] = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        if headers:
            for key, value in headers.items():
                req_headers[str(key)] = str(value)

        req = Request(url, headers=req_headers, method="GET")

        try:
            with urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
                try:
                    body: Any = json.loads(raw) if raw else None
                except json.JSONDecodeError:
                    body = raw

                # urllib headers object -> plain dict
                headers_out: Dict[str, str] = {k.lower(): v for k, v in resp.headers.items()}
                return HttpResponse(status=int(resp.status), headers=headers_out, body=body)

        except HTTPError as e:
            raw = ""
            try:
                raw = e.read().decode("utf-8", errors="replace")
            except OSError:
                pass
            body = None
            try:
                body = json.loads(raw) if raw else None
            except json.JSONDecodeError:
                body = raw or None
            headers_out = {k.lower(): v for k, v in e.headers.items()} if getattr(e, "headers", None) else {}
            return HttpResponse(status=int(getattr(e, "code", 0) or 0), headers=headers_out, body=body)

        except URLError as e:
            return HttpResponse(status=0, headers={}, body={"error": "urlerror", "reason": str(e)})
