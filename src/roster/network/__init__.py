from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from roster.config import RosterConfig
from roster.network.types import HttpResponse, Transport


class NetworkDisabledError(RuntimeError):
    pass


@dataclass
class NetworkClient:
    """
    Network boundary.

    - Transport must be injected (urllib for live use, fake in tests).
    - Hard-gated by cfg.network_enabled.
    """
    cfg: RosterConfig
    transport: Transport

    def get_json(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
    ) -> HttpResponse:
        if not self.cfg.network_enabled:
            raise NetworkDisabledError("Network is disabled by configuration")
        return self.transport.get_json(url, headers=headers)
