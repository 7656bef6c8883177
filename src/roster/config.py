from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os
import tomllib


def _parse_env_file(path: Path) -> dict[str, str]:
    out: dict[str, str] = {}
    if not path.exists():
        return out
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        out[k.strip()] = v.strip()
    return out


def _to_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass(repr=False)
class RosterConfig:
    # Non-secret config
    data_dir: Optional[Path] = None
    network_enabled: bool = False
    twitch_client_id: Optional[str] = None
    dashboard_host: str = "127.0.0.1"
    dashboard_port: int = 8788

    # Secrets
    twitch_oauth_token: Optional[str] = field(default=None, repr=False)

    def __repr__(self) -> str:
        return (
            "RosterConfig("
            f"data_dir={self.data_dir!r}, "
            f"network_enabled={self.network_enabled!r}, "
            f"twitch_client_id={self.twitch_client_id!r}, "
            f"dashboard_host={self.dashboard_host!r}, "
            f"dashboard_port={self.dashboard_port!r}, "
            "twitch_oauth_token=<redacted>"
            ")"
        )


def load_config(base_dir: Path | str) -> RosterConfig:
    """
    Deterministic merge order:
      defaults < config/roster.toml < config/secrets.env < environment
    """
    base = Path(base_dir)

    cfg = RosterConfig()

    # 1) roster.toml (non-secret)
    toml_path = base / "config" / "roster.toml"
    if toml_path.exists():
        data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
        storage = data.get("storage", {}) if isinstance(data, dict) else {}
        net = data.get("network", {}) if isinstance(data, dict) else {}
        twitch = data.get("twitch", {}) if isinstance(data, dict) else {}
        dashboard = data.get("dashboard", {}) if isinstance(data, dict) else {}

        data_dir = storage.get("data_dir")
        if isinstance(data_dir, str) and data_dir.strip():
            cfg.data_dir = (base / data_dir).resolve()

        enabled = net.get("enabled")
        if isinstance(enabled, bool):
            cfg.network_enabled = enabled

        client_id = twitch.get("client_id")
        if isinstance(client_id, str) and client_id.strip():
            cfg.twitch_client_id = client_id.strip()

        host = dashboard.get("host")
        if isinstance(host, str) and host.strip():
            cfg.dashboard_host = host.strip()
        port = dashboard.get("port")
        if isinstance(port, int) and 0 < port < 65536:
            cfg.dashboard_port = port

    # 2) secrets.env (secret)
    secrets_path = base / "config" / "secrets.env"
    env_data = _parse_env_file(secrets_path)
    cfg.twitch_client_id = env_data.get("TWITCH_CLIENT_ID", cfg.twitch_client_id)
    cfg.twitch_oauth_token = env_data.get("TWITCH_OAUTH_TOKEN", cfg.twitch_oauth_token)

    # 3) environment overrides (only via loader)
    data_override = os.getenv("ROSTER_DATA_DIR")
    if data_override:
        cfg.data_dir = (base / data_override).resolve()
    cfg.network_enabled = _to_bool(os.getenv("ROSTER_NETWORK_ENABLED"), cfg.network_enabled)
    cfg.twitch_client_id = os.getenv("TWITCH_CLIENT_ID") or cfg.twitch_client_id
    cfg.twitch_oauth_token = os.getenv("TWITCH_OAUTH_TOKEN") or cfg.twitch_oauth_token

    return cfg
