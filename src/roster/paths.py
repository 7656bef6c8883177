from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from roster.config import RosterConfig

ROLES_FOLDER = "roles"


@dataclass(frozen=True)
class RosterPaths:
    base_dir: Path
    config_dir: Path
    data_dir: Path
    roles_dir: Path
    custom_roles_db_path: Path
    legacy_roles_path: Path


def resolve_paths(base_dir: Path | str, cfg: RosterConfig) -> RosterPaths:
    """
    Pure resolution: no directories are created here.
    Deterministic relative to the provided base_dir.
    """
    base = Path(base_dir)
    config_dir = base / "config"
    data_dir = Path(cfg.data_dir) if cfg.data_dir is not None else (base / "data")
    roles_dir = data_dir / ROLES_FOLDER

    return RosterPaths(
        base_dir=base,
        config_dir=config_dir,
        data_dir=data_dir,
        roles_dir=roles_dir,
        custom_roles_db_path=roles_dir / "custom-roles.json",
        legacy_roles_path=roles_dir / "customroles.json",
    )
