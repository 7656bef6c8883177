from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from roster.config import RosterConfig, load_config
from roster.network import NetworkClient
from roster.network.transports_urllib import UrllibJsonTransport
from roster.paths import RosterPaths, resolve_paths
from roster.roles.events import FrontendBridge, RoleEvents
from roster.roles.manager import CustomRolesManager, IdentityLookup
from roster.storage.json_db import JsonDocumentStore
from roster.variables import build_registry
from roster.variables.has_roles import TwitchRolesProvider
from roster.variables.registry import VariableRegistry
from twitch.users import HelixUsersClient

USER_AGENT = "roster/0.1"


@dataclass
class RosterApp:
    cfg: RosterConfig
    paths: RosterPaths
    events: RoleEvents
    identity: IdentityLookup
    manager: CustomRolesManager
    frontend: FrontendBridge
    variables: VariableRegistry


def build_identity_client(cfg: RosterConfig, transport: Optional[Any] = None) -> HelixUsersClient:
    """Helix client behind the network gate. Lookups fail closed while the network is disabled."""
    network = NetworkClient(
        cfg=cfg,
        transport=transport or UrllibJsonTransport(user_agent=USER_AGENT),
    )
    return HelixUsersClient(
        client_id=cfg.twitch_client_id or "",
        oauth_token=cfg.twitch_oauth_token or "",
        transport=network,
    )


def build_app(
    base_dir: Path | str,
    *,
    cfg: Optional[RosterConfig] = None,
    identity: Optional[IdentityLookup] = None,
    twitch_roles_provider: Optional[TwitchRolesProvider] = None,
    load: bool = True,
) -> RosterApp:
    """
    Build the role store with injected dependencies.
    With load=True the store migrates, loads and refreshes before returning.
    twitch_roles_provider lets $hasRoles see native roles of users other than
    the trigger's own.
    """
    cfg = cfg or load_config(base_dir)
    paths = resolve_paths(base_dir, cfg)
    events = RoleEvents()
    identity = identity or build_identity_client(cfg)
    manager = CustomRolesManager(
        db=JsonDocumentStore(paths.custom_roles_db_path),
        identity=identity,
        events=events,
        legacy_db_path=paths.legacy_roles_path,
    )
    if load:
        manager.load_custom_roles()
    return RosterApp(
        cfg=cfg,
        paths=paths,
        events=events,
        identity=identity,
        manager=manager,
        frontend=FrontendBridge(manager),
        variables=build_registry(
            manager=manager,
            identity=identity,
            twitch_roles_provider=twitch_roles_provider,
        ),
    )
