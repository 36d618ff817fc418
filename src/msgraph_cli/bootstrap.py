from __future__ import annotations

from dataclasses import dataclass

import httpx

from msgraph_cli import __version__
from msgraph_cli.auth import CredentialStore, IdentityClient
from msgraph_cli.config import Settings, SettingsManager
from msgraph_cli.graph.client import GraphClient, GraphClientConfig
from msgraph_cli.services import CalendarService, MailService
from msgraph_cli.utils import get_logger


logger = get_logger(__name__)


@dataclass(slots=True)
class AppContext:
    """Everything a command needs, built once per process."""

    settings: Settings
    settings_manager: SettingsManager
    identity: IdentityClient
    graph: GraphClient
    mail: MailService
    calendar: CalendarService


def build_context(
    settings: Settings | None = None,
    *,
    settings_manager: SettingsManager | None = None,
    store: CredentialStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppContext:
    """Wire settings, identity client, Graph transport and resource clients.

    Nothing here touches the network or builds an MSAL application; both
    happen on first use, so configuration problems surface from the command
    that needs them.
    """

    manager = settings_manager or SettingsManager()
    resolved = settings or manager.load()
    identity = IdentityClient(resolved, store)
    graph = GraphClient(
        identity.access_token,
        GraphClientConfig(user_agent=f"msgraph-cli/{__version__}"),
        transport=transport,
    )
    logger.debug(
        "Application context initialised",
        configured=resolved.is_configured,
        config_dir=str(resolved.config_dir),
    )
    return AppContext(
        settings=resolved,
        settings_manager=manager,
        identity=identity,
        graph=graph,
        mail=MailService(graph),
        calendar=CalendarService(graph),
    )


__all__ = ["AppContext", "build_context"]
