from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from dotenv import load_dotenv
from platformdirs import user_config_dir, user_log_dir

from msgraph_cli.graph.errors import ConfigurationError

APP_NAME = "msgraph-cli"
CONFIG_DIR_ENV = "MSGRAPH_CLI_CONFIG_DIR"
LOG_DIR_ENV = "MSGRAPH_CLI_LOG_DIR"
CONFIG_FILE_NAME = "config.json"
CONFIG_FILE_MODE = 0o600
TOKEN_CACHE_NAME = "token-cache.json"
DOTENV_FILE_NAME = ".env"

GRAPH_RESOURCE = "https://graph.microsoft.com"
AUTHORITY_HOST = "https://login.microsoftonline.com"

DEFAULT_GRAPH_SCOPES: tuple[str, ...] = (
    "User.Read",
    "Mail.Read",
    "Mail.Send",
    "Calendars.ReadWrite",
)

# Config-file key -> environment variable.
ENV_VARS: dict[str, str] = {
    "clientId": "AZURE_CLIENT_ID",
    "tenantId": "AZURE_TENANT_ID",
    "clientSecret": "AZURE_CLIENT_SECRET",
    "scopes": "GRAPH_SCOPES",
}
CONFIG_KEYS: tuple[str, ...] = tuple(ENV_VARS)


def config_dir() -> Path:
    override = os.getenv(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path(user_config_dir(APP_NAME, appauthor=False))


def log_dir() -> Path:
    override = os.getenv(LOG_DIR_ENV)
    if override:
        path = Path(override).expanduser()
    else:
        path = Path(user_log_dir(APP_NAME, appauthor=False))
    path.mkdir(parents=True, exist_ok=True)
    return path


def parse_scopes(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [scope.strip() for scope in raw.split(",") if scope.strip()]


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Tenant/app registration values resolved for this process."""

    client_id: str
    tenant_id: str
    client_secret: str | None = None

    @property
    def authority(self) -> str:
        return f"{AUTHORITY_HOST}/{self.tenant_id}"


@dataclass(slots=True)
class Settings:
    """Resolved configuration for a single CLI invocation.

    ``client_id`` and ``tenant_id`` are only required once an identity client
    is built, so commands such as ``config show`` work on an empty setup.
    """

    client_id: str | None = None
    tenant_id: str | None = None
    client_secret: str | None = None
    graph_scopes: list[str] = field(default_factory=lambda: list(DEFAULT_GRAPH_SCOPES))
    config_dir: Path = field(default_factory=config_dir)

    @property
    def config_path(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    @property
    def token_cache_path(self) -> Path:
        return self.config_dir / TOKEN_CACHE_NAME

    @property
    def is_configured(self) -> bool:
        """True when mandatory tenant + client identifiers are set."""
        return bool(self.tenant_id and self.client_id)

    def configured_scopes(self) -> Iterable[str]:
        """Return deduplicated scopes preserving order."""

        seen = set[str]()
        for scope in self.graph_scopes:
            if scope and scope not in seen:
                seen.add(scope)
                yield scope

    def auth_config(self) -> AuthConfig:
        if not self.client_id or not self.tenant_id:
            raise ConfigurationError(
                "Missing required configuration. Set AZURE_CLIENT_ID and "
                "AZURE_TENANT_ID environment variables or run configuration setup."
            )
        return AuthConfig(
            client_id=self.client_id,
            tenant_id=self.tenant_id,
            client_secret=self.client_secret or None,
        )


class SettingsManager:
    """Resolve settings from CLI flags, environment and the JSON config file."""

    def __init__(
        self,
        base_dir: Path | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        dotenv_path: Path | None = None,
    ) -> None:
        self._base_dir = base_dir
        self._environ = environ
        self._dotenv_path = dotenv_path

    @property
    def base_dir(self) -> Path:
        return self._base_dir or config_dir()

    @property
    def config_path(self) -> Path:
        return self.base_dir / CONFIG_FILE_NAME

    def load(
        self,
        *,
        client_id: str | None = None,
        tenant_id: str | None = None,
        client_secret: str | None = None,
        scopes: str | None = None,
    ) -> Settings:
        """Resolve every value with CLI flag > environment > config file priority."""

        if self._environ is None:
            dotenv_path = self._dotenv_path or Path.cwd() / DOTENV_FILE_NAME
            load_dotenv(dotenv_path, override=False)

        stored = self.read_config()
        settings = Settings(
            client_id=self._resolve("clientId", client_id, stored),
            tenant_id=self._resolve("tenantId", tenant_id, stored),
            client_secret=self._resolve("clientSecret", client_secret, stored),
            config_dir=self.base_dir,
        )
        configured = parse_scopes(self._resolve("scopes", scopes, stored))
        if configured:
            settings.graph_scopes = configured
        return settings

    def read_config(self) -> dict[str, str]:
        path = self.config_path
        if not path.exists():
            return {}
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(key): str(value) for key, value in payload.items()}

    def save_config(self, values: Mapping[str, str]) -> Path:
        path = self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(dict(values), indent=2) + "\n", encoding="utf-8")
        if os.name == "posix":
            # May hold the client secret.
            os.chmod(path, CONFIG_FILE_MODE)
        return path

    def set_value(self, key: str, value: str) -> Path:
        self._check_key(key)
        values = self.read_config()
        values[key] = value
        return self.save_config(values)

    def unset_value(self, key: str) -> bool:
        self._check_key(key)
        values = self.read_config()
        if key not in values:
            return False
        del values[key]
        self.save_config(values)
        return True

    def _check_key(self, key: str) -> None:
        if key not in CONFIG_KEYS:
            allowed = ", ".join(CONFIG_KEYS)
            raise ConfigurationError(
                f'Unknown configuration key "{key}". Valid keys: {allowed}.',
                code="InvalidConfigKey",
            )

    def _resolve(
        self,
        key: str,
        cli_value: str | None,
        stored: Mapping[str, str],
    ) -> str | None:
        if cli_value:
            return cli_value
        environ = self._environ if self._environ is not None else os.environ
        env_value = environ.get(ENV_VARS[key])
        if env_value:
            return env_value
        return stored.get(key) or None


__all__ = [
    "APP_NAME",
    "AUTHORITY_HOST",
    "AuthConfig",
    "CONFIG_DIR_ENV",
    "CONFIG_FILE_MODE",
    "CONFIG_KEYS",
    "DEFAULT_GRAPH_SCOPES",
    "ENV_VARS",
    "GRAPH_RESOURCE",
    "LOG_DIR_ENV",
    "Settings",
    "SettingsManager",
    "config_dir",
    "log_dir",
    "parse_scopes",
]
