from __future__ import annotations

import asyncio
import json
import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

import msal

from msgraph_cli.auth.token_cache import CredentialStore, FileCredentialStore
from msgraph_cli.auth.types import (
    Account,
    AuthenticationResult,
    AuthStatus,
    ClientKind,
)
from msgraph_cli.config.settings import GRAPH_RESOURCE, AuthConfig, Settings
from msgraph_cli.graph.errors import (
    AuthenticationRequiredError,
    ClientCredentialsFlowError,
    ConfigurationError,
    DeviceCodeFlowError,
    IdentityProviderError,
    MissingClientSecretError,
)
from msgraph_cli.utils import get_logger


logger = get_logger(__name__)

# MSAL adds these itself and rejects them when requested explicitly.
_MSAL_RESERVED_SCOPES = frozenset({"profile", "openid", "offline_access"})

CLIENT_CREDENTIALS_SCOPE = f"{GRAPH_RESOURCE}/.default"

LOGIN_REQUIRED_MESSAGE = 'No cached accounts found. Please run "msgraph auth login" first.'
LOGIN_AGAIN_MESSAGE = 'Token expired or invalid. Please run "msgraph auth login" again.'

DeviceCodeCallback = Callable[[str], None]


@dataclass(slots=True)
class _ClientHandle:
    kind: ClientKind
    auth: AuthConfig
    cache: msal.SerializableTokenCache
    app: Any = None


class IdentityClient:
    """Acquires Microsoft Graph tokens and owns the on-disk token cache.

    One instance is built per process by :func:`msgraph_cli.bootstrap.build_context`
    and handed to every command. It keeps a lazily created MSAL application per
    :class:`ClientKind`; a failure building one kind leaves the other untouched.

    The credential store is read into the token cache before every acquisition
    and written back afterwards when MSAL reports a change. Building an MSAL
    application fetches the authority's metadata over the network, so silent
    acquisition and status look for a cached account first and only build the
    application when one exists.
    """

    def __init__(
        self,
        settings: Settings,
        store: CredentialStore | None = None,
    ) -> None:
        self._settings = settings
        self._store = store or FileCredentialStore(settings.token_cache_path)
        self._handles: dict[ClientKind, _ClientHandle | None] = {
            kind: None for kind in ClientKind
        }
        self._lock = threading.RLock()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def scopes(self) -> list[str]:
        configured = list(self._settings.configured_scopes())
        filtered = [scope for scope in configured if scope not in _MSAL_RESERVED_SCOPES]
        if len(filtered) != len(configured):
            logger.debug(
                "Filtered reserved scopes",
                removed=sorted(set(configured) - set(filtered)),
            )
        return filtered

    def has_client(self, kind: ClientKind) -> bool:
        handle = self._handles.get(kind)
        return handle is not None and handle.app is not None

    # Async facade ---------------------------------------------------

    async def login_with_device_code(
        self, on_message: DeviceCodeCallback | None = None
    ) -> AuthenticationResult:
        return await asyncio.to_thread(self.login_with_device_code_sync, on_message)

    async def login_with_client_credentials(self) -> AuthenticationResult:
        return await asyncio.to_thread(self.login_with_client_credentials_sync)

    async def acquire_token_silent(self) -> AuthenticationResult:
        return await asyncio.to_thread(self.acquire_token_silent_sync)

    async def access_token(self) -> str:
        """Bearer token for Graph calls; raises AuthenticationRequiredError."""

        result = await self.acquire_token_silent()
        return result.access_token

    async def logout(self) -> bool:
        return await asyncio.to_thread(self.logout_sync)

    async def get_status(self) -> AuthStatus:
        return await asyncio.to_thread(self.get_status_sync)

    # Flows ----------------------------------------------------------

    def login_with_device_code_sync(
        self, on_message: DeviceCodeCallback | None = None
    ) -> AuthenticationResult:
        notify = on_message or print
        with self._lock:
            handle = self._handle(ClientKind.INTERACTIVE)
            self._load_cache(handle)
            app = self._app(handle)
            try:
                flow = app.initiate_device_flow(scopes=self.scopes)
                if not flow or "user_code" not in flow:
                    raise IdentityProviderError.from_msal_result(flow or {})
                notify(str(flow.get("message") or _fallback_device_message(flow)))
                logger.info("Waiting for device code verification")
                result = app.acquire_token_by_device_flow(flow)
            finally:
                self._persist(handle)

            if not result:
                raise DeviceCodeFlowError()
            if "error" in result:
                raise IdentityProviderError.from_msal_result(result)
            account = self._account_for_result(handle, result)
            logger.info(
                "Signed in with device code",
                username=account.username if account else None,
            )
            return AuthenticationResult.from_msal(result, account=account)

    def login_with_client_credentials_sync(self) -> AuthenticationResult:
        with self._lock:
            handle = self._handle(ClientKind.APP_ONLY)
            self._load_cache(handle)
            app = self._app(handle)
            try:
                result = app.acquire_token_for_client(
                    scopes=[CLIENT_CREDENTIALS_SCOPE]
                )
            finally:
                self._persist(handle)

            if not result:
                raise ClientCredentialsFlowError()
            if "error" in result:
                raise IdentityProviderError.from_msal_result(result)
            logger.info("Signed in with client credentials")
            return AuthenticationResult.from_msal(result)

    def acquire_token_silent_sync(self) -> AuthenticationResult:
        with self._lock:
            handle = self._handle(ClientKind.INTERACTIVE)
            self._load_cache(handle)
            if not _cached_accounts(handle.cache):
                raise AuthenticationRequiredError(LOGIN_REQUIRED_MESSAGE)

            try:
                app = self._app(handle)
            except ConfigurationError:
                raise
            except Exception as exc:  # noqa: BLE001 - surfaced as a login prompt
                logger.debug("MSAL application unavailable", error=str(exc))
                raise AuthenticationRequiredError(LOGIN_AGAIN_MESSAGE) from exc
            accounts = app.get_accounts()
            if not accounts:
                raise AuthenticationRequiredError(LOGIN_REQUIRED_MESSAGE)

            record = accounts[0]
            try:
                result = app.acquire_token_silent(self.scopes, account=record)
            except Exception as exc:  # noqa: BLE001 - surfaced as a login prompt
                logger.debug("Silent token acquisition raised", error=str(exc))
                raise AuthenticationRequiredError(LOGIN_AGAIN_MESSAGE) from exc
            finally:
                self._persist(handle)

            if not result:
                raise AuthenticationRequiredError(LOGIN_AGAIN_MESSAGE)
            if "error" in result:
                cause = IdentityProviderError.from_msal_result(result)
                logger.debug("Silent token acquisition failed", code=cause.code)
                raise AuthenticationRequiredError(LOGIN_AGAIN_MESSAGE) from cause
            return AuthenticationResult.from_msal(
                result, account=Account.from_msal(record)
            )

    def logout_sync(self) -> bool:
        """Delete the cache file and drop both MSAL applications."""

        with self._lock:
            removed = self._store.clear()
            self._handles = {kind: None for kind in ClientKind}
            logger.info("Signed out", cache_removed=removed)
            return removed

    def get_status_sync(self) -> AuthStatus:
        with self._lock:
            try:
                handle = self._handle(ClientKind.INTERACTIVE)
                self._load_cache(handle)
                accounts = _cached_accounts(handle.cache)
            except Exception as exc:  # noqa: BLE001 - status reports, never fails
                logger.debug("Unable to inspect token cache", error=str(exc))
                return AuthStatus(authenticated=False)

            if not accounts:
                return AuthStatus(authenticated=False)

            try:
                result = self.acquire_token_silent_sync()
            except Exception as exc:  # noqa: BLE001 - stale account is still reported
                logger.debug("Cached account could not be renewed", error=str(exc))
                return AuthStatus(
                    authenticated=False, account=Account.from_msal(accounts[0])
                )
            return AuthStatus(
                authenticated=True,
                account=result.account,
                expires_on=result.expires_on,
            )

    # Internal -------------------------------------------------------

    def _handle(self, kind: ClientKind) -> _ClientHandle:
        handle = self._handles.get(kind)
        if handle is None:
            auth = self._settings.auth_config()
            if kind is ClientKind.APP_ONLY and not auth.client_secret:
                raise MissingClientSecretError()
            handle = _ClientHandle(
                kind=kind, auth=auth, cache=msal.SerializableTokenCache()
            )
            self._handles[kind] = handle
        return handle

    def _app(self, handle: _ClientHandle) -> Any:
        if handle.app is None:
            handle.app = self._build_app(handle)
        return handle.app

    def _build_app(self, handle: _ClientHandle) -> Any:
        auth = handle.auth
        try:
            if handle.kind is ClientKind.APP_ONLY:
                app = msal.ConfidentialClientApplication(
                    client_id=auth.client_id,
                    authority=auth.authority,
                    client_credential=auth.client_secret,
                    token_cache=handle.cache,
                )
            else:
                app = msal.PublicClientApplication(
                    client_id=auth.client_id,
                    authority=auth.authority,
                    token_cache=handle.cache,
                )
        except ValueError as exc:
            logger.error(
                "Invalid MSAL configuration", authority=auth.authority, error=str(exc)
            )
            raise ConfigurationError(
                f"Invalid authority or client configuration: {exc}",
                code="InvalidAuthority",
            ) from exc
        logger.debug("Configured MSAL application", kind=handle.kind.value)
        return app

    def _load_cache(self, handle: _ClientHandle) -> None:
        data = self._store.load()
        if data is None:
            return
        try:
            state = data.decode("utf-8")
            if not isinstance(json.loads(state), dict):
                raise ValueError("token cache is not a JSON object")
            handle.cache.deserialize(state)
        except ValueError:
            logger.warning("Ignoring unreadable token cache", kind=handle.kind.value)
            handle.cache.deserialize(None)

    def _persist(self, handle: _ClientHandle) -> None:
        if not handle.cache.has_state_changed:
            return
        self._store.save(handle.cache.serialize().encode("utf-8"))
        handle.cache.has_state_changed = False

    def _account_for_result(
        self, handle: _ClientHandle, result: Mapping[str, Any]
    ) -> Account | None:
        claims = result.get("id_token_claims")
        username = None
        if isinstance(claims, Mapping):
            username = claims.get("preferred_username")
        records: Sequence[Mapping[str, Any]] = handle.app.get_accounts(
            username=username
        )
        if records:
            return Account.from_msal(records[0])
        if isinstance(claims, Mapping):
            return Account.from_id_token_claims(claims)
        return None


def _cached_accounts(cache: msal.SerializableTokenCache) -> list[dict[str, Any]]:
    return list(cache.search(msal.TokenCache.CredentialType.ACCOUNT))


def _fallback_device_message(flow: Mapping[str, Any]) -> str:
    return (
        f"To sign in, open {flow.get('verification_uri')} and enter the code "
        f"{flow.get('user_code')} to authenticate."
    )


__all__ = [
    "CLIENT_CREDENTIALS_SCOPE",
    "DeviceCodeCallback",
    "IdentityClient",
    "LOGIN_AGAIN_MESSAGE",
    "LOGIN_REQUIRED_MESSAGE",
]
