from __future__ import annotations

import json
from datetime import UTC, datetime

import msal
import pytest
import requests

from msgraph_cli.auth import (
    CLIENT_CREDENTIALS_SCOPE,
    ClientKind,
    FileCredentialStore,
    IdentityClient,
)
from msgraph_cli.auth.identity import LOGIN_AGAIN_MESSAGE, LOGIN_REQUIRED_MESSAGE
from msgraph_cli.graph.errors import (
    AuthenticationRequiredError,
    ClientCredentialsFlowError,
    ConfigurationError,
    DeviceCodeFlowError,
    ErrorCategory,
    IdentityProviderError,
    MissingClientSecretError,
)
from msgraph_cli.utils.errors import describe_exception

from tests.factories import (
    CLIENT_ID,
    TENANT_ID,
    configure_identity,
    make_account_record,
    make_cache_blob,
    make_settings,
    make_token_result,
    seeded_store,
)
from tests.stubs import (
    MemoryCredentialStore,
    StubConfidentialClientApplication,
    StubPublicClientApplication,
)


# Device code flow ----------------------------------------------------------


def test_device_code_message_is_delivered_before_blocking(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(device_results=[make_token_result()])
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=MemoryCredentialStore(),
    )
    seen: list[tuple[str, list[str]]] = []

    identity.login_with_device_code_sync(
        on_message=lambda message: seen.append((message, list(stub.events)))
    )

    assert len(seen) == 1
    message, events_at_prompt = seen[0]
    assert "ABCD-EFGH" in message
    assert "acquire_token_by_device_flow" not in events_at_prompt
    assert stub.events.index("initiate_device_flow") < stub.events.index(
        "acquire_token_by_device_flow"
    )


def test_device_code_login_returns_account_and_persists_cache(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(device_results=[make_token_result("fresh")])
    store = MemoryCredentialStore()
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=store,
    )

    result = identity.login_with_device_code_sync(on_message=lambda _: None)

    assert result.access_token == "fresh"
    assert result.account is not None
    assert result.account.username == "adele@contoso.com"
    assert result.account.tenant_id == "tenant-id"
    assert result.expires_on > datetime.now(UTC)
    assert len(store.saved) == 1
    assert stub.client_id == CLIENT_ID
    assert stub.authority == f"https://login.microsoftonline.com/{TENANT_ID}"


def test_device_code_login_filters_reserved_scopes(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(device_results=[make_token_result()])
    settings = make_settings(
        tmp_path, graph_scopes=["offline_access", "User.Read", "openid", "Mail.Read"]
    )
    identity = configure_identity(
        settings=settings, monkeypatch=monkeypatch, public_app=stub
    )

    identity.login_with_device_code_sync(on_message=lambda _: None)

    assert stub.initiate_device_flow_calls == [("User.Read", "Mail.Read")]


def test_device_code_empty_result_raises_flow_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(device_results=[None])
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=MemoryCredentialStore(),
    )

    with pytest.raises(DeviceCodeFlowError) as excinfo:
        identity.login_with_device_code_sync(on_message=lambda _: None)

    assert excinfo.value.code == "DeviceCodeFlowFailed"


def test_device_code_error_payload_keeps_provider_code(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(
        device_results=[
            {
                "error": "authorization_declined",
                "error_description": "The end user denied the authorization request.",
            }
        ]
    )
    identity = configure_identity(
        settings=make_settings(tmp_path), monkeypatch=monkeypatch, public_app=stub
    )

    with pytest.raises(IdentityProviderError) as excinfo:
        identity.login_with_device_code_sync(on_message=lambda _: None)

    assert excinfo.value.code == "authorization_declined"
    assert "denied" in excinfo.value.message


def test_device_flow_initiation_failure_is_reported(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(
        device_flow={"error": "invalid_scope", "error_description": "Bad scope"}
    )
    identity = configure_identity(
        settings=make_settings(tmp_path), monkeypatch=monkeypatch, public_app=stub
    )
    messages: list[str] = []

    with pytest.raises(IdentityProviderError) as excinfo:
        identity.login_with_device_code_sync(on_message=messages.append)

    assert excinfo.value.code == "invalid_scope"
    assert messages == []
    assert "acquire_token_by_device_flow" not in stub.events


# Client credentials ----------------------------------------------------------


def test_client_credentials_without_secret_fails_before_msal(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    confidential = StubConfidentialClientApplication(
        results=[make_token_result(username=None)]
    )
    identity = configure_identity(
        settings=make_settings(tmp_path, client_secret=None),
        monkeypatch=monkeypatch,
        confidential_app=confidential,
    )

    with pytest.raises(MissingClientSecretError) as excinfo:
        identity.login_with_client_credentials_sync()

    assert "AZURE_CLIENT_SECRET" in str(excinfo.value)
    assert confidential.acquire_token_for_client_calls == []
    assert confidential.client_id == ""
    assert not identity.has_client(ClientKind.APP_ONLY)


def test_client_credentials_uses_default_graph_scope(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    confidential = StubConfidentialClientApplication(
        results=[make_token_result("app-token", username=None)]
    )
    store = MemoryCredentialStore()
    identity = configure_identity(
        settings=make_settings(tmp_path, client_secret="s3cret"),
        monkeypatch=monkeypatch,
        confidential_app=confidential,
        store=store,
    )

    result = identity.login_with_client_credentials_sync()

    assert result.access_token == "app-token"
    assert result.account is None
    assert confidential.acquire_token_for_client_calls == [(CLIENT_CREDENTIALS_SCOPE,)]
    assert CLIENT_CREDENTIALS_SCOPE == "https://graph.microsoft.com/.default"
    assert confidential.client_credential == "s3cret"
    assert len(store.saved) == 1


def test_client_credentials_empty_result_raises(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    confidential = StubConfidentialClientApplication(results=[None])
    identity = configure_identity(
        settings=make_settings(tmp_path, client_secret="s3cret"),
        monkeypatch=monkeypatch,
        confidential_app=confidential,
    )

    with pytest.raises(ClientCredentialsFlowError) as excinfo:
        identity.login_with_client_credentials_sync()

    assert excinfo.value.code == "ClientCredentialsFlowFailed"


def test_app_only_failure_leaves_interactive_client_usable(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(silent_results=[make_token_result("silent")])
    identity = configure_identity(
        settings=make_settings(tmp_path, client_secret=None),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=seeded_store(),
    )

    with pytest.raises(MissingClientSecretError):
        identity.login_with_client_credentials_sync()

    assert identity.acquire_token_silent_sync().access_token == "silent"
    assert identity.has_client(ClientKind.INTERACTIVE)
    assert not identity.has_client(ClientKind.APP_ONLY)


# Silent acquisition ----------------------------------------------------------


def test_silent_without_accounts_requires_login(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication()
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=MemoryCredentialStore(make_cache_blob()),
    )

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        identity.acquire_token_silent_sync()

    assert excinfo.value.message == LOGIN_REQUIRED_MESSAGE
    assert stub.events == []
    assert not identity.has_client(ClientKind.INTERACTIVE)


@pytest.mark.parametrize("blob", [b"not json", b"[]", b"\xff\xfe"])
def test_unreadable_cache_is_ignored(
    monkeypatch: pytest.MonkeyPatch, tmp_path, blob: bytes
) -> None:
    stub = StubPublicClientApplication(silent_results=[make_token_result()])
    store = MemoryCredentialStore(blob)
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=store,
    )

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        identity.acquire_token_silent_sync()

    assert excinfo.value.message == LOGIN_REQUIRED_MESSAGE
    assert stub.events == []
    assert store.data == blob
    assert identity.get_status_sync().authenticated is False


def test_silent_uses_first_account_and_configured_scopes(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    first = make_account_record("adele@contoso.com")
    second = make_account_record(
        "megan@contoso.com", home_account_id="megan-id.tenant-id"
    )
    stub = StubPublicClientApplication(silent_results=[make_token_result("silent")])
    identity = configure_identity(
        settings=make_settings(tmp_path, graph_scopes=["User.Read", "Mail.Read"]),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=seeded_store(first, second),
    )

    result = identity.acquire_token_silent_sync()

    assert result.access_token == "silent"
    assert result.account is not None
    assert result.account.username == "adele@contoso.com"
    assert stub.acquire_token_silent_calls == [(("User.Read", "Mail.Read"), first)]


def test_silent_error_payload_is_chained(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(
        silent_results=[
            {"error": "invalid_grant", "error_description": "AADSTS700082: expired"}
        ],
    )
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=seeded_store(),
    )

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        identity.acquire_token_silent_sync()

    assert excinfo.value.message == LOGIN_AGAIN_MESSAGE
    cause = excinfo.value.__cause__
    assert isinstance(cause, IdentityProviderError)
    assert cause.code == "invalid_grant"


def test_silent_exception_is_chained(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    boom = RuntimeError("connection reset")
    stub = StubPublicClientApplication(silent_error=boom)
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=seeded_store(),
    )

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        identity.acquire_token_silent_sync()

    assert excinfo.value.message == LOGIN_AGAIN_MESSAGE
    assert excinfo.value.__cause__ is boom


def test_silent_none_result_requires_login_again(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=StubPublicClientApplication(),
        store=seeded_store(),
    )

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        identity.acquire_token_silent_sync()

    assert excinfo.value.message == LOGIN_AGAIN_MESSAGE


@pytest.mark.asyncio
async def test_access_token_runs_through_async_facade(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    stub = StubPublicClientApplication(silent_results=[make_token_result("async")])
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=seeded_store(),
    )

    assert await identity.access_token() == "async"


def test_device_login_account_is_written_to_the_cache(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    store = MemoryCredentialStore()
    configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=StubPublicClientApplication(device_results=[make_token_result()]),
        store=store,
    ).login_with_device_code_sync(on_message=lambda _: None)

    assert store.data is not None
    cached = json.loads(store.data)["Account"]
    assert [entry["username"] for entry in cached.values()] == ["adele@contoso.com"]

    # A new process reads the account back from the same store.
    stub = StubPublicClientApplication(silent_results=[make_token_result("next-run")])
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=store,
    )
    result = identity.acquire_token_silent_sync()

    assert result.access_token == "next-run"
    assert result.account is not None
    assert result.account.home_account_id == "object-id.tenant-id"


# Real MSAL with the network disabled ------------------------------------------


@pytest.fixture
def blocked_network(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Fail every HTTP request MSAL makes and record its URL."""

    attempts: list[str] = []

    def _refuse(self, method, url, *args, **kwargs):
        attempts.append(f"{method} {url}")
        raise requests.exceptions.ConnectionError(f"network disabled: {url}")

    monkeypatch.setattr(requests.Session, "request", _refuse)
    return attempts


def test_empty_cache_requires_login_without_network(
    blocked_network: list[str], tmp_path
) -> None:
    identity = IdentityClient(make_settings(tmp_path), MemoryCredentialStore())

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        identity.acquire_token_silent_sync()

    assert excinfo.value.message == LOGIN_REQUIRED_MESSAGE
    assert blocked_network == []
    assert not identity.has_client(ClientKind.INTERACTIVE)


def test_status_with_empty_cache_stays_offline(
    blocked_network: list[str], tmp_path
) -> None:
    identity = IdentityClient(
        make_settings(tmp_path), MemoryCredentialStore(make_cache_blob())
    )

    status = identity.get_status_sync()

    assert status.authenticated is False
    assert status.account is None
    assert blocked_network == []


def test_status_reads_account_from_real_cache_when_offline(
    blocked_network: list[str], tmp_path
) -> None:
    store = seeded_store(make_account_record("stale@contoso.com"))
    identity = IdentityClient(make_settings(tmp_path), store)

    status = identity.get_status_sync()

    assert status.authenticated is False
    assert status.account is not None
    assert status.account.username == "stale@contoso.com"
    assert status.account.tenant_id == "tenant-id"
    assert blocked_network
    assert store.saved == []


def test_cached_account_with_unreachable_authority_keeps_network_cause(
    blocked_network: list[str], tmp_path
) -> None:
    identity = IdentityClient(make_settings(tmp_path), seeded_store())

    with pytest.raises(AuthenticationRequiredError) as excinfo:
        identity.acquire_token_silent_sync()

    assert excinfo.value.message == LOGIN_AGAIN_MESSAGE
    cause = excinfo.value.__cause__
    assert isinstance(cause, requests.exceptions.ConnectionError)
    assert describe_exception(cause).category is ErrorCategory.NETWORK
    assert blocked_network
    assert not identity.has_client(ClientKind.INTERACTIVE)


# Configuration -----------------------------------------------------------------


def test_missing_client_id_raises_configuration_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    identity = configure_identity(
        settings=make_settings(tmp_path, client_id=None), monkeypatch=monkeypatch
    )

    with pytest.raises(ConfigurationError):
        identity.acquire_token_silent_sync()


def test_msal_value_error_becomes_configuration_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        store=seeded_store(),
    )

    def _raising_factory(*_: object, **__: object):
        raise ValueError("not https")

    monkeypatch.setattr(msal, "PublicClientApplication", _raising_factory)

    with pytest.raises(ConfigurationError) as excinfo:
        identity.acquire_token_silent_sync()

    assert excinfo.value.code == "InvalidAuthority"
    assert "not https" in excinfo.value.message
    assert not identity.has_client(ClientKind.INTERACTIVE)


# Status and logout -------------------------------------------------------------


def test_status_without_accounts(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    stub = StubPublicClientApplication()
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=stub,
        store=MemoryCredentialStore(),
    )

    status = identity.get_status_sync()

    assert status.authenticated is False
    assert status.account is None
    assert status.expires_on is None
    assert stub.events == []


def test_status_reports_stale_account(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=StubPublicClientApplication(
            silent_results=[{"error": "invalid_grant"}],
        ),
        store=seeded_store(make_account_record("stale@contoso.com")),
    )

    status = identity.get_status_sync()

    assert status.authenticated is False
    assert status.account is not None
    assert status.account.username == "stale@contoso.com"


def test_status_authenticated_includes_expiry(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=StubPublicClientApplication(
            silent_results=[make_token_result(expires_in=1800)],
        ),
        store=seeded_store(),
    )

    status = identity.get_status_sync()

    assert status.authenticated is True
    assert status.account is not None
    assert status.account.name == "Adele Vance"
    assert status.expires_on is not None


def test_status_swallows_configuration_errors(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    identity = configure_identity(
        settings=make_settings(tmp_path, tenant_id=None), monkeypatch=monkeypatch
    )

    assert identity.get_status_sync().authenticated is False


def test_logout_clears_store_and_resets_clients(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    store = seeded_store()
    identity = configure_identity(
        settings=make_settings(tmp_path),
        monkeypatch=monkeypatch,
        public_app=StubPublicClientApplication(silent_results=[make_token_result()]),
        store=store,
    )
    assert identity.get_status_sync().authenticated is True
    assert identity.has_client(ClientKind.INTERACTIVE)

    assert identity.logout_sync() is True

    assert store.clear_calls == 1
    assert store.data is None
    assert not identity.has_client(ClientKind.INTERACTIVE)
    assert not identity.has_client(ClientKind.APP_ONLY)


@pytest.mark.asyncio
async def test_login_status_logout_round_trip(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    settings = make_settings(tmp_path / "config")
    stub = StubPublicClientApplication(
        device_results=[make_token_result()],
        silent_results=[make_token_result("renewed-token")],
    )
    identity = configure_identity(
        settings=settings,
        monkeypatch=monkeypatch,
        public_app=stub,
        store=FileCredentialStore(settings.token_cache_path),
    )

    await identity.login_with_device_code(on_message=lambda _: None)
    assert settings.token_cache_path.exists()

    status = await identity.get_status()
    assert status.authenticated is True
    assert status.account is not None
    assert status.account.username == "adele@contoso.com"

    assert await identity.logout() is True
    assert not settings.token_cache_path.exists()

    status = await identity.get_status()
    assert status.authenticated is False
    assert status.account is None
    assert await identity.logout() is False
