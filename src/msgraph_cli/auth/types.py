"""Authentication type definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Mapping


class ClientKind(str, Enum):
    """The two MSAL application flavours the identity client manages."""

    INTERACTIVE = "interactive"
    APP_ONLY = "app_only"


@dataclass(frozen=True, slots=True)
class Account:
    """Principal information read from a cached MSAL account record."""

    home_account_id: str | None
    environment: str | None
    tenant_id: str | None
    username: str | None
    name: str | None = None

    @classmethod
    def from_msal(cls, record: Mapping[str, Any]) -> "Account":
        home_account_id = record.get("home_account_id")
        tenant_id = record.get("realm")
        if not tenant_id and isinstance(home_account_id, str) and "." in home_account_id:
            tenant_id = home_account_id.split(".", 1)[1]
        return cls(
            home_account_id=home_account_id,
            environment=record.get("environment"),
            tenant_id=tenant_id,
            username=record.get("username"),
            name=record.get("name"),
        )

    @classmethod
    def from_id_token_claims(
        cls, claims: Mapping[str, Any], environment: str | None = None
    ) -> "Account":
        oid = claims.get("oid")
        tid = claims.get("tid")
        return cls(
            home_account_id=f"{oid}.{tid}" if oid and tid else oid,
            environment=environment,
            tenant_id=tid,
            username=claims.get("preferred_username") or claims.get("email"),
            name=claims.get("name"),
        )


@dataclass(frozen=True, slots=True)
class AuthenticationResult:
    """A freshly acquired access token; never persisted by this package."""

    access_token: str
    expires_on: datetime
    account: Account | None = None
    scopes: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_msal(
        cls,
        result: Mapping[str, Any],
        *,
        account: Account | None = None,
        now: datetime | None = None,
    ) -> "AuthenticationResult":
        reference = now or datetime.now(UTC)
        expires_on = result.get("expires_on")
        expires_in = result.get("expires_in")
        if isinstance(expires_on, (int, float, str)) and str(expires_on).isdigit():
            expiry = datetime.fromtimestamp(int(expires_on), UTC)
        elif isinstance(expires_in, (int, float, str)) and str(expires_in).isdigit():
            expiry = reference + timedelta(seconds=int(expires_in))
        else:
            expiry = reference + timedelta(hours=1)
        raw_scope = result.get("scope")
        scopes = tuple(raw_scope.split()) if isinstance(raw_scope, str) else ()
        return cls(
            access_token=str(result["access_token"]),
            expires_on=expiry,
            account=account,
            scopes=scopes,
        )


@dataclass(frozen=True, slots=True)
class AuthStatus:
    authenticated: bool
    account: Account | None = None
    expires_on: datetime | None = None


__all__ = ["Account", "AuthStatus", "AuthenticationResult", "ClientKind"]
