"""Authentication utilities for the Microsoft Graph CLI."""

from .identity import CLIENT_CREDENTIALS_SCOPE, DeviceCodeCallback, IdentityClient
from .token_cache import CredentialStore, FileCredentialStore
from .types import Account, AuthenticationResult, AuthStatus, ClientKind

__all__ = [
    "Account",
    "AuthStatus",
    "AuthenticationResult",
    "CLIENT_CREDENTIALS_SCOPE",
    "ClientKind",
    "CredentialStore",
    "DeviceCodeCallback",
    "FileCredentialStore",
    "IdentityClient",
]
