"""Microsoft Graph transport, request builders and error types."""

from .errors import (
    AmbiguousCalendarError,
    AuthenticationRequiredError,
    CalendarNotFoundError,
    ClientCredentialsFlowError,
    ConfigurationError,
    DeviceCodeFlowError,
    ErrorCategory,
    GraphAPIError,
    GraphCliError,
    IdentityProviderError,
    InvalidEventIdError,
    InvalidMessageIdError,
    InvalidRecipientError,
    InvalidTimeSpecError,
    MissingClientSecretError,
    ValidationError,
)
from .requests import GraphRequest

__all__ = [
    "AmbiguousCalendarError",
    "AuthenticationRequiredError",
    "CalendarNotFoundError",
    "ClientCredentialsFlowError",
    "ConfigurationError",
    "DeviceCodeFlowError",
    "ErrorCategory",
    "GraphAPIError",
    "GraphCliError",
    "GraphRequest",
    "IdentityProviderError",
    "InvalidEventIdError",
    "InvalidMessageIdError",
    "InvalidRecipientError",
    "InvalidTimeSpecError",
    "MissingClientSecretError",
    "ValidationError",
]
