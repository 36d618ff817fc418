from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    REMOTE = "remote"
    NETWORK = "network"
    INPUT = "input"
    UNKNOWN = "unknown"


@dataclass(slots=True, eq=False)
class GraphCliError(Exception):
    """Base class for every error the CLI knows how to classify."""

    message: str
    code: str = "GraphCliError"
    category: ErrorCategory = ErrorCategory.UNKNOWN
    status_code: int | None = None
    body: Any | None = None
    request_method: str | None = None
    request_url: str | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message

    @property
    def recovery_suggestion(self) -> str | None:
        if self.category is ErrorCategory.CONFIGURATION:
            return (
                "Set AZURE_CLIENT_ID and AZURE_TENANT_ID, pass --client-id/--tenant-id, "
                'or run "msgraph config set".'
            )
        if self.category is ErrorCategory.AUTHENTICATION:
            return 'Run "msgraph auth login" to sign in again.'
        if self.category is ErrorCategory.NETWORK:
            return "Check your internet connection and try again."
        return None


class ConfigurationError(GraphCliError):
    def __init__(self, message: str, code: str = "MissingConfiguration") -> None:
        super().__init__(
            message=message, code=code, category=ErrorCategory.CONFIGURATION
        )


class AuthenticationRequiredError(GraphCliError):
    def __init__(self, message: str) -> None:
        super().__init__(
            message=message,
            code="AuthenticationRequiredError",
            category=ErrorCategory.AUTHENTICATION,
        )


class MissingClientSecretError(GraphCliError):
    def __init__(
        self,
        message: str = (
            "Client secret is required for client credentials flow. "
            "Set AZURE_CLIENT_SECRET environment variable."
        ),
    ) -> None:
        super().__init__(
            message=message,
            code="MissingClientSecret",
            category=ErrorCategory.CONFIGURATION,
        )


class DeviceCodeFlowError(GraphCliError):
    def __init__(
        self, message: str = "Failed to acquire token via device code flow."
    ) -> None:
        super().__init__(
            message=message,
            code="DeviceCodeFlowFailed",
            category=ErrorCategory.AUTHENTICATION,
        )


class ClientCredentialsFlowError(GraphCliError):
    def __init__(
        self, message: str = "Failed to acquire token via client credentials flow."
    ) -> None:
        super().__init__(
            message=message,
            code="ClientCredentialsFlowFailed",
            category=ErrorCategory.AUTHENTICATION,
        )


class IdentityProviderError(GraphCliError):
    """Error payload returned by MSAL instead of a token."""

    def __init__(self, message: str, code: str = "IdentityProviderError") -> None:
        super().__init__(
            message=message, code=code, category=ErrorCategory.AUTHENTICATION
        )

    @classmethod
    def from_msal_result(cls, result: dict[str, Any]) -> "IdentityProviderError":
        code = str(result.get("error") or "IdentityProviderError")
        description = result.get("error_description") or code
        error = cls(message=str(description), code=code)
        error.body = {
            key: result[key]
            for key in ("error", "error_description", "error_codes", "correlation_id")
            if key in result
        }
        return error


class InvalidTimeSpecError(GraphCliError):
    ACCEPTED_FORMS: Sequence[str] = (
        "last60min",
        "last6hours",
        "yesterday",
        "today",
        "last7days",
        "an ISO 8601 date/time",
    )

    def __init__(self, value: str) -> None:
        forms = ", ".join(self.ACCEPTED_FORMS[:-1])
        super().__init__(
            message=(
                f'Invalid --since value: "{value}". Use formats like: {forms}, '
                f"or {self.ACCEPTED_FORMS[-1]}."
            ),
            code="InvalidTimeSpec",
            category=ErrorCategory.INPUT,
        )
        self.value = value


class ValidationError(GraphCliError):
    def __init__(self, message: str, code: str) -> None:
        super().__init__(message=message, code=code, category=ErrorCategory.VALIDATION)


class InvalidMessageIdError(ValidationError):
    def __init__(self, message: str = "Message ID cannot be empty.") -> None:
        super().__init__(message, "InvalidMessageId")


class InvalidEventIdError(ValidationError):
    def __init__(self, message: str = "Event ID cannot be empty.") -> None:
        super().__init__(message, "InvalidEventId")


class InvalidRecipientError(ValidationError):
    def __init__(self, address: str, *, label: str = "email address") -> None:
        super().__init__(f'Invalid {label}: "{address}"', "InvalidRecipient")
        self.address = address


class CalendarNotFoundError(ValidationError):
    def __init__(self, name: str) -> None:
        super().__init__(f'No calendar matches "{name}".', "CalendarNotFound")
        self.name = name


class AmbiguousCalendarError(ValidationError):
    def __init__(self, name: str, candidates: Sequence[str]) -> None:
        listed = ", ".join(f'"{candidate}"' for candidate in candidates)
        super().__init__(
            f'Calendar name "{name}" is ambiguous. Matches: {listed}.',
            "AmbiguousCalendar",
        )
        self.name = name
        self.candidates = list(candidates)


class GraphAPIError(GraphCliError):
    """Error response returned by Microsoft Graph."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        body: Any | None = None,
        category: ErrorCategory = ErrorCategory.REMOTE,
    ) -> None:
        super().__init__(
            message=message,
            code=code or "UnknownGraphError",
            category=category,
            status_code=status_code,
            body=body,
        )

    @property
    def is_server_error(self) -> bool:
        return bool(self.status_code and 500 <= self.status_code <= 599)

    @property
    def recovery_suggestion(self) -> str | None:
        if self.is_server_error:
            return (
                "Microsoft Graph is having a temporary problem. "
                "Try again in a few minutes."
            )
        return super().recovery_suggestion


__all__ = [
    "ErrorCategory",
    "GraphCliError",
    "ConfigurationError",
    "AuthenticationRequiredError",
    "MissingClientSecretError",
    "DeviceCodeFlowError",
    "ClientCredentialsFlowError",
    "IdentityProviderError",
    "InvalidTimeSpecError",
    "ValidationError",
    "InvalidMessageIdError",
    "InvalidEventIdError",
    "InvalidRecipientError",
    "CalendarNotFoundError",
    "AmbiguousCalendarError",
    "GraphAPIError",
]
