from __future__ import annotations

import json
import socket
import sys
import traceback
from dataclasses import dataclass
from typing import Any, Mapping, TextIO

import httpx
import requests

from msgraph_cli.graph.errors import ErrorCategory, GraphCliError


# Graph, MSAL and CLI error codes with a message worth showing instead of the raw text.
FRIENDLY_MESSAGES: Mapping[str, str] = {
    "InvalidAuthenticationToken": (
        'Authentication token is invalid or expired. Please run "msgraph auth login" again.'
    ),
    "Authorization_RequestDenied": (
        "Access denied. You do not have permission to perform this operation."
    ),
    "Request_ResourceNotFound": "The requested resource was not found.",
    "ErrorItemNotFound": "The specified item was not found.",
    "ErrorAccessDenied": "Access denied. Check your permissions.",
    "ErrorInvalidRecipients": "One or more recipients are invalid.",
    "ErrorSendAsDenied": "You do not have permission to send as this user.",
    "ErrorMailboxNotEnabledForRESTAPI": (
        "The mailbox is not enabled for REST API access."
    ),
    "ErrorMailboxMoveInProgress": (
        "The mailbox is currently being moved. Please try again later."
    ),
    "AuthenticationRequiredError": (
        'Authentication is required. Please run "msgraph auth login".'
    ),
}

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."

_NETWORK_ERRNOS = {
    getattr(socket, "EAI_AGAIN", None),
    getattr(socket, "EAI_FAIL", None),
    getattr(socket, "EAI_NONAME", None),
    getattr(socket, "EHOSTUNREACH", None),
    getattr(socket, "ENETDOWN", None),
    getattr(socket, "ENETUNREACH", None),
    getattr(socket, "ECONNREFUSED", None),
    getattr(socket, "ECONNRESET", None),
    getattr(socket, "ETIMEDOUT", None),
}
_NETWORK_ERRNOS.discard(None)


@dataclass(slots=True)
class ErrorDescriptor:
    headline: str
    detail: str
    category: ErrorCategory = ErrorCategory.UNKNOWN
    code: str | None = None
    status_code: int | None = None
    request: str | None = None
    body: Any | None = None
    suggestion: str | None = None


def friendly_message(code: str | None, fallback: str) -> str:
    if code and code in FRIENDLY_MESSAGES:
        return FRIENDLY_MESSAGES[code]
    return fallback


def describe_exception(error: BaseException) -> ErrorDescriptor:
    """Translate any exception into what the CLI shows the user."""

    if isinstance(error, GraphCliError):
        request = None
        if error.request_method and error.request_url:
            request = f"{error.request_method} {error.request_url}"
        return ErrorDescriptor(
            headline=friendly_message(error.code, error.message),
            detail=error.message,
            category=error.category,
            code=error.code,
            status_code=error.status_code,
            request=request,
            body=error.body,
            suggestion=error.recovery_suggestion,
        )

    for link in _error_chain(error):
        descriptor = _classify_network_error(link)
        if descriptor is not None:
            return descriptor

    text = str(error).strip()
    return ErrorDescriptor(
        headline=text or UNEXPECTED_ERROR_MESSAGE,
        detail=f"{type(error).__name__}: {text}",
    )


def render_error(
    error: BaseException,
    *,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> ErrorDescriptor:
    """Print ``Error: <message>`` and, when verbose, everything known about it."""

    out = stream or sys.stderr
    descriptor = describe_exception(error)
    print(f"Error: {descriptor.headline}", file=out)
    if not verbose:
        return descriptor

    if descriptor.detail and descriptor.detail != descriptor.headline:
        print(f"  Message: {descriptor.detail}", file=out)
    if descriptor.code:
        print(f"  Code: {descriptor.code}", file=out)
    if descriptor.status_code:
        print(f"  Status: {descriptor.status_code}", file=out)
    if descriptor.request:
        print(f"  Request: {descriptor.request}", file=out)
    if descriptor.body is not None:
        print(f"  Details: {_format_body(descriptor.body)}", file=out)
    if descriptor.suggestion:
        print(f"  Hint: {descriptor.suggestion}", file=out)
    cause = error.__cause__
    if cause is not None:
        print(f"  Cause: {type(cause).__name__}: {cause}", file=out)
    print("  Traceback:", file=out)
    trace = "".join(traceback.format_exception(error))
    for line in trace.rstrip().splitlines():
        print(f"    {line}", file=out)
    return descriptor


def _format_body(body: Any) -> str:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except ValueError:
            return body
    try:
        return json.dumps(body, indent=2, default=str)
    except (TypeError, ValueError):
        return str(body)


def _network_descriptor(headline: str, error: BaseException) -> ErrorDescriptor:
    return ErrorDescriptor(
        headline=headline,
        detail=f"{type(error).__name__}: {error}",
        category=ErrorCategory.NETWORK,
        code="NetworkError",
        suggestion="Check your internet connection and try again.",
    )


def _classify_network_error(error: BaseException) -> ErrorDescriptor | None:
    if isinstance(error, httpx.TimeoutException):
        return _network_descriptor(
            "Network timeout communicating with Microsoft Graph.", error
        )
    if isinstance(error, requests.exceptions.Timeout):
        return _network_descriptor(
            "Network timeout communicating with the Microsoft identity platform.",
            error,
        )
    if isinstance(error, socket.gaierror):
        return _network_descriptor(
            "DNS lookup failed while contacting Microsoft Graph.", error
        )
    if isinstance(error, httpx.TransportError):
        return _network_descriptor("Network issue contacting Microsoft Graph.", error)
    if isinstance(error, requests.exceptions.RequestException):
        return _network_descriptor(
            "Network issue contacting the Microsoft identity platform.", error
        )
    if isinstance(error, OSError) and getattr(error, "errno", None) in _NETWORK_ERRNOS:
        return _network_descriptor("Network connection issue encountered.", error)
    return None


def _error_chain(error: BaseException) -> list[BaseException]:
    """``error`` followed by its causes, outermost first."""

    chain = [error]
    visited = {id(error)}
    current = error
    while True:
        inner = current.__cause__ or current.__context__
        if inner is None or id(inner) in visited:
            return chain
        visited.add(id(inner))
        chain.append(inner)
        current = inner


__all__ = [
    "ErrorDescriptor",
    "FRIENDLY_MESSAGES",
    "UNEXPECTED_ERROR_MESSAGE",
    "describe_exception",
    "friendly_message",
    "render_error",
]
