from __future__ import annotations

import io
import socket

import httpx
import requests

from msgraph_cli.graph.errors import (
    AuthenticationRequiredError,
    ErrorCategory,
    GraphAPIError,
    InvalidRecipientError,
)
from msgraph_cli.utils.errors import (
    FRIENDLY_MESSAGES,
    UNEXPECTED_ERROR_MESSAGE,
    describe_exception,
    friendly_message,
    render_error,
)


def _graph_error(code: str | None = "ErrorItemNotFound") -> GraphAPIError:
    error = GraphAPIError(
        "The specified object was not found in the store.",
        code=code,
        status_code=404,
        body={"error": {"code": code, "message": "not found"}},
        category=ErrorCategory.VALIDATION,
    )
    error.request_method = "GET"
    error.request_url = "https://graph.microsoft.com/v1.0/me/messages/abc"
    return error


def test_friendly_message_falls_back_to_raw_text() -> None:
    assert friendly_message("ErrorAccessDenied", "raw") == (
        FRIENDLY_MESSAGES["ErrorAccessDenied"]
    )
    assert friendly_message("SomethingElse", "raw") == "raw"
    assert friendly_message(None, "raw") == "raw"


def test_known_graph_codes_use_friendly_headline() -> None:
    descriptor = describe_exception(_graph_error())

    assert descriptor.headline == "The specified item was not found."
    assert descriptor.detail == "The specified object was not found in the store."
    assert descriptor.status_code == 404
    assert descriptor.request == (
        "GET https://graph.microsoft.com/v1.0/me/messages/abc"
    )


def test_unknown_codes_keep_graph_message() -> None:
    descriptor = describe_exception(_graph_error(code="WeirdError"))

    assert descriptor.headline == "The specified object was not found in the store."


def test_authentication_required_is_explained() -> None:
    descriptor = describe_exception(AuthenticationRequiredError("No cached accounts."))

    assert descriptor.headline == (
        'Authentication is required. Please run "msgraph auth login".'
    )
    assert descriptor.category is ErrorCategory.AUTHENTICATION
    assert descriptor.suggestion is not None


def test_wrapped_transport_errors_are_network_errors() -> None:
    request = httpx.Request("GET", "https://graph.microsoft.com/v1.0/me")
    try:
        try:
            raise httpx.ConnectError("connection refused", request=request)
        except httpx.ConnectError as exc:
            raise RuntimeError("listing failed") from exc
    except RuntimeError as error:
        descriptor = describe_exception(error)

    assert descriptor.category is ErrorCategory.NETWORK
    assert descriptor.code == "NetworkError"
    assert descriptor.headline == "Network issue contacting Microsoft Graph."


def test_dns_failures_are_reported_as_such() -> None:
    descriptor = describe_exception(socket.gaierror(socket.EAI_NONAME, "unknown host"))

    assert descriptor.headline == "DNS lookup failed while contacting Microsoft Graph."


def test_plain_exceptions_use_their_text() -> None:
    assert describe_exception(ValueError("bad input")).headline == "bad input"
    assert describe_exception(RuntimeError()).headline == UNEXPECTED_ERROR_MESSAGE


def test_render_error_prints_single_line_by_default() -> None:
    stream = io.StringIO()

    render_error(InvalidRecipientError("adele"), stream=stream)

    assert stream.getvalue() == 'Error: Invalid email address: "adele"\n'


def test_render_error_verbose_includes_request_details() -> None:
    stream = io.StringIO()
    try:
        raise _graph_error()
    except GraphAPIError as error:
        render_error(error, verbose=True, stream=stream)

    output = stream.getvalue()
    assert output.startswith("Error: The specified item was not found.\n")
    assert "  Message: The specified object was not found in the store." in output
    assert "  Code: ErrorItemNotFound" in output
    assert "  Status: 404" in output
    assert "  Request: GET https://graph.microsoft.com/v1.0/me/messages/abc" in output
    assert '"message": "not found"' in output
    assert "  Traceback:" in output


def test_identity_platform_connection_errors_are_network_errors() -> None:
    error = requests.exceptions.ConnectionError(
        "HTTPSConnectionPool(host='login.microsoftonline.com', port=443): "
        "Max retries exceeded"
    )

    descriptor = describe_exception(error)

    assert descriptor.category is ErrorCategory.NETWORK
    assert descriptor.code == "NetworkError"
    assert descriptor.headline == (
        "Network issue contacting the Microsoft identity platform."
    )
    assert descriptor.suggestion == "Check your internet connection and try again."


def test_identity_platform_timeouts_are_reported_as_timeouts() -> None:
    descriptor = describe_exception(requests.exceptions.ReadTimeout("read timed out"))

    assert descriptor.category is ErrorCategory.NETWORK
    assert descriptor.headline == (
        "Network timeout communicating with the Microsoft identity platform."
    )


def test_render_error_for_unreachable_identity_platform() -> None:
    stream = io.StringIO()

    render_error(
        requests.exceptions.ConnectionError("Max retries exceeded"), stream=stream
    )

    assert stream.getvalue() == (
        "Error: Network issue contacting the Microsoft identity platform.\n"
    )


def test_verbose_server_errors_suggest_retrying() -> None:
    stream = io.StringIO()

    render_error(
        GraphAPIError("Service Unavailable", status_code=503),
        verbose=True,
        stream=stream,
    )

    assert (
        "  Hint: Microsoft Graph is having a temporary problem. "
        "Try again in a few minutes.\n"
    ) in stream.getvalue()
