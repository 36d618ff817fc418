from __future__ import annotations

import re
from typing import Final

_BEARER_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\bbearer\s+[A-Za-z0-9\-_\.~\+/]+=*",
)
_JWT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\beyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]*",
)
_SECRET_FIELD_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(client_secret|access_token|refresh_token|id_token|password)"
    r"(\s*[=:]\s*)(\"?)[^\s\"&,]+",
)

_CONTROL_CHARS: Final[frozenset[str]] = frozenset(
    chr(code) for code in range(0x00, 0x20) if chr(code) not in {"\t", "\n"}
)

REDACTED: Final[str] = "***"


def redact_secrets(value: str) -> str:
    """Mask bearer tokens, JWTs and ``key=value`` secrets in free text."""

    redacted = _BEARER_PATTERN.sub(f"Bearer {REDACTED}", value)
    redacted = _JWT_PATTERN.sub(REDACTED, redacted)
    return _SECRET_FIELD_PATTERN.sub(rf"\1\2\3{REDACTED}", redacted)


def sanitize_log_message(value: str) -> str:
    """Normalise log messages by stripping control characters and CR sequences."""

    normalised = value.replace("\r\n", "\n").replace("\r", "\n")
    return "".join(ch for ch in normalised if ch not in _CONTROL_CHARS)


__all__ = ["REDACTED", "redact_secrets", "sanitize_log_message"]
