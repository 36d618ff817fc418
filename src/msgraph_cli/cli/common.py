from __future__ import annotations

import argparse
from typing import Sequence

from msgraph_cli.utils.formatters import OutputFormat


def add_format_argument(
    parser: argparse.ArgumentParser,
    *,
    default: OutputFormat,
    choices: Sequence[OutputFormat] = tuple(OutputFormat),
) -> None:
    parser.add_argument(
        "--format",
        dest="output_format",
        type=OutputFormat,
        choices=list(choices),
        default=default,
        help=f"Output format ({', '.join(choices)}). Default: {default}.",
    )


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {number}")
    return number


def split_addresses(value: str | None) -> list[str]:
    """Split a comma-separated address list, dropping empty entries."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def emit(text: str = "") -> None:
    print(text)  # noqa: T201


__all__ = ["add_format_argument", "emit", "positive_int", "split_addresses"]
