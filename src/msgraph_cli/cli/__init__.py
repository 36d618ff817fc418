"""Command-line surface of the Microsoft Graph CLI."""

from .app import build_parser, main

__all__ = ["build_parser", "main"]
