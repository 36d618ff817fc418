"""
Entry point for running msgraph_cli as a module.

This file enables:
- `python -m msgraph_cli`
- `uv run python -m msgraph_cli`
"""

from __future__ import annotations

import sys

from msgraph_cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
