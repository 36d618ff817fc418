from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from msgraph_cli.config.settings import CONFIG_DIR_ENV, ENV_VARS, LOG_DIR_ENV


@pytest.fixture(autouse=True)
def isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[Path]:
    """Keep config, logs and credentials of every test inside ``tmp_path``."""

    config_dir = tmp_path / "config"
    monkeypatch.setenv(CONFIG_DIR_ENV, str(config_dir))
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path / "logs"))
    for variable in ENV_VARS.values():
        # setenv first so values a test loads from .env are undone on teardown.
        monkeypatch.setenv(variable, "")
        monkeypatch.delenv(variable)
    # No stray .env from the developer's checkout.
    monkeypatch.chdir(tmp_path)
    yield config_dir
