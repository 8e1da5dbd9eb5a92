"""
Test Configuration
==================

Pytest configuration with fixtures shared by all tests: isolated settings,
an isolated home directory and a stand-in PhantomJS executable.
"""

import os
import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

from phantomshot.config import logging as logging_config
from phantomshot.config import settings as settings_module
from phantomshot.config.settings import Settings, reload_settings

from tests.utils.fakes import write_fake_phantom


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[Settings, None, None]:
    """Fresh settings per test, free of PHANTOMSHOT_* variables from the outer environment."""
    for key in list(os.environ):
        if key.upper().startswith("PHANTOMSHOT_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("PHANTOMSHOT_ENVIRONMENT", "testing")
    monkeypatch.setenv("PHANTOMSHOT_POLL_INTERVAL_MS", "20")

    # Keep stdout for the output under test
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(file=sys.stderr))

    yield reload_settings()

    settings_module.settings = None
    logging_config._configured = False
    structlog.reset_defaults()


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at an empty directory and keep PATH lookups from finding a real PhantomJS."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr("phantomshot.core.locator.shutil.which", lambda name: None)
    monkeypatch.setattr(
        "phantomshot.core.locator.PACKAGE_INSTALL_DIR", tmp_path / "package" / "PhantomJS"
    )
    monkeypatch.setattr("phantomshot.core.host.system_name", lambda: "Linux")
    return home


@pytest.fixture
def fake_phantom(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A stand-in PhantomJS configured through PHANTOMSHOT_PHANTOMJS_PATH."""
    path = write_fake_phantom(tmp_path / "fake" / "phantomjs")
    monkeypatch.setenv("PHANTOMSHOT_PHANTOMJS_PATH", str(path))
    reload_settings()
    return path
