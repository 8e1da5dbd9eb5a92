"""
PhantomJS Locator
=================

Finds a PhantomJS executable on PATH or in one of the directories the
installer writes to.
"""

import os
import shutil
from pathlib import Path
from typing import List, Optional

from phantomshot.config.logging import get_logger
from phantomshot.config.settings import get_settings
from phantomshot.core import host

logger = get_logger(__name__)

# Last-resort install directory inside the installed package
PACKAGE_INSTALL_DIR = Path(__file__).resolve().parent.parent / "PhantomJS"


def executable_name() -> str:
    return "phantomjs.exe" if host.is_windows() else "phantomjs"


def is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def phantom_paths() -> List[Path]:
    """Possible locations of the PhantomJS executable, most preferred first."""
    paths: List[Path] = []

    install_dir = get_settings().install_dir
    if install_dir is not None:
        paths.append(install_dir)

    if host.is_windows():
        appdata = os.environ.get("APPDATA", "")
        if host.dir_exists(appdata):
            paths.append(Path(appdata) / "PhantomJS")
    elif host.is_osx():
        support = Path("~/Library/Application Support").expanduser()
        if host.dir_exists(support):
            paths.append(support / "PhantomJS")
    else:
        paths.append(Path("~/bin").expanduser())

    paths.append(PACKAGE_INSTALL_DIR)
    return paths


def find_phantom(quiet: bool = False) -> Optional[Path]:
    """
    Find PhantomJS from settings, PATH and the install directories.

    A missing executable is not an error: callers get None and, unless
    ``quiet``, a warning explaining how to install it.
    """
    configured = get_settings().phantomjs_path
    if configured is not None and is_executable_file(configured):
        return configured

    on_path = shutil.which("phantomjs")
    if on_path:
        return Path(on_path)

    exec_name = executable_name()
    for directory in phantom_paths():
        candidate = directory / exec_name
        if is_executable_file(candidate):
            return candidate.expanduser()

    if not quiet:
        logger.warning(
            "PhantomJS not found. You can install it with `phantomshot install`. "
            "If it is installed, please make sure the phantomjs executable "
            "can be found via the PATH variable."
        )
    return None


def is_phantomjs_installed() -> bool:
    """Determine whether a usable PhantomJS executable is available."""
    return find_phantom(quiet=True) is not None
