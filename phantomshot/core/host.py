"""Host platform detection."""

import platform
from pathlib import Path
from typing import Union


def system_name() -> str:
    return platform.system()


def machine() -> str:
    return platform.machine()


def is_windows() -> bool:
    return system_name() == "Windows"


def is_osx() -> bool:
    return system_name() == "Darwin"


def is_linux() -> bool:
    return system_name() == "Linux"


def is_solaris() -> bool:
    return system_name() == "SunOS"


def dir_exists(path: Union[str, Path, None]) -> bool:
    """True only for a non-empty path naming an existing directory."""
    if not path:
        return False
    return Path(path).expanduser().is_dir()
