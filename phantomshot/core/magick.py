"""
ImageMagick Lookup
==================

Locates ImageMagick's ``convert`` for resizing and converting screenshots,
and runs it under the process supervisor.

On Windows ``convert`` is rarely on PATH, so the registry, the Program Files
directory and a LyX installation (which bundles ImageMagick) are searched.
"""

import os
import re
import shutil
from pathlib import Path
from typing import Any, Iterable, Optional

from phantomshot.config.logging import get_logger
from phantomshot.core import host
from phantomshot.core.process import LineHandler, ProcessSupervisor

logger = get_logger(__name__)

IMAGEMAGICK_KEY = r"SOFTWARE\ImageMagick\Current"
LYX_COMMAND_KEY = r"LyX.Document\Shell\open\command"


def _read_registry(root: str, key: str, value: str = "") -> str:
    """
    Read a Windows registry value; ``root`` is ``HKLM`` or ``HKCR``.

    Raises:
        OSError: If the key or value does not exist
    """
    import winreg

    hive = {"HKLM": winreg.HKEY_LOCAL_MACHINE, "HKCR": winreg.HKEY_CLASSES_ROOT}[root]
    with winreg.OpenKey(hive, key) as handle:
        data, _ = winreg.QueryValueEx(handle, value)
    return str(data)


def _from_imagemagick_registry() -> Optional[Path]:
    try:
        bin_path = _read_registry("HKLM", IMAGEMAGICK_KEY, "BinPath")
    except OSError:
        return None
    return Path(bin_path) / "convert.exe" if bin_path else None


def _from_program_files() -> Optional[Path]:
    program_files = os.environ.get("ProgramFiles", "")
    if not host.dir_exists(program_files):
        return None

    for magick_dir in sorted(Path(program_files).glob("ImageMagick*")):
        if not magick_dir.is_dir():
            continue
        for convert in sorted(magick_dir.rglob("convert.exe")):
            return convert
    return None


def _from_lyx_command(command: str) -> Optional[Path]:
    # e.g. "C:\Program Files\LyX\bin\LyX.exe" "%1"
    lyx_exe = re.sub(r'(^"|" "%1"$)', "", command)
    lyx_bin = Path(lyx_exe).parent
    for relative in ("..", "../etc"):
        candidate = lyx_bin / relative / "imagemagick" / "convert.exe"
        if candidate.exists():
            return Path(os.path.normpath(candidate))
    return None


def _find_windows_magick() -> Optional[Path]:
    convert = _from_imagemagick_registry() or _from_program_files()
    if convert is None:
        try:
            command = _read_registry("HKCR", LYX_COMMAND_KEY)
        except OSError:
            logger.warning("ImageMagick not installed yet!")
            return None
        convert = _from_lyx_command(command)
        if convert is None:
            logger.warning("No way to find ImageMagick!")
            return None

    if not convert.exists():
        logger.warning("ImageMagick's convert.exe not found", path=str(convert))
        return None
    return convert


def find_magick() -> Optional[Path]:
    """Path of ImageMagick's convert, or None with a warning."""
    if host.is_windows():
        return _find_windows_magick()

    for name in ("convert", "magick"):
        found = shutil.which(name)
        if found:
            return Path(found)

    logger.warning("ImageMagick not installed yet!")
    return None


def magick_run(
    args: Iterable[Any], wait: bool = True, on_line: Optional[LineHandler] = None
) -> Optional[int]:
    """Run ImageMagick's convert with ``args``; None when it is missing."""
    convert = find_magick()
    if convert is None:
        return None
    return ProcessSupervisor().run(convert, list(args), wait=wait, on_line=on_line)
