"""
URL Helpers
===========

PhantomJS scripts expect URLs. On Windows, local paths such as
``c:/path/file.html`` must become ``file:///c:/path/file.html``.
"""

import ntpath
import re
from typing import Iterable, List, Union, overload

from phantomshot.core import host

_DRIVE_PATH = re.compile(r"^[a-zA-Z]:/")


def _fix_one(url: str) -> str:
    # Paths like "c:/path/file.html", or colon-free backslash paths such as
    # "dir\file.html" that are resolved against the working directory.
    if _DRIVE_PATH.match(url) or (":" not in url and "\\" in url):
        return "file:///" + ntpath.abspath(url).replace("\\", "/")
    return url


@overload
def fix_windows_url(url: str) -> str: ...


@overload
def fix_windows_url(url: Iterable[str]) -> List[str]: ...


def fix_windows_url(url: Union[str, Iterable[str]]) -> Union[str, List[str]]:
    """Turn Windows local file paths into file:/// URLs; no-op on other hosts."""
    if isinstance(url, str):
        return _fix_one(url) if host.is_windows() else url
    if not host.is_windows():
        return list(url)
    return [_fix_one(item) for item in url]
