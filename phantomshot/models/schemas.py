"""
Pydantic Models and Schemas
===========================

Data models for PhantomJS release archives and installation results.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class ArchiveFormat(str, Enum):
    """Release archive container formats."""
    ZIP = "zip"
    TAR_BZ2 = "tar.bz2"


class ArchiveSpec(BaseModel):
    """A platform-specific PhantomJS release archive."""
    filename: str = Field(..., description="Archive file name, e.g. phantomjs-2.1.1-windows.zip")
    directory: str = Field(..., description="Top-level directory inside the archive")
    executable: str = Field(..., description="Executable path relative to the archive root")
    format: ArchiveFormat
    make_executable: bool = Field(default=True, description="chmod 0755 after extraction")

    def url(self, base_url: str) -> str:
        """Download URL of this archive under ``base_url``."""
        if not base_url.endswith("/"):
            base_url += "/"
        return base_url + self.filename

    @property
    def executable_path(self) -> Path:
        """Executable location relative to the extraction directory."""
        return Path(self.directory, self.executable)


class InstallResult(BaseModel):
    """Outcome of a successful PhantomJS installation."""
    path: Path = Field(..., description="Installed executable")
    version: str
    source_url: str
