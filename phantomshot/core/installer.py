"""
PhantomJS Installer
===================

Downloads the PhantomJS release archive for this platform, extracts the
executable and copies it into the first writable install directory where
the locator will find it.

On Windows the executable goes to ``%APPDATA%/PhantomJS``, on macOS to
``~/Library/Application Support/PhantomJS`` and elsewhere to ``~/bin``. When
none of these can be written, the ``PhantomJS`` directory inside the
installed package is tried.
"""

import asyncio
import re
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import aiohttp

from phantomshot.config.logging import get_logger
from phantomshot.config.settings import get_settings
from phantomshot.core import host
from phantomshot.core.locator import is_phantomjs_installed, phantom_paths
from phantomshot.core.runner import phantomjs_version
from phantomshot.models.schemas import ArchiveFormat, ArchiveSpec, InstallResult

logger = get_logger(__name__)


class DownloadError(Exception):
    """Exception raised when a release archive cannot be downloaded."""

    pass


class PhantomInstallError(Exception):
    """Exception raised when PhantomJS cannot be extracted or installed."""

    pass


def normalize_base_url(base_url: str) -> str:
    return base_url if base_url.endswith("/") else base_url + "/"


def normalize_version(version: str) -> Tuple[int, ...]:
    """
    Parse a PhantomJS version string into a comparable tuple.

    PhantomJS 2.5.0-beta and 2.5.0-beta2 report themselves as
    ``2.5.0-development``; all three map to ``(2, 5, 0)``.
    """
    version = version.strip().replace("-development", "")
    version = re.sub(r"-beta.*", "", version)
    parts = version.split(".")
    try:
        numbers = [int(part) for part in parts]
    except ValueError:
        raise ValueError(f"Invalid PhantomJS version: {version!r}")
    while len(numbers) > 1 and numbers[-1] == 0:
        numbers.pop()
    return tuple(numbers)


def is_phantomjs_version_latest(requested_version: str) -> bool:
    """True when the installed PhantomJS is at least ``requested_version``."""
    if not is_phantomjs_installed():
        return False

    installed_version = phantomjs_version()
    if installed_version is None:
        return False

    try:
        return normalize_version(installed_version) >= normalize_version(requested_version)
    except ValueError as e:
        logger.warning("Cannot compare PhantomJS versions", error=str(e))
        return False


def archive_for_platform(
    version: str, system: Optional[str] = None, machine: Optional[str] = None
) -> Optional[ArchiveSpec]:
    """Release archive for the given (default: current) platform, None if unsupported."""
    system = system if system is not None else host.system_name()
    machine = machine if machine is not None else host.machine()

    if system == "Windows":
        filename = f"phantomjs-{version}-windows.zip"
        return ArchiveSpec(
            filename=filename,
            directory=filename[: -len(".zip")],
            executable="bin/phantomjs.exe",
            format=ArchiveFormat.ZIP,
            make_executable=False,
        )
    if system == "Darwin":
        filename = f"phantomjs-{version}-macosx.zip"
        return ArchiveSpec(
            filename=filename,
            directory=filename[: -len(".zip")],
            executable="bin/phantomjs",
            format=ArchiveFormat.ZIP,
        )
    if system == "Linux":
        arch = "x86_64" if "64" in machine else "i686"
        filename = f"phantomjs-{version}-linux-{arch}.tar.bz2"
        return ArchiveSpec(
            filename=filename,
            directory=filename[: -len(".tar.bz2")],
            executable="bin/phantomjs",
            format=ArchiveFormat.TAR_BZ2,
        )
    return None


class ArchiveDownloader:
    """Streams release archives to disk."""

    def __init__(self, timeout: Optional[int] = None, chunk_size: int = 64 * 1024):
        self.settings = get_settings()
        self.timeout = timeout if timeout is not None else self.settings.download_timeout
        self.chunk_size = chunk_size
        self.logger: Any = logger.bind(component="archive_downloader")
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout, connect=30)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def download(self, url: str, destination: Path) -> Path:
        """
        Download ``url`` to ``destination``, following redirects.

        Raises:
            DownloadError: On a non-200 response or a transport failure
        """
        self.logger.info("Downloading PhantomJS", url=url)
        try:
            session = await self._get_session()
            async with session.get(url) as response:
                if response.status != 200:
                    error_text = await response.text()
                    error_msg = f"Download of {url} failed: {response.status} - {error_text[:200]}"
                    self.logger.error("Download error", error=error_msg)
                    raise DownloadError(error_msg)

                size = 0
                with open(destination, "wb") as archive:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        archive.write(chunk)
                        size += len(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            error_msg = f"Download of {url} failed: {e}"
            self.logger.error("Download error", error=error_msg)
            raise DownloadError(error_msg) from e

        self.logger.debug("Download completed", url=url, size=size)
        return destination


def extract_archive(archive: Path, spec: ArchiveSpec, destination: Path) -> Path:
    """
    Unpack ``archive`` into ``destination`` and return the executable inside.

    Raises:
        PhantomInstallError: If the archive is unreadable or lacks the executable
    """
    try:
        if spec.format == ArchiveFormat.ZIP:
            with zipfile.ZipFile(archive) as bundle:
                bundle.extractall(destination)
        else:
            with tarfile.open(archive, "r:bz2") as bundle:
                bundle.extractall(destination, filter="data")
    except (zipfile.BadZipFile, tarfile.TarError, OSError) as e:
        raise PhantomInstallError(f"Cannot extract {archive.name}: {e}") from e

    executable = destination / spec.executable_path
    if not executable.is_file():
        raise PhantomInstallError(f"{spec.executable_path} not found in {archive.name}")

    # zip archives do not preserve the executable bit
    if spec.make_executable:
        executable.chmod(0o755)
    return executable


def copy_to_install_dir(executable: Path, directories: Iterable[Path]) -> Path:
    """
    Copy ``executable`` into the first directory that accepts it.

    Raises:
        PhantomInstallError: If every directory fails
    """
    tried = []
    for directory in directories:
        tried.append(str(directory))
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target = directory / executable.name
            shutil.copy2(executable, target)
        except OSError as e:
            logger.debug("Install directory rejected", directory=str(directory), error=str(e))
            continue
        return target

    raise PhantomInstallError(
        "Unable to install PhantomJS to any of these dirs: " + ", ".join(tried)
    )


async def install_phantomjs(
    version: Optional[str] = None,
    base_url: Optional[str] = None,
    force: bool = False,
    downloader: Optional[ArchiveDownloader] = None,
) -> Optional[InstallResult]:
    """
    Download PhantomJS and install its executable.

    Args:
        version: PhantomJS version, defaults to the configured one
        base_url: Location of the release archives; an alternative mirror
            such as https://bitbucket.org/ariya/phantomjs/downloads/ also works
        force: Reinstall even when the installed version is already at least
            ``version``; use it to reinstall or downgrade
        downloader: Downloader to use, a new one is created and closed otherwise

    Returns:
        InstallResult, or None when nothing was installed

    Raises:
        DownloadError: If the archive cannot be downloaded
        PhantomInstallError: If the executable cannot be extracted or copied
    """
    settings = get_settings()
    version = version or settings.phantomjs_version
    base_url = normalize_base_url(base_url or settings.download_base_url)

    if not force and await asyncio.to_thread(is_phantomjs_version_latest, version):
        logger.info(
            "It seems that the version of `phantomjs` installed is greater than or equal "
            "to the requested version. To install the requested version or downgrade "
            "to another version, use `force=True`.",
            requested_version=version,
        )
        return None

    spec = archive_for_platform(version)
    if spec is None:
        logger.warning("Sorry, this platform is not supported.", system=host.system_name())
        return None

    url = spec.url(base_url)
    own_downloader = downloader is None
    downloader = downloader or ArchiveDownloader()

    try:
        with tempfile.TemporaryDirectory(prefix="phantomshot_") as workdir:
            archive = await downloader.download(url, Path(workdir) / spec.filename)
            executable = extract_archive(archive, spec, Path(workdir))
            installed = copy_to_install_dir(executable, phantom_paths())
    finally:
        if own_downloader:
            await downloader.close()

    logger.info("phantomjs has been installed", path=str(installed.parent.resolve()))
    return InstallResult(path=installed, version=version, source_url=url)
