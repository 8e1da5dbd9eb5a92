"""
Command Line Interface
======================

``phantomshot`` entry point: install, locate and run PhantomJS.

    phantomshot install [--version V] [--base-url URL] [--force]
    phantomshot run [--no-wait] [--quiet] -- ARGS...
    phantomshot version | which | magick
    phantomshot port [--min N] [--max N]
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from phantomshot import __version__
from phantomshot.config.logging import get_logger, setup_logging
from phantomshot.core.installer import DownloadError, PhantomInstallError, install_phantomjs
from phantomshot.core.locator import find_phantom
from phantomshot.core.magick import find_magick
from phantomshot.core.process import ProcessLaunchError
from phantomshot.core.runner import phantom_run, phantomjs_version
from phantomshot.utils.network import PortUnavailableError, available_port

logger = get_logger(__name__)

# Shell convention for "command not found"
EXIT_NOT_FOUND = 127


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phantomshot", description="Install, locate and run PhantomJS"
    )
    parser.add_argument("-V", "--app-version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    install = subparsers.add_parser("install", help="Download and install PhantomJS")
    install.add_argument("--version", dest="phantomjs_version", help="PhantomJS version")
    install.add_argument("--base-url", help="Base URL of the release archives")
    install.add_argument(
        "--force", action="store_true", help="Reinstall even if the installed version is newer"
    )

    run = subparsers.add_parser("run", help="Run PhantomJS with the given arguments")
    run.add_argument("--no-wait", action="store_true", help="Start PhantomJS and return")
    run.add_argument("--quiet", action="store_true", help="Do not warn if PhantomJS is missing")
    run.add_argument("args", nargs=argparse.REMAINDER, help="Arguments passed to PhantomJS")

    subparsers.add_parser("version", help="Print the installed PhantomJS version")
    subparsers.add_parser("which", help="Print the PhantomJS executable path")
    subparsers.add_parser("magick", help="Print the ImageMagick convert path")

    port = subparsers.add_parser("port", help="Print a free TCP port")
    port.add_argument("--min", dest="min_port", type=int, help="Lowest candidate port")
    port.add_argument("--max", dest="max_port", type=int, help="Highest candidate port")

    return parser


def _install(args: argparse.Namespace) -> int:
    try:
        result = asyncio.run(
            install_phantomjs(
                version=args.phantomjs_version, base_url=args.base_url, force=args.force
            )
        )
    except (DownloadError, PhantomInstallError) as e:
        logger.error("Installation failed", error=str(e))
        return 1

    if result is not None:
        print(result.path)
    return 0


def _run(args: argparse.Namespace) -> int:
    phantom_args = args.args
    if phantom_args and phantom_args[0] == "--":
        phantom_args = phantom_args[1:]

    try:
        # A detached PhantomJS outlives this command
        status = phantom_run(
            phantom_args, wait=not args.no_wait, quiet=args.quiet, track=False
        )
    except ProcessLaunchError as e:
        logger.error("PhantomJS failed to start", error=str(e))
        return EXIT_NOT_FOUND

    if status is None:
        return 0 if args.no_wait and find_phantom(quiet=True) else EXIT_NOT_FOUND
    return status


def _version(args: argparse.Namespace) -> int:
    version = phantomjs_version()
    if version is None:
        find_phantom()
        return 1
    print(version)
    return 0


def _which(args: argparse.Namespace) -> int:
    path = find_phantom()
    if path is None:
        return 1
    print(path)
    return 0


def _magick(args: argparse.Namespace) -> int:
    path = find_magick()
    if path is None:
        return 1
    print(path)
    return 0


def _port(args: argparse.Namespace) -> int:
    try:
        print(available_port(min_port=args.min_port, max_port=args.max_port))
    except PortUnavailableError as e:
        logger.error("Port discovery failed", error=str(e))
        return 1
    return 0


COMMANDS = {
    "install": _install,
    "run": _run,
    "version": _version,
    "which": _which,
    "magick": _magick,
    "port": _port,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the phantomshot command."""
    args = build_parser().parse_args(argv)
    setup_logging()
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
