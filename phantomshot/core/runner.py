"""
PhantomJS Runner
================

Runs PhantomJS with arbitrary arguments or a rasterization script, streaming
its output back to the caller.
"""

from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from phantomshot.config.logging import get_logger
from phantomshot.core.locator import find_phantom
from phantomshot.core.process import STDOUT, LineHandler, ProcessSupervisor

logger = get_logger(__name__)


def _as_args(args: Union[str, Path, Iterable[Any]]) -> List[Any]:
    # A lone string is one argument, not a sequence of characters
    if isinstance(args, (str, Path)):
        return [args]
    return list(args)


def phantom_run(
    args: Union[str, Path, Iterable[Any]],
    wait: bool = True,
    quiet: bool = False,
    on_line: Optional[LineHandler] = None,
    track: bool = True,
) -> Optional[int]:
    """
    Run PhantomJS with ``args``.

    Args:
        args: Command-line arguments, coerced to strings
        wait: Wait for PhantomJS to exit while relaying its output
        quiet: Do not warn when PhantomJS is missing
        on_line: Callback receiving ``(stream, line)`` for every output line
        track: Without ``wait``, kill PhantomJS when the interpreter exits

    Returns:
        PhantomJS's exit status; None when it is missing or not waited on
    """
    phantom_bin = find_phantom(quiet=quiet)
    if phantom_bin is None:
        return None

    return ProcessSupervisor().run(
        phantom_bin, _as_args(args), wait=wait, on_line=on_line, track=track
    )


def phantomjs_cmd_result(
    args: Union[str, Path, Iterable[Any]], wait: bool = True, quiet: bool = False
) -> Optional[List[str]]:
    """Run PhantomJS and return the lines it wrote to stdout, or None if it is missing."""
    phantom_bin = find_phantom(quiet=quiet)
    if phantom_bin is None:
        return None

    output: List[str] = []

    def collect(stream: str, line: str) -> None:
        if stream == STDOUT:
            output.append(line)
        else:
            logger.debug("phantomjs stderr", line=line)

    ProcessSupervisor().run(phantom_bin, _as_args(args), wait=wait, on_line=collect)
    return output


def phantomjs_version() -> Optional[str]:
    """Version string reported by the installed PhantomJS, if any."""
    lines = phantomjs_cmd_result(["--version"], quiet=True)
    if not lines:
        return None
    return lines[0].strip() or None


def run_script(
    script: Union[str, Path],
    *args: Any,
    wait: bool = True,
    quiet: bool = False,
    on_line: Optional[LineHandler] = None,
) -> Optional[int]:
    """
    Execute a PhantomJS script file, e.g. a screenshot or rasterize script.

    Raises:
        FileNotFoundError: If ``script`` does not exist
    """
    script_path = Path(script).expanduser()
    if not script_path.is_file():
        raise FileNotFoundError(f"PhantomJS script not found: {script_path}")

    logger.info("Running PhantomJS script", script=str(script_path), args=[str(a) for a in args])
    return phantom_run([script_path, *args], wait=wait, quiet=quiet, on_line=on_line)
