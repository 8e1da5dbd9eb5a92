"""
Process Supervisor
==================

Runs one external executable with stdout and stderr piped and streams each
line back to the caller while the child is alive. The child, and anything
it spawned, never outlives the call that waits on it.
"""

import atexit
import os
import queue
import signal
import subprocess
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, IO, Iterable, List, Optional, Union

import psutil

from phantomshot.config.logging import get_logger
from phantomshot.config.settings import get_settings

logger = get_logger(__name__)

STDOUT = "stdout"
STDERR = "stderr"

LineHandler = Callable[[str, str], None]


class ProcessLaunchError(Exception):
    """Exception raised when a child process cannot be started."""

    pass


def echo_line(stream: str, line: str) -> None:
    """Write a child's output line to our stdout, whichever stream it came from."""
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def _kill_group(pgid: int) -> None:
    if not hasattr(os, "killpg"):
        return
    try:
        os.killpg(pgid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass


def kill_process_tree(
    process: subprocess.Popen,
    descendants: Iterable[psutil.Process] = (),
    group: bool = False,
) -> None:
    """
    Kill a child process and all of its descendants, then reap it.

    Args:
        process: The child
        descendants: Descendants seen earlier; they may have been reparented
            after the child exited
        group: The child leads its own process group, kill the whole group
    """
    victims: Dict[int, psutil.Process] = {victim.pid: victim for victim in descendants}
    if process.poll() is None:
        try:
            for child in psutil.Process(process.pid).children(recursive=True):
                victims[child.pid] = child
        except psutil.NoSuchProcess:
            pass

    if group:
        _kill_group(process.pid)

    for victim in victims.values():
        try:
            victim.kill()
        except psutil.NoSuchProcess:
            pass

    if process.poll() is None:
        process.kill()
        process.wait()
    logger.debug("Killed child process", pid=process.pid, descendants=len(victims))


# Children started without waiting; killed when the interpreter exits
_detached: List[subprocess.Popen] = []


def _kill_detached() -> None:
    while _detached:
        kill_process_tree(_detached.pop(), group=True)


atexit.register(_kill_detached)


def _pump(pipe: IO[str], lines: "queue.Queue[str]") -> None:
    with pipe:
        for line in iter(pipe.readline, ""):
            lines.put(line.rstrip("\r\n"))


# Readers still blocked after the tree is dead are held up by a process
# that escaped its group; give up on them after this many seconds.
READER_JOIN_TIMEOUT = 1.0


def _snapshot_descendants(process: subprocess.Popen, seen: Dict[int, psutil.Process]) -> None:
    try:
        for child in psutil.Process(process.pid).children(recursive=True):
            seen.setdefault(child.pid, child)
    except psutil.NoSuchProcess:
        pass


class ProcessSupervisor:
    """Starts a child process and relays its output until it exits."""

    def __init__(self, poll_interval: Optional[float] = None):
        self.settings = get_settings()
        self.poll_interval = (
            poll_interval if poll_interval is not None else self.settings.poll_interval_ms / 1000
        )
        self.logger: Any = logger.bind(component="process_supervisor")

    def start(
        self, executable: Union[str, Path], args: Iterable[Any] = (), capture: bool = True
    ) -> subprocess.Popen:
        """
        Start the child process in a new session, leading its own process group.

        Args:
            executable: Program to run
            args: Command-line arguments, coerced to strings
            capture: Pipe stdout and stderr back to us; otherwise they are inherited

        Raises:
            ProcessLaunchError: If the program cannot be executed
        """
        command = [str(executable)] + [str(arg) for arg in args]
        pipe = subprocess.PIPE if capture else None

        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=pipe,
                stderr=pipe,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=True,
            )
        except OSError as e:
            error_msg = f"Failed to start {executable}: {e}"
            self.logger.error("Process launch error", error=error_msg)
            raise ProcessLaunchError(error_msg) from e

        self.logger.debug("Process started", pid=process.pid, command=command)
        return process

    def run(
        self,
        executable: Union[str, Path],
        args: Iterable[Any] = (),
        wait: bool = True,
        on_line: Optional[LineHandler] = None,
        track: bool = True,
    ) -> Optional[int]:
        """
        Run ``executable`` and relay its output.

        Each poll emits the pending stderr lines first, then the pending stdout
        lines, through ``on_line(stream, line)``. As soon as the child exits, or
        the wait is interrupted, its whole process tree is killed.

        Args:
            executable: Program to run
            args: Command-line arguments
            wait: Block until the child exits; otherwise return immediately
            on_line: Callback receiving each output line, defaults to echoing it
            track: Without ``wait``, kill the child when the interpreter exits;
                untracked children outlive us

        Returns:
            The child's exit status, or None when not waiting
        """
        if not wait:
            process = self.start(executable, args, capture=False)
            if track:
                _detached.append(process)
            return None

        process = self.start(executable, args)
        handler = on_line or echo_line
        pending: Dict[str, "queue.Queue[str]"] = {STDERR: queue.Queue(), STDOUT: queue.Queue()}
        readers = [
            threading.Thread(target=_pump, args=(process.stderr, pending[STDERR]), daemon=True),
            threading.Thread(target=_pump, args=(process.stdout, pending[STDOUT]), daemon=True),
        ]
        for reader in readers:
            reader.start()

        descendants: Dict[int, psutil.Process] = {}
        try:
            while process.poll() is None:
                _snapshot_descendants(process, descendants)
                try:
                    process.wait(timeout=self.poll_interval)
                except subprocess.TimeoutExpired:
                    pass
                self._flush(pending, handler)
        finally:
            kill_process_tree(process, descendants.values(), group=True)

        for reader in readers:
            reader.join(timeout=READER_JOIN_TIMEOUT)
            if reader.is_alive():
                self.logger.warning("Output pipe still open after process exit", pid=process.pid)
        self._flush(pending, handler)

        self.logger.debug("Process exited", pid=process.pid, exit_status=process.returncode)
        return process.returncode

    @staticmethod
    def _flush(pending: Dict[str, "queue.Queue[str]"], handler: LineHandler) -> None:
        for stream, lines in pending.items():
            while True:
                try:
                    line = lines.get_nowait()
                except queue.Empty:
                    break
                handler(stream, line)
