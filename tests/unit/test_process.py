"""
Unit Tests for the Process Supervisor
=====================================

Runs the current Python interpreter as the supervised child.
"""

import subprocess
import sys
import time
from typing import List, Tuple

import psutil
import pytest

from phantomshot.core import process as process_module
from phantomshot.core.process import (
    STDERR,
    STDOUT,
    ProcessLaunchError,
    ProcessSupervisor,
    echo_line,
    kill_process_tree,
)


def _collector() -> Tuple[List[Tuple[str, str]], object]:
    lines: List[Tuple[str, str]] = []

    def collect(stream: str, line: str) -> None:
        lines.append((stream, line))

    return lines, collect


def _wait_until_dead(pid: int, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                return True
        except psutil.NoSuchProcess:
            return True
        time.sleep(0.05)
    return False


@pytest.fixture
def supervisor():
    """Supervisor with a short polling interval."""
    return ProcessSupervisor(poll_interval=0.05)


class TestProcessSupervisor:
    """Test running and supervising child processes."""

    def test_poll_interval_from_settings(self, test_settings):
        """Test the default interval comes from poll_interval_ms."""
        assert ProcessSupervisor().poll_interval == pytest.approx(0.02)

    def test_streams_both_pipes(self, supervisor):
        """Test stdout and stderr lines reach the handler in order per stream."""
        lines, collect = _collector()
        code = (
            "import sys\n"
            "print('one'); print('two')\n"
            "sys.stderr.write('warn\\n')\n"
        )

        status = supervisor.run(sys.executable, ["-c", code], on_line=collect)

        assert status == 0
        assert [line for stream, line in lines if stream == STDOUT] == ["one", "two"]
        assert [line for stream, line in lines if stream == STDERR] == ["warn"]

    def test_returns_exit_status(self, supervisor):
        """Test a non-zero exit status is returned, not raised."""
        lines, collect = _collector()
        status = supervisor.run(sys.executable, ["-c", "import sys; sys.exit(4)"], on_line=collect)
        assert status == 4

    def test_arguments_coerced_to_strings(self, supervisor, tmp_path):
        """Test non-string arguments are passed as strings."""
        lines, collect = _collector()
        code = "import sys; print(' '.join(sys.argv[1:]))"

        supervisor.run(sys.executable, ["-c", code, 42, tmp_path], on_line=collect)

        assert lines == [(STDOUT, f"42 {tmp_path}")]

    def test_output_across_polls(self, supervisor):
        """Test lines written while the child is alive are relayed."""
        lines, collect = _collector()
        code = (
            "import time\n"
            "for i in range(3):\n"
            "    print(i, flush=True)\n"
            "    time.sleep(0.1)\n"
        )

        assert supervisor.run(sys.executable, ["-c", code], on_line=collect) == 0
        assert lines == [(STDOUT, "0"), (STDOUT, "1"), (STDOUT, "2")]

    def test_default_handler_echoes_to_stdout(self, supervisor, capsys):
        """Test both streams are echoed to stdout by default."""
        code = "import sys; print('out'); sys.stderr.write('err\\n')"

        supervisor.run(sys.executable, ["-c", code])

        captured = capsys.readouterr()
        assert "out\n" in captured.out
        assert "err\n" in captured.out

    def test_child_killed_when_handler_fails(self, supervisor, monkeypatch):
        """Test the child does not outlive an interrupted wait."""
        started: List[subprocess.Popen] = []
        original_start = supervisor.start

        def tracking_start(*args, **kwargs):
            child = original_start(*args, **kwargs)
            started.append(child)
            return child

        monkeypatch.setattr(supervisor, "start", tracking_start)

        def explode(stream: str, line: str) -> None:
            raise RuntimeError("handler failed")

        code = "import time; print('ready', flush=True); time.sleep(30)"
        with pytest.raises(RuntimeError, match="handler failed"):
            supervisor.run(sys.executable, ["-c", code], on_line=explode)

        assert started[0].poll() is not None

    def test_grandchild_holding_pipes_is_killed(self, supervisor):
        """Test a grandchild that keeps the pipes open does not hold up run."""
        lines, collect = _collector()
        code = (
            "import subprocess, sys\n"
            "grandchild = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
            "print(grandchild.pid, flush=True)\n"
        )

        started = time.monotonic()
        status = supervisor.run(sys.executable, ["-c", code], on_line=collect)

        assert status == 0
        assert time.monotonic() - started < 10
        assert _wait_until_dead(int(lines[0][1]))

    def test_grandchild_in_own_session_is_killed(self, supervisor):
        """Test a descendant that left the process group is still killed."""
        lines, collect = _collector()
        code = (
            "import subprocess, sys, time\n"
            "grandchild = subprocess.Popen(\n"
            "    [sys.executable, '-c', 'import time; time.sleep(30)'], start_new_session=True\n"
            ")\n"
            "print(grandchild.pid, flush=True)\n"
            "time.sleep(0.5)\n"
        )

        started = time.monotonic()
        status = supervisor.run(sys.executable, ["-c", code], on_line=collect)

        assert status == 0
        assert time.monotonic() - started < 10
        assert _wait_until_dead(int(lines[0][1]))

    def test_launch_error(self, supervisor, tmp_path):
        """Test a missing executable raises ProcessLaunchError."""
        with pytest.raises(ProcessLaunchError, match="Failed to start"):
            supervisor.run(tmp_path / "missing-binary", ["--version"])

    def test_no_wait_returns_immediately(self, supervisor):
        """Test detached children are tracked and killed on cleanup."""
        status = supervisor.run(
            sys.executable, ["-c", "import time; time.sleep(30)"], wait=False
        )

        assert status is None
        child = process_module._detached[-1]
        assert child.poll() is None

        process_module._kill_detached()

        assert child.poll() is not None
        assert process_module._detached == []


class TestKillProcessTree:
    """Test killing a child and its descendants."""

    def test_kills_descendants(self):
        """Test grandchildren are killed along with the child."""
        code = (
            "import subprocess, sys, time\n"
            "grandchild = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
            "print(grandchild.pid, flush=True)\n"
            "time.sleep(30)\n"
        )
        child = subprocess.Popen(
            [sys.executable, "-c", code], stdout=subprocess.PIPE, text=True
        )
        grandchild_pid = int(child.stdout.readline())

        kill_process_tree(child)
        child.stdout.close()

        assert child.poll() is not None
        assert _wait_until_dead(grandchild_pid)

    def test_exited_child_is_noop(self):
        """Test an already finished child is left alone."""
        child = subprocess.Popen([sys.executable, "-c", "pass"])
        child.wait()
        kill_process_tree(child)
        assert child.returncode == 0


def test_echo_line(capsys):
    """Test echo_line writes one line to stdout."""
    echo_line(STDERR, "hello")
    assert capsys.readouterr().out == "hello\n"
