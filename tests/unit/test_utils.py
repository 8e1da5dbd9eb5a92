"""
Unit Tests for Utilities
========================

URL fix-ups, port discovery and collection helpers.
"""

import socket
from unittest.mock import patch

import pytest

from phantomshot.core import host
from phantomshot.utils.helpers import drop_nulls
from phantomshot.utils.network import (
    UNSAFE_PORTS,
    PortUnavailableError,
    available_port,
    is_port_free,
)
from phantomshot.utils.urls import fix_windows_url


class TestFixWindowsUrl:
    """Test local path to file URL conversion."""

    @pytest.fixture
    def windows(self, monkeypatch):
        monkeypatch.setattr(host, "system_name", lambda: "Windows")

    def test_noop_off_windows(self, monkeypatch):
        """Test paths are untouched on other platforms."""
        monkeypatch.setattr(host, "system_name", lambda: "Linux")
        assert fix_windows_url("c:/path/file.html") == "c:/path/file.html"
        assert fix_windows_url(["a\\b.html"]) == ["a\\b.html"]

    def test_drive_path(self, windows):
        """Test drive-letter paths become file URLs."""
        assert fix_windows_url("c:/path/file.html") == "file:///c:/path/file.html"

    def test_urls_untouched(self, windows):
        """Test URLs pass through."""
        urls = ["http://example.com/page", "file:///c:/already.html", "https://x.org/a\\b"]
        assert fix_windows_url(urls) == urls

    def test_backslash_drive_path_left_alone(self, windows):
        """Test backslash paths with a drive colon are not rewritten."""
        assert fix_windows_url("c:\\path\\file.html") == "c:\\path\\file.html"

    def test_backslash_relative_path(self, windows, monkeypatch):
        """Test colon-free backslash paths are made absolute and slashed."""
        resolved = []

        def abspath(path):
            resolved.append(path)
            return "C:\\work\\dir\\file.html"

        monkeypatch.setattr("phantomshot.utils.urls.ntpath.abspath", abspath)

        assert fix_windows_url("dir\\file.html") == "file:///C:/work/dir/file.html"
        assert resolved == ["dir\\file.html"]

    def test_list_keeps_order(self, windows):
        """Test each entry is handled independently."""
        assert fix_windows_url(["D:/a.html", "http://b"]) == ["file:///D:/a.html", "http://b"]


class TestAvailablePort:
    """Test free port discovery."""

    def test_explicit_port(self):
        """Test a requested port is returned as-is."""
        assert available_port(8765) == 8765

    def test_finds_free_port(self):
        """Test a free, safe port in range is returned."""
        port = available_port(min_port=20000, max_port=20100)
        assert 20000 <= port <= 20100
        assert port not in UNSAFE_PORTS

    def test_skips_unsafe_ports(self):
        """Test the unsafe ports are never sampled."""
        with patch("phantomshot.utils.network.is_port_free", return_value=True):
            assert available_port(min_port=6665, max_port=6670) == 6670

    def test_no_port_available(self):
        """Test an error when every sampled port is taken."""
        with patch("phantomshot.utils.network.is_port_free", return_value=False):
            with pytest.raises(PortUnavailableError, match="Cannot find an available port"):
                available_port()

    def test_attempts_limit(self):
        """Test at most the configured number of ports is tried."""
        with patch("phantomshot.utils.network.is_port_free", return_value=False) as probe:
            with pytest.raises(PortUnavailableError):
                available_port(attempts=5)
        assert probe.call_count == 5

    def test_is_port_free(self):
        """Test a bound port is reported busy."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen()
            port = sock.getsockname()[1]
            assert not is_port_free(port)


class TestDropNulls:
    """Test None removal."""

    def test_list(self):
        assert drop_nulls([1, None, 0, "", None]) == [1, 0, ""]

    def test_dict(self):
        assert drop_nulls({"a": 1, "b": None, "c": False}) == {"a": 1, "c": False}
