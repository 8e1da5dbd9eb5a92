"""Free TCP port discovery for local servers screenshotted by PhantomJS."""

import random
import socket
from typing import Optional

from phantomshot.config.logging import get_logger
from phantomshot.config.settings import get_settings

logger = get_logger(__name__)

# Ports browsers refuse to connect to
UNSAFE_PORTS = frozenset({3659, 4045, 6000, 6665, 6666, 6667, 6668, 6669, 6697})


class PortUnavailableError(Exception):
    """Exception raised when no free port can be found."""

    pass


def is_port_free(port: int, host: str = "127.0.0.1") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def available_port(
    port: Optional[int] = None,
    min_port: Optional[int] = None,
    max_port: Optional[int] = None,
    attempts: Optional[int] = None,
) -> int:
    """
    Return ``port`` if given, else a random free port in ``[min_port, max_port]``.

    Raises:
        PortUnavailableError: If none of the sampled ports can be bound
    """
    if port is not None:
        return port

    settings = get_settings()
    min_port = settings.port_min if min_port is None else min_port
    max_port = settings.port_max if max_port is None else max_port
    attempts = settings.port_attempts if attempts is None else attempts

    valid_ports = [p for p in range(min_port, max_port + 1) if p not in UNSAFE_PORTS]
    for candidate in random.sample(valid_ports, min(attempts, len(valid_ports))):
        if is_port_free(candidate):
            return candidate
        logger.debug("Port in use", port=candidate)

    raise PortUnavailableError("Cannot find an available port")
