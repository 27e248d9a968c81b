# FilePath: "/bot_launcher/ports.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Port selection for bot instances.
#              Two separate paths: a random default for deployments through the API,
#              and a bind-probe scan for bots started by hand.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import random
import socket
from typing import Callable, Optional

DEFAULT_RANGE_START = 4100
DEFAULT_RANGE_END = 4199

SCAN_RANGE_START = 4101
SCAN_RANGE_END = 4199


def default_port(start: int = DEFAULT_RANGE_START, end: int = DEFAULT_RANGE_END) -> int:
    """Random port in ``[start, end]``. No availability check; the API caller may pass its own."""
    return random.randint(start, end)


def is_port_free(port: int, host: str = "0.0.0.0") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_free_port(
    start: int = SCAN_RANGE_START,
    end: int = SCAN_RANGE_END,
    probe: Callable[[int], bool] = is_port_free,
) -> Optional[int]:
    """First port in ``[start, end]`` whose bind probe succeeds, or None when the range is exhausted."""
    for port in range(start, end + 1):
        if probe(port):
            return port
    return None
