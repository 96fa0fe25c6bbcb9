# Helpers - Utility Functions
# General utility functions used across the application

"""
Helpers Module

Provides utility functions for:
- Monotonic millisecond clock
- JSON pretty printing
- Local position (IPv4 address) and user name discovery
"""

import getpass
import json
import socket
import time
from typing import Any

DEFAULT_POSITION = "127.0.0.1"

def monotonic_ms() -> int:
    """
    Current monotonic time in milliseconds

    Returns:
        Milliseconds from an arbitrary fixed point, never goes backwards
    """
    return int(time.monotonic() * 1000)

def pretty_json(data: Any) -> str:
    """
    Format a JSON-compatible value for display

    Args:
        data: Parsed JSON value (dict, list, ...)

    Returns:
        Indented JSON string
    """
    return json.dumps(data, indent=2)

def get_position() -> str:
    """
    Find the IPv4 address of the local host, used as the login Position

    Returns:
        First IPv4 address of this host name, or 127.0.0.1 if none resolves
    """
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        return DEFAULT_POSITION

    for info in infos:
        address = info[4][0]
        if address:
            return address
    return DEFAULT_POSITION

def get_user(default: str = "user") -> str:
    """
    Name of the user running the process, the default login name

    Returns:
        OS user name, or ``default`` if it cannot be determined
    """
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return default
