# Client Errors - Fatal Conditions
# Every error here ends the process with exit status 1

"""
Client exceptions

None of these are retried. They propagate out of the control loop
to main.py, which logs them and exits.
"""

from typing import Optional

class ClientError(Exception):
    """Base class for fatal client errors"""

class TransportError(ClientError):
    """Connect failure, socket error or unreadable frame"""

class TransportClosedError(ClientError):
    """The server closed the WebSocket"""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or ""
        super().__init__(f"WebSocket was closed: {self.reason}")

class LoginStreamClosedError(ClientError):
    """Login refresh arrived with a stream state other than Open"""

    def __init__(self, stream: Optional[str], text: Optional[str] = None):
        self.stream = stream
        self.text = text
        detail = f" ({text})" if text else ""
        super().__init__(f"Login stream was closed: {stream}{detail}")

class PingTimeoutError(ClientError):
    """No traffic arrived within the ping interval after a Ping was sent"""

    def __init__(self, interval_ms: int):
        self.interval_ms = interval_ms
        super().__init__(f"Server ping timed out (no traffic for {interval_ms} ms after Ping)")

class LoginTimeoutError(ClientError):
    """No login response within the configured login timeout"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"No login response within {timeout}s")
