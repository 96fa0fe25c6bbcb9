# Heartbeat Manager - Connection Liveness
# Application-level Ping/Pong timers driven by the client's control loop

"""
Heartbeat Manager Module

Responsibilities:
- Decide on each tick whether a Ping is due
- Detect a Ping that went unanswered for a full interval
- Reschedule on any inbound traffic
- Adopt the ping interval negotiated at login

The monitor never reads the clock itself; callers pass ``now`` in
milliseconds so the timers can be driven by tests.
"""

from enum import Enum
from typing import Optional

from ..utils.logger import setup_logger

DEFAULT_PING_INTERVAL_MS = 30000

class HeartbeatAction(Enum):
    """What the control loop should do after a tick"""
    NONE = "none"
    SEND_PING = "send_ping"
    TIMEOUT = "timeout"

class HeartbeatMonitor:
    """
    Tracks when to send a Ping and when a Ping has timed out

    Two phases, never both active:
    - waiting to send: ``next_ping_deadline`` is set
    - waiting for reply: ``pong_deadline`` is set
    """

    def __init__(self, ping_interval_ms: int = DEFAULT_PING_INTERVAL_MS):
        self.ping_interval_ms = ping_interval_ms
        self.next_ping_deadline: Optional[int] = None
        self.pong_deadline: Optional[int] = None
        self.logger = setup_logger("HeartbeatMonitor")

    def start(self, now: int):
        """Connection opened: schedule the first Ping"""
        self.on_inbound_traffic(now)

    def on_tick(self, now: int) -> HeartbeatAction:
        """
        Advance the timers

        Args:
            now: Current time in milliseconds

        Returns:
            SEND_PING if a Ping must go out now, TIMEOUT if the
            outstanding Ping expired, NONE otherwise
        """
        if self.next_ping_deadline is not None and now >= self.next_ping_deadline:
            self.next_ping_deadline = None
            self.pong_deadline = now + self.ping_interval_ms
            self.logger.debug(f"Ping due, expecting traffic by {self.pong_deadline}")
            return HeartbeatAction.SEND_PING

        if self.pong_deadline is not None and now >= self.pong_deadline:
            self.logger.debug(f"Pong deadline {self.pong_deadline} passed at {now}")
            return HeartbeatAction.TIMEOUT

        return HeartbeatAction.NONE

    def on_inbound_traffic(self, now: int):
        """Any message arrived: the connection is alive"""
        self.pong_deadline = None
        self.next_ping_deadline = now + self.ping_interval_ms // 3

    def on_ping_interval_negotiated(self, interval_seconds: int):
        """
        Replace the default interval with the server's value

        Existing deadlines are left alone; the new interval applies
        from the next reschedule.
        """
        self.ping_interval_ms = int(interval_seconds * 1000)
        self.logger.info(f"Ping interval set to {self.ping_interval_ms} ms")

    def is_awaiting_pong(self) -> bool:
        return self.pong_deadline is not None
