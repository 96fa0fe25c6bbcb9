# Client Session - Login/Subscription Protocol
# Owns all per-connection state: protocol state and liveness timers

"""
Client Session Module

Responsibilities:
- Send the login request when the connection opens
- Detect a successful login and request the item
- Adopt the server's PingTimeout
- Answer Ping with Pong
- Drive the heartbeat monitor from ticks and inbound frames

The session does no I/O. Every handler returns the list of messages
to send, so the WebSocket client stays the only place that writes to
the socket.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import LoginStreamClosedError, LoginTimeoutError, PingTimeoutError
from .heartbeat_manager import HeartbeatAction, HeartbeatMonitor
from .subscription_manager import SubscriptionManager
from ..processors.message_parser import InboundMessage, MessageType, ParsedFrame
from ..utils.logger import setup_logger

class ProtocolState(Enum):
    """Login/subscription protocol states"""
    CONNECTING = "connecting"
    AWAITING_LOGIN = "awaiting_login"
    LOGGED_IN = "logged_in"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"

class ClientSession:
    """
    One connection's worth of protocol and liveness state
    """

    def __init__(
        self,
        subscriptions: SubscriptionManager,
        heartbeat: Optional[HeartbeatMonitor] = None,
        login_timeout: float = 0
    ):
        """
        Args:
            subscriptions: Builds the outbound requests
            heartbeat: Liveness timers (a default monitor if omitted)
            login_timeout: Seconds to wait for the login response, 0 waits forever
        """
        self.subscriptions = subscriptions
        self.heartbeat = heartbeat or HeartbeatMonitor()
        self.login_timeout = login_timeout
        self.state = ProtocolState.CONNECTING
        self._opened_at: Optional[int] = None
        self.logger = setup_logger("ClientSession")

    @property
    def logged_in(self) -> bool:
        return self.state in (ProtocolState.LOGGED_IN, ProtocolState.SUBSCRIBED)

    def on_open(self, now: int) -> List[Dict[str, Any]]:
        """Transport is open: start the timers and log in"""
        self._opened_at = now
        self.heartbeat.start(now)
        self.state = ProtocolState.AWAITING_LOGIN
        return [self.subscriptions.login_request()]

    def on_frame(self, frame: ParsedFrame, now: int) -> List[Dict[str, Any]]:
        """
        Handle every message of an inbound frame, then reset the
        liveness timers

        Returns:
            Messages to send, in order
        """
        outbound = []
        for message in frame.messages:
            outbound.extend(self.on_message(message))
        self.heartbeat.on_inbound_traffic(now)
        return outbound

    def on_message(self, message: InboundMessage) -> List[Dict[str, Any]]:
        """Handle one inbound message"""
        if message.message_type is MessageType.PING:
            return [self.subscriptions.pong()]

        if message.message_type is MessageType.REFRESH and message.Domain == "Login":
            return self._on_login_refresh(message)

        return []

    def on_tick(self, now: int) -> List[Dict[str, Any]]:
        """
        Periodic check of the liveness and login timers

        Raises:
            PingTimeoutError: a Ping went unanswered for a full interval
            LoginTimeoutError: no login response within login_timeout
        """
        if (
            self.state is ProtocolState.AWAITING_LOGIN
            and self.login_timeout > 0
            and self._opened_at is not None
            and now - self._opened_at >= self.login_timeout * 1000
        ):
            raise LoginTimeoutError(self.login_timeout)

        action = self.heartbeat.on_tick(now)
        if action is HeartbeatAction.SEND_PING:
            return [self.subscriptions.ping()]
        if action is HeartbeatAction.TIMEOUT:
            raise PingTimeoutError(self.heartbeat.ping_interval_ms)
        return []

    def close(self):
        self.state = ProtocolState.CLOSED

    def _on_login_refresh(self, message) -> List[Dict[str, Any]]:
        state = message.State
        if state is not None and state.Stream != "Open":
            raise LoginStreamClosedError(state.Stream, state.Text)

        if self.logged_in:
            return []

        if state is not None and state.Data != "Ok":
            self.logger.warning(f"Login refresh with data state {state.Data}, still waiting")
            return []

        self.state = ProtocolState.LOGGED_IN
        self.logger.info(f"Logged in as {self.subscriptions.user}")
        self._negotiate_ping_interval(message.Elements or {})

        self.state = ProtocolState.SUBSCRIBED
        self.logger.info(f"Requesting {self.subscriptions.item}")
        return [self.subscriptions.item_request()]

    def _negotiate_ping_interval(self, elements: Dict[str, Any]):
        ping_timeout = elements.get("PingTimeout")
        if isinstance(ping_timeout, bool) or not isinstance(ping_timeout, (int, float)) or ping_timeout <= 0:
            self.logger.warning(
                f"Login response has no usable PingTimeout ({ping_timeout!r}), "
                f"keeping {self.heartbeat.ping_interval_ms} ms"
            )
            return
        self.heartbeat.on_ping_interval_negotiated(ping_timeout)
