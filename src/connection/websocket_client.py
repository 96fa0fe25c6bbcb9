# WebSocket Client - Connection Management
# Market data WebSocket client: one connection, one control loop, no reconnect

"""
WebSocket Client Module

Responsibilities:
- Open the WebSocket to the gateway (tr_json2 sub-protocol)
- Receive frames on a background task and queue them
- Drain the queue and the heartbeat tick from a single control loop
- Print every sent and received message
- Turn transport failures into fatal client errors
"""

import asyncio
import json
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .exceptions import TransportClosedError, TransportError
from .session import ClientSession
from ..processors.message_parser import MalformedMessageError, MessageParser
from ..utils.helpers import monotonic_ms, pretty_json
from ..utils.logger import setup_logger

class ConnectionState(Enum):
    """WebSocket connection states"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"

class TransportEventType(Enum):
    MESSAGE = "message"
    CLOSED = "closed"
    ERROR = "error"

@dataclass
class TransportEvent:
    """Something the receive task hands to the control loop"""
    type: TransportEventType
    data: Any = None

class WebSocketClient:
    """
    WebSocket client for a JSON market data gateway

    The receive task only enqueues. All session state is touched by
    the control loop alone, so message handling and heartbeat ticks
    never overlap.
    """

    def __init__(
        self,
        session: ClientSession,
        hostname: str = "localhost",
        port: int = 15000,
        path: str = "/WebSocket",
        subprotocol: str = "tr_json2",
        tick_interval: float = 1.0,
        clock: Callable[[], int] = monotonic_ms,
        parser: Optional[MessageParser] = None
    ):
        """
        Initialize WebSocket client

        Args:
            session: Protocol and liveness state for this connection
            hostname: Gateway host
            port: Gateway port
            path: WebSocket path on the gateway
            subprotocol: WebSocket sub-protocol to negotiate
            tick_interval: Seconds between heartbeat checks
            clock: Millisecond clock used for all timers
            parser: Frame parser (a new one if omitted)
        """
        self.session = session
        self.hostname = hostname
        self.port = port
        self.path = path
        self.subprotocol = subprotocol
        self.tick_interval = tick_interval
        self.clock = clock
        self.parser = parser or MessageParser()

        self.connection = None
        self.state = ConnectionState.DISCONNECTED
        self._inbound: asyncio.Queue = asyncio.Queue()
        self._receive_task: Optional[asyncio.Task] = None

        self.stats = {
            'frames_received': 0,
            'messages_sent': 0,
            'pings_sent': 0,
            'pongs_sent': 0
        }

        self.logger = setup_logger("WebSocketClient")

    @property
    def url(self) -> str:
        return f"ws://{self.hostname}:{self.port}{self.path}"

    async def run(self):
        """
        Connect, log in, subscribe and keep the connection alive

        Only returns by raising: every way out is fatal.

        Raises:
            ClientError: transport failure, login rejection, ping timeout
        """
        await self.connect()
        try:
            await self._send_all(self.session.on_open(self.clock()))
            self._receive_task = asyncio.create_task(self._receive_loop())
            await self._control_loop()
        finally:
            await self.disconnect()

    async def connect(self):
        """
        Establish the WebSocket connection

        Raises:
            TransportError: if the connection cannot be opened
        """
        self.state = ConnectionState.CONNECTING
        self.logger.info(f"Connecting to WebSocket {self.url} ...")

        try:
            self.connection = await websockets.connect(
                self.url,
                subprotocols=[self.subprotocol],
                ping_interval=None,  # Application-level Ping/Pong instead
                close_timeout=10
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self.state = ConnectionState.DISCONNECTED
            raise TransportError(f"Connection failed: {e}") from e

        self.state = ConnectionState.CONNECTED
        self.logger.info("WebSocket successfully connected!")

    async def disconnect(self):
        """Stop the receive task and close the socket"""
        self.state = ConnectionState.CLOSED
        self.session.close()

        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
            try:
                await asyncio.wait_for(self._receive_task, timeout=5.0)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                pass

        if self.connection is not None:
            try:
                await asyncio.wait_for(self.connection.close(), timeout=5.0)
            except asyncio.TimeoutError:
                self.logger.warning("Connection close timeout - forcing")
            except Exception as e:
                self.logger.warning(f"Error closing connection: {e}")

        self.connection = None
        self.logger.debug("Disconnected")

    async def send_message(self, message: Dict[str, Any]):
        """
        Print and send one message

        Raises:
            TransportClosedError: the socket closed underneath us
            TransportError: any other send failure
        """
        self.logger.info(f"SENT:\n{pretty_json(message)}")

        try:
            await self.connection.send(json.dumps(message))
        except ConnectionClosed as e:
            raise TransportClosedError(str(e)) from e
        except Exception as e:
            raise TransportError(f"Failed to send message: {e}") from e

        self.stats['messages_sent'] += 1
        message_type = message.get("Type")
        if message_type == "Ping":
            self.stats['pings_sent'] += 1
        elif message_type == "Pong":
            self.stats['pongs_sent'] += 1

    async def _send_all(self, messages: List[Dict[str, Any]]):
        for message in messages:
            await self.send_message(message)

    async def _receive_loop(self):
        """
        Background task: queue every frame, then one CLOSED or ERROR
        event when the connection ends
        """
        try:
            async for message in self.connection:
                await self._inbound.put(TransportEvent(TransportEventType.MESSAGE, message))
            reason = getattr(self.connection, "close_reason", None)
            await self._inbound.put(TransportEvent(TransportEventType.CLOSED, reason))

        except asyncio.CancelledError:
            self.logger.debug("Receive loop cancelled")
            raise

        except ConnectionClosed as e:
            await self._inbound.put(TransportEvent(TransportEventType.CLOSED, str(e)))

        except Exception as e:
            await self._inbound.put(TransportEvent(TransportEventType.ERROR, e))

    async def _control_loop(self):
        """Single consumer of transport events and heartbeat ticks"""
        tick_ms = int(self.tick_interval * 1000)
        next_tick = self.clock() + tick_ms

        while True:
            # Tick first: a full queue must not hold the heartbeat back
            now = self.clock()
            if now >= next_tick:
                await self._send_all(self.session.on_tick(now))
                next_tick = now + tick_ms
                continue

            try:
                event = await asyncio.wait_for(self._inbound.get(), timeout=(next_tick - now) / 1000)
            except asyncio.TimeoutError:
                continue

            await self._handle_event(event)

    async def _handle_event(self, event: TransportEvent):
        if event.type is TransportEventType.CLOSED:
            raise TransportClosedError(event.data)

        if event.type is TransportEventType.ERROR:
            raise TransportError(f"Received Error: {event.data}") from event.data

        self.stats['frames_received'] += 1
        try:
            frame = self.parser.parse(event.data)
        except MalformedMessageError as e:
            self.logger.info(f"RECEIVED:\n{event.data}")
            raise TransportError(f"Malformed frame: {e}") from e

        self.logger.info(f"RECEIVED:\n{pretty_json(frame.raw)}")
        await self._send_all(self.session.on_frame(frame, self.clock()))

    def is_connected(self) -> bool:
        return self.connection is not None and self.state == ConnectionState.CONNECTED

    def get_state(self) -> ConnectionState:
        return self.state

    def get_stats(self) -> dict:
        return dict(self.stats)
