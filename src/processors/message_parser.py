# Message Parser - JSON Parsing
# Turns inbound WebSocket frames into validated, typed messages

"""
Message Parser Module

Responsibilities:
- Parse JSON frames from the WebSocket
- Split a frame (JSON array) into individual messages
- Validate each message into a typed model (Refresh, Ping, Pong, other)
- Reject malformed frames explicitly
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from ..utils.logger import setup_logger

class MessageType(Enum):
    """Inbound message types"""
    REFRESH = "Refresh"
    PING = "Ping"
    PONG = "Pong"
    OTHER = "other"

class MalformedMessageError(ValueError):
    """Frame is not JSON, or a message in it has no usable Type"""

class StreamState(BaseModel):
    """State block of a Refresh (stream and data state)"""
    model_config = ConfigDict(extra="allow")

    Stream: Optional[str] = None
    Data: Optional[str] = None
    Code: Any = None
    Text: Optional[str] = None

class RefreshMessage(BaseModel):
    """Full snapshot of a login or item stream"""
    model_config = ConfigDict(extra="allow")

    Type: Literal["Refresh"]
    ID: Optional[int] = None
    Domain: str = "MarketPrice"
    Key: Optional[Dict[str, Any]] = None
    State: Optional[StreamState] = None
    Elements: Optional[Dict[str, Any]] = None
    Fields: Optional[Dict[str, Any]] = None

    @property
    def message_type(self) -> MessageType:
        return MessageType.REFRESH

class PingMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    Type: Literal["Ping"]

    @property
    def message_type(self) -> MessageType:
        return MessageType.PING

class PongMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    Type: Literal["Pong"]

    @property
    def message_type(self) -> MessageType:
        return MessageType.PONG

class GenericMessage(BaseModel):
    """Any other message (Update, Status, Error, ...); displayed only"""
    model_config = ConfigDict(extra="allow")

    Type: str
    ID: Optional[int] = None
    Domain: Optional[str] = None

    @property
    def message_type(self) -> MessageType:
        return MessageType.OTHER

InboundMessage = Union[RefreshMessage, PingMessage, PongMessage, GenericMessage]

_MODELS = {
    MessageType.REFRESH: RefreshMessage,
    MessageType.PING: PingMessage,
    MessageType.PONG: PongMessage,
    MessageType.OTHER: GenericMessage,
}

@dataclass
class ParsedFrame:
    """One WebSocket frame: the raw JSON plus its typed messages"""
    messages: List[InboundMessage]
    raw: Any

class MessageParser:
    """
    Parser for inbound WebSocket frames

    A frame is a JSON array of message objects. A bare object is
    accepted as a one-element array.
    """

    def __init__(self):
        """Initialize message parser"""
        self.logger = setup_logger("MessageParser")
        self._parse_count = 0
        self._error_count = 0

    def parse(self, raw_message: Union[str, bytes]) -> ParsedFrame:
        """
        Parse a raw frame

        Args:
            raw_message: Raw JSON text from the WebSocket

        Returns:
            ParsedFrame with one typed message per array element

        Raises:
            MalformedMessageError: invalid JSON or invalid message
        """
        self._parse_count += 1

        try:
            data = json.loads(raw_message)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self._error_count += 1
            self.logger.debug(f"Raw message: {str(raw_message)[:100]}...")
            raise MalformedMessageError(f"JSON decode error: {e}") from e

        items = data if isinstance(data, list) else [data]
        messages = [self.parse_message(item) for item in items]

        self.logger.debug(f"Parsed frame #{self._parse_count}: {len(messages)} message(s)")
        return ParsedFrame(messages=messages, raw=data)

    def parse_message(self, data: Any) -> InboundMessage:
        """
        Validate one message object into its typed model

        Args:
            data: One decoded JSON element

        Returns:
            RefreshMessage, PingMessage, PongMessage or GenericMessage

        Raises:
            MalformedMessageError: not an object, no string Type,
                or fields of the wrong shape
        """
        if not isinstance(data, dict):
            self._error_count += 1
            raise MalformedMessageError(f"Expected a JSON object, got {type(data).__name__}")

        type_name = data.get("Type")
        if not isinstance(type_name, str):
            self._error_count += 1
            raise MalformedMessageError(f"Message has no Type: {data}")

        model = _MODELS[self._determine_message_type(type_name)]
        try:
            return model.model_validate(data)
        except ValidationError as e:
            self._error_count += 1
            raise MalformedMessageError(f"Invalid {type_name} message: {e}") from e

    def _determine_message_type(self, type_name: str) -> MessageType:
        """Determine message type from the Type field"""
        for message_type in (MessageType.REFRESH, MessageType.PING, MessageType.PONG):
            if type_name == message_type.value:
                return message_type
        return MessageType.OTHER

    def get_stats(self) -> dict:
        """Get parser statistics"""
        return {
            "total_parsed": self._parse_count,
            "total_errors": self._error_count,
            "success_rate": (self._parse_count - self._error_count) / max(self._parse_count, 1) * 100
        }
