"""
Async stream transport for brokerlogin.

This module owns connection opening and newline-delimited message I/O between
the client and the broker.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from brokerlogin.client.connection_url import ConnectionUrl
from brokerlogin.common.errors import ProtocolViolationError, TransportError
from brokerlogin.common.types import Scheme
from brokerlogin.protocol.message import RpcMessage

__all__ = ["FrameReader", "MessageWriter", "connection_open", "message_send"]

logger = logging.getLogger(__name__)

# Maximum frame size to prevent memory exhaustion (1MB).
MAX_FRAME_SIZE = 1024 * 1024


class MessageWriter(Protocol):
    """Write half of a stream, as provided by `asyncio.StreamWriter`."""

    def write(self, data: bytes) -> None:
        """Queue bytes for sending."""
        ...

    async def drain(self) -> None:
        """Wait until queued bytes are flushed."""
        ...


class FrameReader:
    """
    Reads complete RPC messages from a stream.

    Each message is one line of UTF-8 JSON. Blank lines are skipped.
    """

    def __init__(self, reader: asyncio.StreamReader) -> None:
        """
        Initialize frame reader.

        Args:
            reader:
                Read half of the broker connection.
        """
        self.reader: asyncio.StreamReader = reader

    async def message_receive(self) -> RpcMessage | None:
        """
        Wait for the next complete message.

        Returns:
            Parsed message, or `None` when the stream ended.

        Raises:
            TransportError:
                Raised when the read fails or a frame exceeds the size cap.
            ProtocolViolationError:
                Raised when a frame is not a UTF-8 JSON object.
        """
        while True:
            try:
                line: bytes = await self.reader.readline()
            except ValueError as exc:
                raise TransportError("Frame size limit exceeded") from exc
            except (ConnectionError, OSError) as exc:
                raise TransportError(f"Socket error: {exc}") from exc

            if not line:
                return None
            if len(line) > MAX_FRAME_SIZE:
                raise TransportError("Frame size limit exceeded")
            if not line.strip():
                continue
            return self.frame_decode(line)

    @staticmethod
    def frame_decode(line: bytes) -> RpcMessage:
        """
        Decode one frame.

        Args:
            line:
                Raw frame bytes, with or without trailing newline.

        Returns:
            Parsed message.

        Raises:
            ProtocolViolationError:
                Raised when the frame cannot be decoded.
        """
        try:
            message: RpcMessage = RpcMessage.json_deserialize(line.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise ProtocolViolationError(f"Malformed frame: {exc}") from exc
        logger.debug("Received from broker: requestId=%s", message.request_id)
        return message


async def message_send(writer: MessageWriter, message: RpcMessage) -> None:
    """
    Send one message to the broker.

    Args:
        writer:
            Write half of the broker connection.
        message:
            Message to send.

    Raises:
        TransportError:
            Raised when the write fails.
    """
    data: bytes = (message.json_serialize() + "\n").encode("utf-8")
    try:
        writer.write(data)
        await writer.drain()
    except (ConnectionError, OSError) as exc:
        raise TransportError(f"Failed to send message: {exc}") from exc
    logger.debug("Sent to broker: %s requestId=%s", message.method, message.request_id)


async def connection_open(url: ConnectionUrl) -> tuple[FrameReader, asyncio.StreamWriter]:
    """
    Open a stream connection to the broker.

    Args:
        url:
            Parsed connection target.

    Returns:
        Frame reader and stream writer bound to the new connection.

    Raises:
        TransportError:
            Raised when the connection cannot be established.
    """
    try:
        if url.scheme == Scheme.LOCAL_SOCKET:
            reader, writer = await asyncio.open_unix_connection(url.path, limit=MAX_FRAME_SIZE)
        else:
            reader, writer = await asyncio.open_connection(
                url.host, url.port, limit=MAX_FRAME_SIZE
            )
    except (ConnectionError, OSError) as exc:
        raise TransportError(f"Failed to connect to {url.target_describe()}: {exc}") from exc

    logger.info("Connected to broker %s", url.target_describe())
    return FrameReader(reader), writer
