"""Pytest configuration and shared fixtures for brokerlogin tests

This module provides fake transport halves used to play the broker's side of
the login handshake in unit tests.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List

import pytest

from brokerlogin.client.network import FrameReader
from brokerlogin.protocol.message import RpcMessage


class FakeWriter:
    """Records bytes written by the client"""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.chunks: List[bytes] = []
        self.fail_with = fail_with
        self.closed = False
        self.wait_closed_calls = 0

    def write(self, data: bytes) -> None:
        self.chunks.append(data)

    async def drain(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        self.wait_closed_calls += 1

    def requests_get(self) -> List[RpcMessage]:
        """Decode every message written so far"""
        text = b"".join(self.chunks).decode("utf-8")
        return [RpcMessage.json_deserialize(line) for line in text.splitlines() if line]


def broker_reader(*frames: Dict[str, Any], eof: bool = True) -> FrameReader:
    """Frame reader preloaded with broker responses (call inside a running loop)"""
    reader = asyncio.StreamReader()
    for frame in frames:
        reader.feed_data((json.dumps(frame) + "\n").encode("utf-8"))
    if eof:
        reader.feed_eof()
    return FrameReader(reader)


@pytest.fixture
def fake_writer() -> FakeWriter:
    """Writer that records client requests"""
    return FakeWriter()


@pytest.fixture
def make_broker_reader() -> Callable[..., FrameReader]:
    """Factory for frame readers replaying broker responses"""
    return broker_reader


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)


@pytest.fixture
def failing_writer() -> FakeWriter:
    """Writer whose flush fails as if the peer reset the connection"""
    return FakeWriter(fail_with=ConnectionResetError("Connection reset by peer"))
