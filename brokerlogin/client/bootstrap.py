"""Client bootstrap helpers for deriving login parameters and opening a session."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from brokerlogin.client.connection_url import ConnectionUrl, connectionUrl_parse
from brokerlogin.client.handshake import login
from brokerlogin.client.network import FrameReader, connection_open
from brokerlogin.common.config import ClientConfig
from brokerlogin.common.errors import HandshakeError
from brokerlogin.common.types import LoginType
from brokerlogin.protocol.login import LoginParams

__all__ = ["loginParams_fromConfig", "session_establish", "writer_close"]

logger = logging.getLogger(__name__)


def loginParams_fromConfig(
    config: ClientConfig,
    user: str = "",
    password: str = "",
    login_type: LoginType = LoginType.SHA1,
    url: ConnectionUrl | None = None,
) -> LoginParams:
    """
    Derive login parameters from client config.

    Credentials given here win over credentials carried in the config URL.

    Args:
        config: Loaded client config.
        user: Login user.
        password: Plaintext password.
        login_type: Password transmission mode.
        url: Already parsed `config.url`; parsed here when omitted.

    Returns:
        Login parameters for one connection attempt.
    """
    if url is None:
        url = connectionUrl_parse(config.url)
    return LoginParams(
        user=user or url.user,
        password=password or url.password,
        login_type=login_type,
        device_id=config.device_id or "",
        mount_point=config.mount or "",
        heartbeat_interval=config.heartbeatInterval_get(),
    )


async def writer_close(writer: asyncio.StreamWriter) -> None:
    """
    Close the broker connection after a failed or abandoned login.

    Close errors are suppressed because the caller is already unwinding
    with the original failure.

    Args:
        writer: Write half of the connection.
    """
    writer.close()
    with contextlib.suppress(ConnectionError, OSError):
        await writer.wait_closed()


async def session_establish(
    config: ClientConfig,
    user: str = "",
    password: str = "",
    login_type: LoginType = LoginType.SHA1,
) -> tuple[int, FrameReader, asyncio.StreamWriter]:
    """
    Connect to the broker named in config and log in.

    The connection is closed whenever login does not complete, including
    when an outer `asyncio.wait_for` deadline cancels it.

    Args:
        config: Loaded client config.
        user: Login user.
        password: Plaintext password.
        login_type: Password transmission mode.

    Returns:
        Client id, frame reader and writer of the authenticated connection.

    Raises:
        ValueError: If the config URL is invalid.
        HandshakeError: If connecting or logging in fails.
    """
    url: ConnectionUrl = connectionUrl_parse(config.url)
    login_params: LoginParams = loginParams_fromConfig(config, user, password, login_type, url)

    frame_reader, writer = await connection_open(url)
    try:
        client_id: int = await login(frame_reader, writer, login_params)
    except HandshakeError as e:
        logger.error("Login to %s failed: %s", url.target_describe(), e)
        await writer_close(writer)
        raise
    except BaseException:
        logger.warning("Login to %s abandoned, closing connection", url.target_describe())
        await writer_close(writer)
        raise
    return client_id, frame_reader, writer
