"""
Client-side login handshake with the broker.

The handshake is two strictly ordered round trips over one connection:

1. `hello` (no parameters) -> result mapping with `nonce`
2. `login` (rendered LoginParams) -> result mapping, optionally with `clientId`

For SHA1 login the transmitted password is derived from the configured
password and the nonce; the configured LoginParams value is never modified.
No retries and no timeouts happen here. Callers wanting bounded latency wrap
`login()` in `asyncio.wait_for`.
"""

from __future__ import annotations

import logging
from enum import Enum

from brokerlogin.client.network import FrameReader, MessageWriter, message_send
from brokerlogin.common.errors import (
    AuthenticationRejectedError,
    HandshakeError,
    ProtocolViolationError,
    TransportError,
)
from brokerlogin.common.types import LoginType
from brokerlogin.protocol.login import LoginParams, sha1Password_hash
from brokerlogin.protocol.message import MessageBuilder, RpcMessage

__all__ = ["HandshakeState", "LoginHandshake", "login"]

logger = logging.getLogger(__name__)

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class HandshakeState(Enum):
    """Login handshake progress"""

    START = "start"
    AWAITING_NONCE = "awaiting_nonce"
    AWAITING_CLIENT_ID = "awaiting_client_id"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class LoginHandshake:
    """
    One login attempt over an exclusively owned reader/writer pair.

    An instance runs once; its `state` ends in AUTHENTICATED or FAILED.
    """

    def __init__(
        self,
        frame_reader: FrameReader,
        writer: MessageWriter,
        login_params: LoginParams,
    ) -> None:
        """
        Initialize handshake.

        Args:
            frame_reader:
                Source of broker responses.
            writer:
                Sink for client requests.
            login_params:
                Credentials and session options.
        """
        self.frame_reader: FrameReader = frame_reader
        self.writer: MessageWriter = writer
        self.login_params: LoginParams = login_params
        self.state: HandshakeState = HandshakeState.START
        self.client_id: int | None = None

    async def run(self) -> int:
        """
        Perform both round trips.

        Returns:
            Client id assigned by the broker, `0` when none was assigned.

        Raises:
            TransportError:
                Raised when sending fails or the login response never arrives.
            ProtocolViolationError:
                Raised when a response lacks a usable `nonce` or `clientId`.
            AuthenticationRejectedError:
                Raised when the broker answers either request with an error.
        """
        if self.state != HandshakeState.START:
            raise RuntimeError(f"Login handshake already run (state={self.state.value})")
        try:
            await self.helloRequest_send()
            hello_response: RpcMessage = await self.helloResponse_receive()
            nonce: str = self.nonce_extract(hello_response)
            await self.loginRequest_send(self.challengeParams_build(nonce))
            login_response: RpcMessage = await self.loginResponse_receive()
            client_id: int = self.clientId_extract(login_response)
        except HandshakeError as exc:
            if exc.state is None:
                exc.state = self.state
            self.state_enter(HandshakeState.FAILED)
            logger.debug("Login failed in state %s: %s", exc.state.value, exc)
            raise

        self.client_id = client_id
        self.state_enter(HandshakeState.AUTHENTICATED)
        logger.info("Logged in as '%s', client id %s", self.login_params.user, client_id)
        return client_id

    def state_enter(self, state: HandshakeState) -> None:
        """Record a state transition."""
        logger.debug("Login handshake: %s -> %s", self.state.value, state.value)
        self.state = state

    async def helloRequest_send(self) -> None:
        """Send `hello` to the broker itself (empty path, no params)."""
        hello: RpcMessage = MessageBuilder.request_create("", "hello")
        await message_send(self.writer, hello)
        self.state_enter(HandshakeState.AWAITING_NONCE)

    async def helloResponse_receive(self) -> RpcMessage:
        """
        Wait for the `hello` response.

        A closed stream yields an empty response here, which then fails on
        the missing nonce rather than as a transport error.

        Returns:
            Broker response, or an empty message if the stream ended.
        """
        response: RpcMessage | None = await self.frame_reader.message_receive()
        if response is None:
            logger.debug("Stream ended before hello response")
            return RpcMessage()
        return response

    def response_check(self, response: RpcMessage) -> None:
        """
        Reject error responses.

        Args:
            response:
                Broker response.

        Raises:
            AuthenticationRejectedError:
                Raised when the response carries an error.
        """
        if response.is_success():
            return
        raise AuthenticationRejectedError(
            response.error_text(), error=response.error, state=self.state
        )

    def nonce_extract(self, response: RpcMessage) -> str:
        """
        Extract the nonce from a `hello` response.

        Args:
            response:
                Broker response to `hello`.

        Returns:
            Nonce string.
        """
        self.response_check(response)
        nonce: object = response.result_map().get("nonce")
        if not isinstance(nonce, str):
            raise ProtocolViolationError("Bad nonce", state=self.state)
        return nonce

    def challengeParams_build(self, nonce: str) -> LoginParams:
        """
        Derive the parameters actually sent with `login`.

        Args:
            nonce:
                Nonce from the `hello` response.

        Returns:
            Copy of the configured params, with the password replaced by the
            challenge hash for SHA1 login.
        """
        if self.login_params.login_type != LoginType.SHA1:
            return self.login_params

        password_hash: bytes = sha1Password_hash(
            self.login_params.password.encode("utf-8"), nonce.encode("utf-8")
        )
        try:
            hashed_password: str = password_hash.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolViolationError(
                f"Password hash is not valid UTF-8: {exc}", state=self.state
            ) from exc
        return self.login_params.password_replace(hashed_password)

    async def loginRequest_send(self, login_params: LoginParams) -> None:
        """
        Send `login` with the rendered parameters.

        Args:
            login_params:
                Parameters to render as the single request parameter.
        """
        request: RpcMessage = MessageBuilder.request_create(
            "", "login", login_params.rpcValue_render()
        )
        await message_send(self.writer, request)
        self.state_enter(HandshakeState.AWAITING_CLIENT_ID)

    async def loginResponse_receive(self) -> RpcMessage:
        """
        Wait for the mandatory `login` response.

        Returns:
            Broker response.

        Raises:
            TransportError:
                Raised when the stream ended first.
        """
        response: RpcMessage | None = await self.frame_reader.message_receive()
        if response is None:
            raise TransportError("socket closed", state=self.state)
        return response

    def clientId_extract(self, response: RpcMessage) -> int:
        """
        Extract the client id from a `login` response.

        Args:
            response:
                Broker response to `login`.

        Returns:
            Signed 32-bit client id, `0` when the broker assigned none.
        """
        self.response_check(response)
        client_id: object = response.result_map().get("clientId")
        if client_id is None:
            return 0
        if isinstance(client_id, bool) or not isinstance(client_id, int):
            raise ProtocolViolationError(
                f"Bad clientId: {client_id!r}", state=self.state
            )
        if not INT32_MIN <= client_id <= INT32_MAX:
            raise ProtocolViolationError(
                f"clientId out of int32 range: {client_id}", state=self.state
            )
        return client_id


async def login(
    frame_reader: FrameReader,
    writer: MessageWriter,
    login_params: LoginParams,
) -> int:
    """
    Log in to the broker over an open connection.

    Args:
        frame_reader:
            Source of broker responses.
        writer:
            Sink for client requests.
        login_params:
            Credentials and session options.

    Returns:
        Client id assigned by the broker, `0` when none was assigned.
    """
    return await LoginHandshake(frame_reader, writer, login_params).run()
