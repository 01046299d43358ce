"""Exception taxonomy for login handshake and configuration bootstrap"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from brokerlogin.client.handshake import HandshakeState


class BrokerLoginError(Exception):
    """Base class for all brokerlogin failures"""


class HandshakeError(BrokerLoginError):
    """
    Login handshake failure.

    Attributes:
        state:
            Handshake state in which the failure occurred, or `None` when
            raised outside the handshake engine.
    """

    def __init__(self, message: str, state: Optional["HandshakeState"] = None) -> None:
        super().__init__(message)
        self.state: Optional["HandshakeState"] = state


class TransportError(HandshakeError):
    """Send/receive failed, or the peer closed a stream that owed us a response"""


class ProtocolViolationError(HandshakeError):
    """A response was structurally wrong for the request it answers"""


class AuthenticationRejectedError(HandshakeError):
    """
    The broker returned an error response to `hello` or `login`.

    The exception text is the broker's error payload in compact form, kept
    verbatim for diagnostics.
    """

    def __init__(
        self,
        message: str,
        error: Any = None,
        state: Optional["HandshakeState"] = None,
    ) -> None:
        super().__init__(message, state)
        self.error: Any = error


class ConfigError(BrokerLoginError):
    """Config file could not be read, parsed, or written"""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path: Path = path
