"""
Broker connection URL parsing.

Accepted forms are `tcp://[user[:password]@]host[:port]` and
`localsocket:///path/to/socket` (`unix` is an alias of `localsocket`).
Credentials may also be given as `user` and `password` query parameters,
which take precedence over the userinfo part.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import parse_qs, unquote, urlsplit

from brokerlogin.common.types import Scheme

__all__ = ["ConnectionUrl", "connectionUrl_parse", "DEFAULT_PORT"]

DEFAULT_PORT = 3755

_SCHEME_ALIASES: dict[str, Scheme] = {
    "tcp": Scheme.TCP,
    "localsocket": Scheme.LOCAL_SOCKET,
    "unix": Scheme.LOCAL_SOCKET,
}


@dataclass(frozen=True)
class ConnectionUrl:
    """Parsed broker connection target"""

    scheme: Scheme
    host: str = ""
    port: int = DEFAULT_PORT
    path: str = ""
    user: str = ""
    password: str = field(default="", repr=False)

    def target_describe(self) -> str:
        """
        Describe the connection target for logs, without credentials.

        Returns:
            `host:port` for TCP, socket path for local sockets.
        """
        if self.scheme == Scheme.LOCAL_SOCKET:
            return self.path
        return f"{self.host}:{self.port}"


def connectionUrl_parse(url: str) -> ConnectionUrl:
    """
    Parse a broker connection URL.

    Args:
        url:
            Connection URL string.

    Returns:
        Parsed `ConnectionUrl`.

    Raises:
        ValueError:
            Raised when the scheme is unknown, a TCP URL has no host, a local
            socket URL has no path, or the port is invalid.
    """
    parts = urlsplit(url)
    scheme: Scheme | None = _SCHEME_ALIASES.get(parts.scheme.lower())
    if scheme is None:
        raise ValueError(f"Unsupported URL scheme: {parts.scheme!r}")

    query: dict[str, list[str]] = parse_qs(parts.query)
    user: str = query.get("user", [unquote(parts.username or "")])[0]
    password: str = query.get("password", [unquote(parts.password or "")])[0]

    if scheme == Scheme.LOCAL_SOCKET:
        path: str = unquote(parts.path)
        if not path:
            raise ValueError("Local socket URL must contain a socket path")
        return ConnectionUrl(scheme=scheme, path=path, user=user, password=password)

    if not parts.hostname:
        raise ValueError("TCP URL must contain a host")
    try:
        port: int | None = parts.port
    except ValueError as exc:
        raise ValueError(f"Invalid port number in URL: {url}") from exc

    return ConnectionUrl(
        scheme=scheme,
        host=parts.hostname,
        port=port if port is not None else DEFAULT_PORT,
        user=user,
        password=password,
    )
