"""Common types for brokerlogin"""

from enum import Enum


class LoginType(Enum):
    """Password transmission mode for the login request"""
    PLAIN = "PLAIN"
    SHA1 = "SHA1"

    def wireName_get(self) -> str:
        """Return the string sent in the login `type` field"""
        return self.value


class Scheme(Enum):
    """Transport schemes accepted in a connection URL"""
    TCP = "tcp"
    LOCAL_SOCKET = "localsocket"
