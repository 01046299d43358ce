"""Login parameters and their rendering into the RPC value model"""

import dataclasses
import hashlib
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional

from brokerlogin.common.types import LoginType

IDLE_WATCHDOG_FACTOR = 3
"""Idle watchdog timeout sent to the broker, in heartbeat intervals"""


def sha1Password_hash(password: bytes, nonce: bytes) -> bytes:
    """
    Derive the challenge response for SHA1 login

    Args:
        password: UTF-8 encoded password
        nonce: UTF-8 encoded nonce from the broker's hello response

    Returns:
        Lowercase hex SHA-1 digest of password followed by nonce, as ASCII bytes
    """
    digest = hashlib.sha1()
    digest.update(password)
    digest.update(nonce)
    return digest.hexdigest().encode("ascii")


@dataclass(frozen=True)
class LoginParams:
    """How to authenticate and how to present the session to the broker"""

    user: str = ""
    password: str = field(default="", repr=False)
    login_type: LoginType = LoginType.SHA1
    device_id: str = ""
    mount_point: str = ""  # Sent only when device_id is empty
    heartbeat_interval: Optional[timedelta] = timedelta(seconds=60)

    def password_replace(self, password: str) -> "LoginParams":
        """Copy of these parameters with a different password"""
        return dataclasses.replace(self, password=password)

    def rpcValue_render(self) -> Dict[str, Any]:
        """
        Render as the `login` request parameter

        Returns:
            Mapping with `login` credentials and `options`; options only
            carry keys for data that is actually present
        """
        login: Dict[str, Any] = {
            "user": self.user,
            "password": self.password,
            "type": self.login_type.wireName_get(),
        }

        options: Dict[str, Any] = {}
        if self.heartbeat_interval is not None:
            heartbeat_seconds = int(self.heartbeat_interval.total_seconds())
            options["idleWatchDogTimeOut"] = heartbeat_seconds * IDLE_WATCHDOG_FACTOR

        device: Dict[str, Any] = {}
        if self.device_id:
            device["deviceId"] = self.device_id
        elif self.mount_point:
            device["mountPoint"] = self.mount_point
        if device:
            options["device"] = device

        return {"login": login, "options": options}
