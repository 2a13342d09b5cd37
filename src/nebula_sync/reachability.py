from __future__ import annotations

import logging
import socket
from typing import Protocol
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class Reachability(Protocol):
    def is_online(self) -> bool: ...


class StaticReachability:
    """Fixed answer; used for forced offline mode and in tests."""

    def __init__(self, online: bool = True) -> None:
        self.online = online

    def is_online(self) -> bool:
        return self.online


class SocketReachability:
    """Considers the backend reachable if a TCP connection to its host opens."""

    def __init__(self, url: str, timeout: float = 2.0) -> None:
        parsed = urlparse(url)
        self.host = parsed.hostname or ""
        self.port = parsed.port or (443 if parsed.scheme == "https" else 80)
        self.timeout = timeout

    def is_online(self) -> bool:
        if not self.host:
            return False
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except OSError as e:
            logger.debug("Backend %s:%s unreachable: %s", self.host, self.port, e)
            return False
