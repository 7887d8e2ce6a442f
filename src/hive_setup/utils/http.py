from __future__ import annotations

import logging
import socket
from urllib.parse import urlparse

import requests


class HttpProbe:
    """Short-timeout HTTP and TCP reachability checks for local services."""

    def __init__(self, timeout: float = 2.0, logger: logging.Logger | None = None) -> None:
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)

    def status(self, url: str) -> int | None:
        try:
            response = requests.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            self._logger.debug("GET %s failed: %s", url, exc)
            return None
        response.close()
        return response.status_code

    def is_healthy(self, url: str) -> bool:
        return self.status(url) == 200

    def tcp_open(self, host: str, port: int) -> bool:
        try:
            with socket.create_connection((host, port), timeout=self._timeout):
                return True
        except OSError:
            return False


def host_port(url: str) -> tuple[str, int]:
    parsed = urlparse(url)
    default_port = 443 if parsed.scheme == "https" else 80
    return parsed.hostname or "localhost", parsed.port or default_port
