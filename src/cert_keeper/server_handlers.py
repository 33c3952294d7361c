"""HTTP server handlers: liveness probe and configuration reload."""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from cert_keeper.config import ServerHandlerType

logger = logging.getLogger(__name__)

_RELOAD_TIMEOUT = 30


class ServerHandler(ABC):
    """Interface for the HTTP server that serves the managed certificate."""

    name: str

    @abstractmethod
    def is_running(self) -> bool:
        """Return True when the server is currently serving traffic."""

    @abstractmethod
    def reload(self) -> None:
        """Ask the running server to pick up the new certificate.

        Raises on failure.
        """


class NullServerHandler(ServerHandler):
    """No server in front of this host: never running, nothing to reload."""

    name = "none"

    def is_running(self) -> bool:
        return False

    def reload(self) -> None:
        pass


class NginxServerHandler(ServerHandler):
    """nginx, detected through its pid file and reloaded with ``nginx -s reload``."""

    name = "nginx"

    def __init__(self, pid_file: str | Path = "/var/run/nginx.pid", binary: str = "nginx") -> None:
        self._pid_file = Path(pid_file)
        self._binary = binary

    def is_running(self) -> bool:
        return self._pid_file.exists()

    def reload(self) -> None:
        subprocess.run(
            [self._binary, "-s", "reload"],
            check=True,
            capture_output=True,
            timeout=_RELOAD_TIMEOUT,
        )
        logger.info("Reloaded nginx configuration")


def get_server_handler(handler_type: ServerHandlerType) -> ServerHandler:
    if handler_type is ServerHandlerType.NGINX:
        return NginxServerHandler()
    if handler_type is ServerHandlerType.NONE:
        return NullServerHandler()
    raise ValueError(f"Unsupported http server handler: '{handler_type}'")
