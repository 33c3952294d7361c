"""HTTP-01 challenge provider: serve key authorizations from a standalone HTTP server."""

from __future__ import annotations

import collections
import functools
import http.client as http_client
import logging
from typing import Any

from acme import challenges, standalone

from cert_keeper.challenges.base import ChallengeProvider

logger = logging.getLogger(__name__)

_Resource = collections.namedtuple("_Resource", "domain chall validation")


def _normalize_host(value: str | None) -> str:
    """Lower-case a Host-style header value and drop any port."""
    if not value:
        return ""
    # X-Forwarded-Host may list several hops; the first is the client's
    host = value.split(",")[0].strip()
    return host.rsplit(":", 1)[0].lower() if ":" in host else host.lower()


class _ChallengeRequestHandler(standalone.HTTP01RequestHandler):
    """Serves a key authorization only to requests addressed to its domain."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        # the base constructor handles the request, so read our kwargs first
        self.host_header = kwargs.pop("host_header")
        super().__init__(*args, **kwargs)

    def handle_simple_http_resource(self) -> None:
        host = _normalize_host(self.headers.get(self.host_header))
        for resource in tuple(self.simple_http_resources):
            if resource.chall.path == self.path and resource.domain.lower() == host:
                self.log_message("Serving HTTP01 with token %r for %s", resource.chall.encode("token"), host)
                self.send_response(http_client.OK)
                self.send_header("Content-Type", "text/plain")
                self.end_headers()
                self.wfile.write(resource.validation.encode())
                return
        self.log_message("%s for host %r does not correspond to any resource", self.path, host)
        self.handle_404()


class _ChallengeServer(standalone.HTTPServer, standalone.ACMEServerMixin):
    def __init__(
        self,
        server_address: tuple[str, int],
        resources: set[_Resource],
        host_header: str,
        ipv6: bool = False,
        timeout: int = 30,
    ) -> None:
        handler = functools.partial(
            _ChallengeRequestHandler,
            simple_http_resources=resources,
            timeout=timeout,
            host_header=host_header,
        )
        standalone.HTTPServer.__init__(self, server_address, handler, ipv6=ipv6)


class Http01Provider(ChallengeProvider):
    """HTTP-01 provider bound to ``port`` on all interfaces.

    When ``proxy_header`` is set the request's host is read from that
    header (e.g. ``X-Forwarded-Host``) instead of ``Host``, for use behind a
    reverse proxy that forwards ``/.well-known/acme-challenge/`` here.
    """

    challenge_type = challenges.HTTP01

    def __init__(self, port: int = 80, proxy_header: str | None = None, address: str = "") -> None:
        self.port = port
        self.proxy_header = proxy_header
        self._address = address
        self._resources: set[_Resource] = set()
        self._servers: standalone.BaseDualNetworkedServers | None = None

    @property
    def bound_port(self) -> int | None:
        """Port actually bound, or None before the first ``present``."""
        if self._servers is None:
            return None
        return self._servers.getsocknames()[0][1]

    def _start(self) -> None:
        self._servers = standalone.BaseDualNetworkedServers(
            _ChallengeServer,
            (self._address, self.port),
            self._resources,
            self.proxy_header or "Host",
        )
        self._servers.serve_forever()
        logger.info("Serving HTTP-01 challenges on port %d", self.bound_port)

    def present(self, domain: str, chall: challenges.HTTP01, validation: str) -> None:
        if self._servers is None:
            self._start()
        self._resources.add(_Resource(domain, chall, validation))
        logger.info("Presenting HTTP-01 challenge for %s", domain)

    def cleanup(self, domain: str, chall: challenges.HTTP01, validation: str) -> None:
        self._resources.discard(_Resource(domain, chall, validation))

    def close(self) -> None:
        """Stop the HTTP servers, if they were started."""
        if self._servers is not None:
            self._servers.shutdown_and_server_close()
            self._servers = None
            logger.info("Stopped HTTP-01 challenge server")
