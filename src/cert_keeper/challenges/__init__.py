"""Challenge provider selection.

Which provider is bound depends on the configured provider type and, for
``http_reverse_proxy``, on whether the fronting HTTP server is running right
now: a running server owns port 80 and forwards challenge requests to the
upstream port, a stopped one leaves port 80 free to be served directly.
"""

from __future__ import annotations

from cert_keeper.challenges.base import ChallengeProvider
from cert_keeper.challenges.dns01 import Dns01Provider
from cert_keeper.challenges.http01 import Http01Provider
from cert_keeper.config import ProviderType, ValidatedConfig
from cert_keeper.dns import get_dns_provider

HTTP_PORT = 80
UPSTREAM_PORT = 8888
FORWARDED_HOST_HEADER = "X-Forwarded-Host"

# (propagation timeout, polling interval) in seconds
_DNS_TIMINGS = {
    ProviderType.GANDI: (20 * 60, 20),
    ProviderType.ROUTE53: (2 * 60, 4),
}


def select_challenge_provider(config: ValidatedConfig, server_running: bool) -> ChallengeProvider:
    """Build the single challenge provider used for this run."""
    provider_type = config.provider_type

    if provider_type in (ProviderType.HTTP, ProviderType.HTTP_REVERSE_PROXY):
        if provider_type is ProviderType.HTTP_REVERSE_PROXY and server_running:
            return Http01Provider(port=UPSTREAM_PORT, proxy_header=FORWARDED_HOST_HEADER)
        return Http01Provider(port=HTTP_PORT)

    if provider_type in _DNS_TIMINGS:
        timeout, interval = _DNS_TIMINGS[provider_type]
        return Dns01Provider(get_dns_provider(config), propagation_timeout=timeout, polling_interval=interval)

    raise ValueError(f"Unsupported provider type: '{provider_type}'")
