"""DNS provider factory: resolve the configured provider type to a concrete implementation."""

from __future__ import annotations

from cert_keeper.config import ProviderType, ValidatedConfig
from cert_keeper.dns.base import DnsProvider
from cert_keeper.dns.gandi import GandiDnsProvider
from cert_keeper.dns.route53 import Route53DnsProvider


def get_dns_provider(config: ValidatedConfig) -> DnsProvider:
    """Instantiate the DNS provider selected by ``config.provider_type``.

    Credentials were already checked by ``validate_config``.
    """
    if config.provider_type is ProviderType.GANDI:
        return GandiDnsProvider(api_key=config.dns_client_secret)

    if config.provider_type is ProviderType.ROUTE53:
        return Route53DnsProvider(
            access_key_id=config.dns_client_id,
            secret_access_key=config.dns_client_secret,
            region=config.dns_region,
            hosted_zone_id=config.dns_hosted_zone_id,
        )

    raise ValueError(f"Provider type '{config.provider_type}' does not use a DNS provider")
