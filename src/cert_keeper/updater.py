"""Keep DNS A records pointed at this host's current public address."""

from __future__ import annotations

import ipaddress
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

import httpx

from cert_keeper.config import DnsRecord, ValidatedConfig
from cert_keeper.dns import get_dns_provider
from cert_keeper.dns.base import DnsProvider

logger = logging.getLogger(__name__)

PUBLIC_IP_URL = "https://ifconfig.me/ip"


def fetch_public_ip(http_client: httpx.Client, url: str = PUBLIC_IP_URL) -> str:
    """Ask an address-discovery service for this host's public IPv4 address."""
    resp = http_client.get(url)
    resp.raise_for_status()
    text = resp.text.strip()
    try:
        address = ipaddress.ip_address(text)
    except ValueError:
        raise ValueError(f"{url} returned an invalid address: {text!r}") from None
    if not isinstance(address, ipaddress.IPv4Address):
        raise ValueError(f"{url} returned {text}, an A record needs an IPv4 address")
    return str(address)


class DnsUpdater(ABC):
    """Interface for pointing the configured records at this host."""

    @abstractmethod
    def update(self) -> None:
        """Update every record, raising on the first failure."""


class NullDnsUpdater(DnsUpdater):
    """Used when no DNS provider or no records are configured."""

    def update(self) -> None:
        logger.debug("No DNS provider configured, nothing to update")


class ProviderDnsUpdater(DnsUpdater):
    """Upserts each configured A record through a DnsProvider."""

    def __init__(
        self,
        provider: DnsProvider,
        records: Sequence[DnsRecord],
        _http_client: httpx.Client | None = None,
    ) -> None:
        self._provider = provider
        self._records = tuple(records)
        self._http_client = _http_client or httpx.Client(timeout=httpx.Timeout(30.0))

    def update(self) -> None:
        with self._provider as provider:
            try:
                address = fetch_public_ip(self._http_client)
            finally:
                self._http_client.close()
            logger.info("Public address is %s", address)
            # first failure aborts the rest of the batch
            for record in self._records:
                provider.upsert_a_record(record.domain, record.name, address)


def get_dns_updater(config: ValidatedConfig) -> DnsUpdater:
    if not config.provider_type.is_dns or not config.dns_records:
        return NullDnsUpdater()
    return ProviderDnsUpdater(get_dns_provider(config), config.dns_records)
