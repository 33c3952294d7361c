"""Gandi DNS provider: manage records via the Gandi LiveDNS v5 REST API."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from cert_keeper.dns.base import DnsProvider

logger = logging.getLogger(__name__)

_API_BASE = "https://dns.api.gandi.net/api/v5"


class GandiDnsProvider(DnsProvider):
    """DNS provider backed by Gandi LiveDNS."""

    # minimum TTL accepted by LiveDNS
    challenge_ttl = 300
    address_ttl = 300

    def __init__(
        self,
        api_key: str,
        _http_client: httpx.Client | None = None,
    ) -> None:
        self._client = _http_client or httpx.Client(
            headers={"X-Api-Key": api_key},
            timeout=30,
        )

    @staticmethod
    def _rrset_url(zone: str, record_name: str, record_type: str) -> str:
        return f"{_API_BASE}/domains/{zone}/records/{record_name}/{record_type}"

    def _put_rrset(self, zone: str, record_name: str, record_type: str, ttl: int, values: list[str]) -> None:
        resp = self._client.put(
            self._rrset_url(zone, record_name, record_type),
            json={"rrset_ttl": ttl, "rrset_values": values},
        )
        resp.raise_for_status()

    def create_txt_record(self, zone: str, record_name: str, values: Sequence[str]) -> None:
        self._put_rrset(zone, record_name, "TXT", self.challenge_ttl, list(values))
        logger.info("Created TXT record %s.%s in Gandi", record_name, zone)

    def delete_txt_record(self, zone: str, record_name: str) -> None:
        resp = self._client.delete(self._rrset_url(zone, record_name, "TXT"))
        if resp.status_code == httpx.codes.NOT_FOUND:
            logger.warning("TXT record %s.%s not found in Gandi, skipping delete", record_name, zone)
            return
        resp.raise_for_status()
        logger.info("Deleted TXT record %s.%s from Gandi", record_name, zone)

    def upsert_a_record(self, zone: str, record_name: str, address: str) -> None:
        self._put_rrset(zone, record_name, "A", self.address_ttl, [address])
        logger.info("Pointed A record %s.%s at %s", record_name, zone, address)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()
