"""Abstract base class for DNS providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Self


class DnsProvider(ABC):
    """Interface for DNS providers that manage DNS-01 TXT records and host A records."""

    #: TTL of DNS-01 challenge TXT records
    challenge_ttl: int = 60
    #: TTL of A records kept pointed at this host
    address_ttl: int = 60

    def close(self) -> None:
        """Release resources. Override in subclasses that hold open connections."""

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @abstractmethod
    def create_txt_record(self, zone: str, record_name: str, values: Sequence[str]) -> None:
        """Create or replace a TXT record set for DNS-01 challenge validation.

        Args:
            zone: DNS zone name (e.g. "example.com").
            record_name: Relative record name within the zone (e.g. "_acme-challenge").
            values: Every TXT value the record set must hold.
        """

    @abstractmethod
    def delete_txt_record(self, zone: str, record_name: str) -> None:
        """Delete a TXT record set after DNS-01 challenge validation.

        Args:
            zone: DNS zone name (e.g. "example.com").
            record_name: Relative record name within the zone (e.g. "_acme-challenge").
        """

    @abstractmethod
    def upsert_a_record(self, zone: str, record_name: str, address: str) -> None:
        """Point an A record at ``address``, creating it if needed.

        Args:
            zone: DNS zone name (e.g. "example.com").
            record_name: Relative record name within the zone (e.g. "www").
            address: IPv4 address the record must resolve to.
        """
