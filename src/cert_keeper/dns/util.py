"""DNS utility functions: zone discovery and propagation checks."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import dns.exception
import dns.resolver

from cert_keeper.errors import PropagationTimeout

logger = logging.getLogger(__name__)


def find_zone(fqdn: str) -> str:
    """Return the name of the zone that is authoritative for ``fqdn``."""
    return dns.resolver.zone_for_name(fqdn).to_text(omit_final_dot=True)


def split_record_name(fqdn: str, zone: str) -> tuple[str, str]:
    """Split an FQDN into (zone, relative_record_name).

    Args:
        fqdn: Fully qualified record name (e.g. "_acme-challenge.www.example.com").
        zone: Zone that contains the record (e.g. "example.com").

    Returns:
        Tuple of (zone, relative_name), e.g. ("example.com", "_acme-challenge.www").
    """
    fqdn = fqdn.rstrip(".")
    zone = zone.rstrip(".")
    suffix = f".{zone}"
    if not fqdn.endswith(suffix):
        raise ValueError(f"Record '{fqdn}' is not under zone '{zone}'")
    return zone, fqdn.removesuffix(suffix)


def authoritative_resolver(zone: str) -> dns.resolver.Resolver:
    """Build a resolver that queries the zone's authoritative nameservers directly.

    Recursive resolvers may cache the answer from before the record existed.
    """
    nameservers: list[str] = []
    for ns in dns.resolver.resolve(zone, "NS"):
        for address in dns.resolver.resolve(ns.target, "A"):
            nameservers.append(address.address)
    if not nameservers:
        raise ValueError(f"No nameservers found for zone '{zone}'")
    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = nameservers
    return resolver


def txt_values(resolver: dns.resolver.Resolver, fqdn: str) -> list[str]:
    """Return the TXT values currently published for ``fqdn``."""
    try:
        answer = resolver.resolve(fqdn, "TXT")
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return []
    return [b"".join(rdata.strings).decode() for rdata in answer]


def wait_for_txt_record(
    fqdn: str,
    value: str,
    zone: str,
    timeout: float,
    interval: float,
    _resolver: dns.resolver.Resolver | None = None,
    _sleep: Callable[[float], None] = time.sleep,
    _clock: Callable[[], float] = time.monotonic,
) -> None:
    """Poll the zone's nameservers until ``fqdn`` publishes ``value``.

    Raises PropagationTimeout when the value is still missing after ``timeout`` seconds.
    """
    resolver = _resolver or authoritative_resolver(zone)
    deadline = _clock() + timeout
    while True:
        try:
            if value in txt_values(resolver, fqdn):
                logger.info("TXT record %s is visible", fqdn)
                return
        except dns.exception.DNSException as exc:
            logger.debug("Lookup of %s failed: %s", fqdn, exc)
        if _clock() >= deadline:
            raise PropagationTimeout(f"TXT record {fqdn} not visible after {timeout:.0f} seconds")
        _sleep(interval)
