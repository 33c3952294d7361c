"""DNS-01 challenge provider: publish TXT records through a DnsProvider."""

from __future__ import annotations

import logging
from collections import defaultdict

from acme import challenges

from cert_keeper.challenges.base import ChallengeProvider
from cert_keeper.dns.base import DnsProvider
from cert_keeper.dns.util import find_zone, split_record_name, wait_for_txt_record

logger = logging.getLogger(__name__)


class Dns01Provider(ChallengeProvider):
    """DNS-01 provider with per-provider propagation timeout and polling interval.

    A base domain and its wildcard share one validation name, so every
    value published under a name is tracked and the full set rewritten on
    each change.
    """

    challenge_type = challenges.DNS01

    def __init__(self, dns_provider: DnsProvider, propagation_timeout: float, polling_interval: float) -> None:
        self.dns_provider = dns_provider
        self.propagation_timeout = propagation_timeout
        self.polling_interval = polling_interval
        self._values: defaultdict[str, list[str]] = defaultdict(list)
        self._zones: dict[str, str] = {}

    def _zone_for(self, fqdn: str) -> str:
        if fqdn not in self._zones:
            self._zones[fqdn] = find_zone(fqdn)
        return self._zones[fqdn]

    def present(self, domain: str, chall: challenges.DNS01, validation: str) -> None:
        fqdn = chall.validation_domain_name(domain)
        zone, relative = split_record_name(fqdn, self._zone_for(fqdn))
        values = self._values[fqdn]
        values.append(validation)
        self.dns_provider.create_txt_record(zone, relative, list(values))
        logger.info("Presenting DNS-01 challenge for %s at %s", domain, fqdn)

    def wait(self, domain: str, chall: challenges.DNS01, validation: str) -> None:
        fqdn = chall.validation_domain_name(domain)
        wait_for_txt_record(
            fqdn,
            validation,
            self._zone_for(fqdn),
            timeout=self.propagation_timeout,
            interval=self.polling_interval,
        )

    def cleanup(self, domain: str, chall: challenges.DNS01, validation: str) -> None:
        fqdn = chall.validation_domain_name(domain)
        zone, relative = split_record_name(fqdn, self._zone_for(fqdn))
        values = self._values[fqdn]
        if validation in values:
            values.remove(validation)
        if values:
            self.dns_provider.create_txt_record(zone, relative, list(values))
        else:
            del self._values[fqdn]
            self.dns_provider.delete_txt_record(zone, relative)

    def close(self) -> None:
        self.dns_provider.close()
