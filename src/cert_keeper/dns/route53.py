"""AWS Route53 DNS provider: change record sets via boto3."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import boto3
from botocore.config import Config

from cert_keeper.dns.base import DnsProvider

logger = logging.getLogger(__name__)

_CLIENT_CONFIG = Config(
    retries={"max_attempts": 5},
    connect_timeout=30,
    read_timeout=30,
)


class Route53DnsProvider(DnsProvider):
    """DNS provider backed by AWS Route53 hosted zones."""

    challenge_ttl = 10
    address_ttl = 60

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str,
        hosted_zone_id: str | None = None,
        _client=None,
    ) -> None:
        self._hosted_zone_id = hosted_zone_id
        self._client = _client or boto3.client(
            "route53",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
            config=_CLIENT_CONFIG,
        )
        # DELETE must repeat the exact record set that was written
        self._txt_records: dict[str, list[dict[str, str]]] = {}

    def _zone_id(self, fqdn: str) -> str:
        """Return the configured hosted zone, or the most specific public zone containing ``fqdn``."""
        if self._hosted_zone_id:
            return self._hosted_zone_id

        target_labels = fqdn.rstrip(".").split(".")
        zones = []
        paginator = self._client.get_paginator("list_hosted_zones")
        for page in paginator.paginate():
            for zone in page["HostedZones"]:
                if zone["Config"]["PrivateZone"]:
                    continue
                candidate_labels = zone["Name"].rstrip(".").split(".")
                if candidate_labels == target_labels[-len(candidate_labels) :]:
                    zones.append((zone["Name"], zone["Id"]))

        if not zones:
            raise ValueError(f"Unable to find a Route53 hosted zone for '{fqdn}'")
        zones.sort(key=lambda z: len(z[0]), reverse=True)
        return zones[0][1]

    def _change(self, action: str, fqdn: str, record_type: str, ttl: int, records: list[dict[str, str]]) -> None:
        self._client.change_resource_record_sets(
            HostedZoneId=self._zone_id(fqdn),
            ChangeBatch={
                "Comment": f"cert-keeper {action} {record_type}",
                "Changes": [
                    {
                        "Action": action,
                        "ResourceRecordSet": {
                            "Name": fqdn,
                            "Type": record_type,
                            "TTL": ttl,
                            "ResourceRecords": records,
                        },
                    }
                ],
            },
        )

    def create_txt_record(self, zone: str, record_name: str, values: Sequence[str]) -> None:
        fqdn = f"{record_name}.{zone}"
        records = [{"Value": f'"{value}"'} for value in values]
        self._change("UPSERT", fqdn, "TXT", self.challenge_ttl, records)
        self._txt_records[fqdn] = records
        logger.info("Created TXT record %s in Route53", fqdn)

    def delete_txt_record(self, zone: str, record_name: str) -> None:
        fqdn = f"{record_name}.{zone}"
        records = self._txt_records.pop(fqdn, None)
        if not records:
            logger.warning("TXT record %s was not created by this run, skipping delete", fqdn)
            return
        self._change("DELETE", fqdn, "TXT", self.challenge_ttl, records)
        logger.info("Deleted TXT record %s from Route53", fqdn)

    def upsert_a_record(self, zone: str, record_name: str, address: str) -> None:
        fqdn = f"{record_name}.{zone}"
        self._change("UPSERT", fqdn, "A", self.address_ttl, [{"Value": address}])
        logger.info("Pointed A record %s at %s", fqdn, address)
