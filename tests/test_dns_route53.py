"""Tests for Route53 DNS provider."""

from unittest.mock import MagicMock, patch

import pytest

from cert_keeper.dns.route53 import Route53DnsProvider


def _client_with_zones(*zones):
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [{"HostedZones": list(zones)}]
    return client


def _zone(name, zone_id, private=False):
    return {"Name": name, "Id": zone_id, "Config": {"PrivateZone": private}}


def _change_batch(client, index=0):
    return client.change_resource_record_sets.call_args_list[index].kwargs


class TestRoute53ZoneLookup:
    def test_picks_most_specific_public_zone(self):
        client = _client_with_zones(
            _zone("example.com.", "Z-PARENT"),
            _zone("sub.example.com.", "Z-CHILD"),
            _zone("sub.example.com.", "Z-PRIVATE", private=True),
            _zone("other.com.", "Z-OTHER"),
        )
        provider = Route53DnsProvider("id", "secret", "us-east-1", _client=client)

        assert provider._zone_id("_acme-challenge.www.sub.example.com") == "Z-CHILD"
        client.get_paginator.assert_called_once_with("list_hosted_zones")

    def test_label_boundaries_are_respected(self):
        client = _client_with_zones(_zone("ample.com.", "Z-WRONG"))
        provider = Route53DnsProvider("id", "secret", "us-east-1", _client=client)

        with pytest.raises(ValueError, match="Unable to find a Route53 hosted zone for 'www.example.com'"):
            provider._zone_id("www.example.com")

    def test_configured_zone_skips_lookup(self):
        client = MagicMock()
        provider = Route53DnsProvider("id", "secret", "us-east-1", hosted_zone_id="Z-FIXED", _client=client)

        assert provider._zone_id("www.example.com") == "Z-FIXED"
        client.get_paginator.assert_not_called()


class TestRoute53TxtRecords:
    def test_create_upserts_quoted_values(self):
        client = MagicMock()
        provider = Route53DnsProvider("id", "secret", "us-east-1", hosted_zone_id="Z1", _client=client)

        provider.create_txt_record("example.com", "_acme-challenge", ["v1", "v2"])

        kwargs = _change_batch(client)
        assert kwargs["HostedZoneId"] == "Z1"
        change = kwargs["ChangeBatch"]["Changes"][0]
        assert change["Action"] == "UPSERT"
        assert change["ResourceRecordSet"] == {
            "Name": "_acme-challenge.example.com",
            "Type": "TXT",
            "TTL": 10,
            "ResourceRecords": [{"Value": '"v1"'}, {"Value": '"v2"'}],
        }

    def test_delete_repeats_written_record_set(self):
        client = MagicMock()
        provider = Route53DnsProvider("id", "secret", "us-east-1", hosted_zone_id="Z1", _client=client)
        provider.create_txt_record("example.com", "_acme-challenge", ["v1"])

        provider.delete_txt_record("example.com", "_acme-challenge")

        change = _change_batch(client, 1)["ChangeBatch"]["Changes"][0]
        assert change["Action"] == "DELETE"
        assert change["ResourceRecordSet"]["ResourceRecords"] == [{"Value": '"v1"'}]

    def test_delete_unknown_record_is_skipped(self):
        client = MagicMock()
        provider = Route53DnsProvider("id", "secret", "us-east-1", hosted_zone_id="Z1", _client=client)

        provider.delete_txt_record("example.com", "_acme-challenge")

        client.change_resource_record_sets.assert_not_called()


class TestRoute53ARecord:
    def test_upsert_uses_name_then_domain(self):
        client = MagicMock()
        provider = Route53DnsProvider("id", "secret", "us-east-1", hosted_zone_id="Z1", _client=client)

        provider.upsert_a_record("example.com", "www", "203.0.113.7")

        change = _change_batch(client)["ChangeBatch"]["Changes"][0]
        assert change["Action"] == "UPSERT"
        assert change["ResourceRecordSet"] == {
            "Name": "www.example.com",
            "Type": "A",
            "TTL": 60,
            "ResourceRecords": [{"Value": "203.0.113.7"}],
        }


class TestRoute53Client:
    @patch("cert_keeper.dns.route53.boto3.client")
    def test_builds_client_from_credentials(self, mock_boto_client):
        Route53DnsProvider("AKIA", "secret", "eu-west-3")

        args, kwargs = mock_boto_client.call_args
        assert args == ("route53",)
        assert kwargs["aws_access_key_id"] == "AKIA"
        assert kwargs["aws_secret_access_key"] == "secret"
        assert kwargs["region_name"] == "eu-west-3"
