"""Tests for DNS utility functions."""

from unittest.mock import MagicMock, patch

import dns.exception
import dns.resolver
import pytest

from cert_keeper.dns.util import find_zone, split_record_name, txt_values, wait_for_txt_record
from cert_keeper.errors import PropagationTimeout


def _txt_rdata(*strings: bytes):
    rdata = MagicMock()
    rdata.strings = strings
    return rdata


class TestSplitRecordName:
    def test_apex_challenge(self):
        zone, relative = split_record_name("_acme-challenge.example.com", "example.com")
        assert zone == "example.com"
        assert relative == "_acme-challenge"

    def test_subdomain_in_parent_zone(self):
        zone, relative = split_record_name("_acme-challenge.www.example.com", "example.com")
        assert zone == "example.com"
        assert relative == "_acme-challenge.www"

    def test_deep_subdomain(self):
        zone, relative = split_record_name("_acme-challenge.a.b.example.com", "b.example.com")
        assert zone == "b.example.com"
        assert relative == "_acme-challenge.a"

    def test_trailing_dots_ignored(self):
        zone, relative = split_record_name("_acme-challenge.example.com.", "example.com.")
        assert zone == "example.com"
        assert relative == "_acme-challenge"

    def test_record_name_not_under_zone_raises(self):
        with pytest.raises(ValueError, match="not under zone"):
            split_record_name("_acme-challenge.other.com", "example.com")


class TestFindZone:
    @patch("dns.resolver.zone_for_name")
    def test_returns_zone_without_trailing_dot(self, mock_zone_for_name):
        mock_zone_for_name.return_value = dns.name.from_text("example.com")

        assert find_zone("_acme-challenge.www.example.com") == "example.com"
        mock_zone_for_name.assert_called_once_with("_acme-challenge.www.example.com")


class TestTxtValues:
    def test_joins_character_strings(self):
        resolver = MagicMock()
        resolver.resolve.return_value = [_txt_rdata(b"abc", b"def"), _txt_rdata(b"xyz")]

        assert txt_values(resolver, "_acme-challenge.example.com") == ["abcdef", "xyz"]
        resolver.resolve.assert_called_once_with("_acme-challenge.example.com", "TXT")

    @pytest.mark.parametrize("error", [dns.resolver.NXDOMAIN, dns.resolver.NoAnswer])
    def test_missing_record_returns_empty(self, error):
        resolver = MagicMock()
        resolver.resolve.side_effect = error()

        assert txt_values(resolver, "_acme-challenge.example.com") == []


class TestWaitForTxtRecord:
    def test_returns_once_value_is_visible(self):
        resolver = MagicMock()
        resolver.resolve.side_effect = [dns.resolver.NXDOMAIN(), [_txt_rdata(b"other")], [_txt_rdata(b"token")]]
        sleeps = []

        wait_for_txt_record(
            "_acme-challenge.example.com",
            "token",
            "example.com",
            timeout=60,
            interval=5,
            _resolver=resolver,
            _sleep=sleeps.append,
            _clock=lambda: 0,
        )

        assert sleeps == [5, 5]

    def test_lookup_errors_are_retried(self):
        resolver = MagicMock()
        resolver.resolve.side_effect = [dns.exception.Timeout(), [_txt_rdata(b"token")]]

        wait_for_txt_record(
            "_acme-challenge.example.com",
            "token",
            "example.com",
            timeout=60,
            interval=1,
            _resolver=resolver,
            _sleep=lambda _: None,
            _clock=lambda: 0,
        )

        assert resolver.resolve.call_count == 2

    def test_raises_after_timeout(self):
        resolver = MagicMock()
        resolver.resolve.return_value = []
        ticks = iter([0, 10, 20, 30])

        with pytest.raises(PropagationTimeout, match="not visible after 25 seconds"):
            wait_for_txt_record(
                "_acme-challenge.example.com",
                "token",
                "example.com",
                timeout=25,
                interval=10,
                _resolver=resolver,
                _sleep=lambda _: None,
                _clock=lambda: next(ticks),
            )

    @patch("cert_keeper.dns.util.authoritative_resolver")
    def test_queries_authoritative_servers_by_default(self, mock_auth):
        mock_auth.return_value.resolve.return_value = [_txt_rdata(b"token")]

        wait_for_txt_record("_acme-challenge.example.com", "token", "example.com", timeout=1, interval=1)

        mock_auth.assert_called_once_with("example.com")
