"""Tests for challenge provider selection."""

from unittest.mock import patch

import pytest
from conftest import make_config

from cert_keeper.challenges import select_challenge_provider
from cert_keeper.challenges.dns01 import Dns01Provider
from cert_keeper.challenges.http01 import Http01Provider


class TestSelectHttpProvider:
    @pytest.mark.parametrize("running", [True, False])
    def test_http_always_serves_port_80(self, running):
        provider = select_challenge_provider(make_config(provider_type="http"), running)

        assert isinstance(provider, Http01Provider)
        assert provider.port == 80
        assert provider.proxy_header is None

    def test_reverse_proxy_with_running_server_uses_upstream_port(self):
        config = make_config(provider_type="http_reverse_proxy", http_server_handler="nginx")

        provider = select_challenge_provider(config, server_running=True)

        assert isinstance(provider, Http01Provider)
        assert provider.port == 8888
        assert provider.proxy_header == "X-Forwarded-Host"

    def test_reverse_proxy_with_stopped_server_serves_port_80(self):
        config = make_config(provider_type="http_reverse_proxy", http_server_handler="nginx")

        provider = select_challenge_provider(config, server_running=False)

        assert provider.port == 80
        assert provider.proxy_header is None


class TestSelectDnsProvider:
    @patch("cert_keeper.challenges.get_dns_provider")
    def test_gandi_timings(self, mock_get_provider):
        config = make_config(provider_type="gandi", dns_client_secret="key")

        provider = select_challenge_provider(config, server_running=False)

        assert isinstance(provider, Dns01Provider)
        assert provider.dns_provider is mock_get_provider.return_value
        assert provider.propagation_timeout == 1200
        assert provider.polling_interval == 20

    @patch("cert_keeper.challenges.get_dns_provider")
    def test_route53_timings(self, mock_get_provider):
        config = make_config(
            provider_type="route53",
            dns_client_id="AKIA",
            dns_client_secret="secret",
            dns_region="us-east-1",
        )

        provider = select_challenge_provider(config, server_running=True)

        assert isinstance(provider, Dns01Provider)
        assert provider.propagation_timeout == 120
        assert provider.polling_interval == 4
