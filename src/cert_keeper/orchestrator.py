"""Certificate lifecycle orchestration.

One run moves through these stages, each depending on the previous one::

    dns-sync (only when the server is down and records are configured)
    renewal-check
    account -> challenge-provider -> issuance -> persistence -> reload

Any failure ends the run with a StageError naming the stage; nothing is
retried or rolled back. Repeated invocation by a scheduler is the retry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from cert_keeper.acme_client import AcmeClient
from cert_keeper.challenges import select_challenge_provider
from cert_keeper.challenges.base import ChallengeProvider
from cert_keeper.config import ValidatedConfig
from cert_keeper.errors import StageError
from cert_keeper.models import RunResult
from cert_keeper.renewal import RENEWAL_THRESHOLD_DAYS, check_renewal
from cert_keeper.server_handlers import ServerHandler
from cert_keeper.storage import CertificateStore
from cert_keeper.updater import DnsUpdater

_module_logger = logging.getLogger(__name__)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    try:
        yield
    except StageError:
        raise
    except Exception as exc:
        raise StageError(name, exc) from exc


class CertificateOrchestrator:
    """Drives one certificate lifecycle run for a validated configuration."""

    def __init__(
        self,
        config: ValidatedConfig,
        *,
        server_handler: ServerHandler,
        dns_updater: DnsUpdater,
        store: CertificateStore,
        acme_client_factory: Callable[[ValidatedConfig], AcmeClient] = AcmeClient.from_config,
        provider_selector: Callable[[ValidatedConfig, bool], ChallengeProvider] = select_challenge_provider,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.server_handler = server_handler
        self.dns_updater = dns_updater
        self.store = store
        self._acme_client_factory = acme_client_factory
        self._provider_selector = provider_selector
        self._log = logger or _module_logger

    def run(self) -> RunResult:
        config = self.config
        server_running = self.server_handler.is_running()
        self._log.info("http server %s is running: %s", self.server_handler.name, server_running)

        dns_updated = False
        if not server_running and config.dns_records:
            self._log.info("updating dns records: %s", [f"{r.name}.{r.domain}" for r in config.dns_records])
            with _stage("dns-sync"):
                self.dns_updater.update()
            dns_updated = True
            self._log.info("dns records updated")

        with _stage("renewal-check"):
            decision = check_renewal(self.store, config.domains)
        if not decision.needs_action:
            self._log.info(
                "certificate expires in %d days, threshold is %d days: no renewal.",
                decision.days_remaining,
                RENEWAL_THRESHOLD_DAYS,
            )
            return RunResult(renewed=False, days_remaining=decision.days_remaining, dns_updated=dns_updated)

        with _stage("account"):
            client = self._acme_client_factory(config)
            client.register(config.email)

        with _stage("challenge-provider"):
            provider = self._provider_selector(config, server_running)
            client.set_challenge_provider(provider)

        try:
            with _stage("issuance"):
                issued = client.obtain(config.domains)
        finally:
            self._close_provider(provider)

        with _stage("persistence"):
            self.store.save(issued)
        self._log.info("certificate renewed")

        reloaded = False
        # the server may have been started while this run was in progress
        if self.server_handler.is_running():
            self._log.info("reloading %s", self.server_handler.name)
            with _stage("reload"):
                self.server_handler.reload()
            reloaded = True

        return RunResult(renewed=True, dns_updated=dns_updated, reloaded=reloaded)

    def _close_provider(self, provider: ChallengeProvider) -> None:
        # best effort: an issued certificate must still reach persistence
        try:
            provider.close()
        except Exception as exc:  # noqa: BLE001
            self._log.warning("closing %s failed: %s", type(provider).__name__, exc)
