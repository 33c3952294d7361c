"""Data classes passed between the stages of a renewal run."""

from __future__ import annotations

from dataclasses import dataclass

import josepy
from acme import messages


@dataclass(frozen=True)
class Account:
    """ACME account used for a single run.

    ``registration`` stays ``None`` until the CA accepted the account.
    """

    email: str
    key: josepy.JWK
    registration: messages.RegistrationResource | None = None

    @property
    def uri(self) -> str | None:
        return self.registration.uri if self.registration else None


@dataclass(frozen=True)
class IssuedCertificate:
    """Certificate returned by the CA, ready to be persisted."""

    domain: str
    certificate_pem: bytes
    private_key_pem: bytes


@dataclass(frozen=True)
class RenewalDecision:
    """Outcome of inspecting the persisted certificate.

    ``days_remaining`` is only meaningful when no action is needed.
    """

    needs_action: bool
    days_remaining: int = 0


@dataclass(frozen=True)
class RunResult:
    """Summary of one orchestrator run."""

    renewed: bool
    days_remaining: int = 0
    dns_updated: bool = False
    reloaded: bool = False
