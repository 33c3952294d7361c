"""ACME protocol operations: account registration, challenge handling, certificate issuance."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

import josepy
from acme import challenges, crypto_util, messages
from acme.client import ClientNetwork, ClientV2
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from cert_keeper.challenges.base import ChallengeProvider
from cert_keeper.config import KeyType, ValidatedConfig
from cert_keeper.models import Account, IssuedCertificate

logger = logging.getLogger(__name__)

_USER_AGENT = "cert-keeper"
_NETWORK_TIMEOUT = 30
_ORDER_DEADLINE_SECONDS = 180

_RSA_KEY_SIZES = {
    KeyType.RSA2048: 2048,
    KeyType.RSA4096: 4096,
    KeyType.RSA8192: 8192,
}

_SIGNING_ALGORITHMS = {
    KeyType.EC256: josepy.ES256,
    KeyType.EC384: josepy.ES384,
}


def generate_private_key(key_type: KeyType) -> ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey:
    """Generate a fresh private key of the configured type."""
    if key_type is KeyType.EC256:
        return ec.generate_private_key(ec.SECP256R1())
    if key_type is KeyType.EC384:
        return ec.generate_private_key(ec.SECP384R1())
    return rsa.generate_private_key(public_exponent=65537, key_size=_RSA_KEY_SIZES[key_type])


def _wrap_key(key: ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey) -> josepy.JWK:
    """Wrap a private key as a JWK for signing ACME requests."""
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return josepy.JWKEC(key=key)
    return josepy.JWKRSA(key=key)


def _private_key_pem(key: ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def _build_client(directory_url: str, account_key: josepy.JWK, alg: josepy.JWASignature) -> ClientV2:
    """Construct a ClientV2 instance bound to ``account_key``."""
    net = ClientNetwork(account_key, alg=alg, user_agent=_USER_AGENT, timeout=_NETWORK_TIMEOUT)
    directory = ClientV2.get_directory(directory_url, net)
    return ClientV2(directory, net=net)


@dataclass(frozen=True)
class _PendingChallenge:
    domain: str
    challb: messages.ChallengeBody
    response: challenges.ChallengeResponse
    validation: str


def _select_challenge(
    authz: messages.AuthorizationResource,
    challenge_type: type[challenges.Challenge],
) -> messages.ChallengeBody:
    """Return the challenge of ``challenge_type`` offered by the authorization."""
    domain = authz.body.identifier.value
    for challb in authz.body.challenges:
        if isinstance(challb.chall, challenge_type):
            return challb
    raise ValueError(f"No {challenge_type.typ} challenge found for domain {domain}")


class AcmeClient:
    """Registers a fresh account and obtains one certificate through one challenge provider.

    Instances are single-use: ``register``, then ``set_challenge_provider``,
    then ``obtain``.
    """

    def __init__(self, directory_url: str, key_type: KeyType) -> None:
        self.directory_url = directory_url
        self.key_type = key_type
        self._client: ClientV2 | None = None
        self._account: Account | None = None
        self._provider: ChallengeProvider | None = None

    @classmethod
    def from_config(cls, config: ValidatedConfig) -> AcmeClient:
        return cls(config.acme_directory_url, config.key_type)

    @property
    def account(self) -> Account | None:
        return self._account

    def register(self, email: str) -> Account:
        """Generate a new account key and register it with the CA.

        Accounts are never reused: each run registers a new key.
        """
        key = _wrap_key(generate_private_key(self.key_type))
        account = Account(email=email, key=key)
        alg = _SIGNING_ALGORITHMS.get(self.key_type, josepy.RS256)

        client = _build_client(self.directory_url, key, alg)
        regr = client.new_account(
            messages.NewRegistration.from_data(email=email, terms_of_service_agreed=True),
        )
        self._client = client
        self._account = replace(account, registration=regr)
        logger.info("Registered new ACME account %s", regr.uri)
        return self._account

    def set_challenge_provider(self, provider: ChallengeProvider) -> None:
        """Bind the provider used for every authorization. Only one is allowed."""
        if self._provider is not None:
            raise RuntimeError(
                f"A {self._provider.challenge_type.typ} provider is already set for this client",
            )
        self._provider = provider
        logger.info("Using %s challenge provider %s", provider.challenge_type.typ, type(provider).__name__)

    def obtain(self, domains: Sequence[str], deadline_seconds: int = _ORDER_DEADLINE_SECONDS) -> IssuedCertificate:
        """Order a certificate for ``domains`` and return the full chain with its new key.

        Every challenge that was presented is cleaned up, whether or not
        validation succeeded.
        """
        if self._client is None or self._account is None:
            raise RuntimeError("register() must succeed before obtain()")
        if self._provider is None:
            raise RuntimeError("set_challenge_provider() must be called before obtain()")

        private_key_pem = _private_key_pem(generate_private_key(self.key_type))
        csr_pem = crypto_util.make_csr(private_key_pem, list(domains))
        order = self._client.new_order(csr_pem)
        logger.info("Created ACME order %s for %s", order.uri, list(domains))

        presented: list[_PendingChallenge] = []
        try:
            for authz in order.authorizations:
                if authz.body.status == messages.STATUS_VALID:
                    logger.info("Authorization for %s is already valid", authz.body.identifier.value)
                    continue
                challb = _select_challenge(authz, self._provider.challenge_type)
                response, validation = challb.response_and_validation(self._account.key)
                pending = _PendingChallenge(authz.body.identifier.value, challb, response, validation)
                self._provider.present(pending.domain, challb.chall, validation)
                presented.append(pending)

            for pending in presented:
                self._provider.wait(pending.domain, pending.challb.chall, pending.validation)

            # the deadline starts after propagation so polling gets the full window
            deadline = datetime.datetime.now() + datetime.timedelta(seconds=deadline_seconds)
            for pending in presented:
                self._client.answer_challenge(pending.challb, pending.response)
                logger.info("Answered %s challenge for %s", pending.challb.chall.typ, pending.domain)

            logger.info("Polling for %d authorization(s), deadline in %d seconds", len(presented), deadline_seconds)
            finalized = self._client.poll_and_finalize(order, deadline)
            logger.info("Order finalized: %s", order.uri)
        finally:
            self._cleanup(presented)

        fullchain_pem = finalized.fullchain_pem
        return IssuedCertificate(
            domain=domains[0],
            certificate_pem=fullchain_pem.encode() if isinstance(fullchain_pem, str) else fullchain_pem,
            private_key_pem=private_key_pem,
        )

    def _cleanup(self, presented: list[_PendingChallenge]) -> None:
        for pending in presented:
            # best effort: the issuance outcome takes precedence
            try:
                self._provider.cleanup(pending.domain, pending.challb.chall, pending.validation)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Cleanup of %s challenge for %s failed: %s", pending.challb.chall.typ, pending.domain, exc)
