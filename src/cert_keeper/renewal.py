"""Decide whether the persisted certificate has to be (re)issued."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from cryptography import x509
from cryptography.x509.oid import NameOID

from cert_keeper.models import RenewalDecision
from cert_keeper.storage import CertificateStore

logger = logging.getLogger(__name__)

RENEWAL_THRESHOLD_DAYS = 30


def extract_domains(cert: x509.Certificate) -> list[str]:
    """Return the certificate's domains: common name first, then the remaining SANs."""
    domains: list[str] = []
    cn_attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    common_name = str(cn_attrs[0].value) if cn_attrs else ""
    if common_name:
        domains.append(common_name)

    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return domains
    for name in san.get_values_for_type(x509.DNSName):
        if name != common_name:
            domains.append(name)
    return domains


def check_renewal(
    store: CertificateStore,
    domains: Sequence[str],
    now: datetime | None = None,
) -> RenewalDecision:
    """Compare the stored certificate against the configured domains and expiry.

    Renewal is needed when no certificate exists, when its domains differ
    from ``domains`` in any way (including order), or when it expires in
    ``RENEWAL_THRESHOLD_DAYS`` days or fewer. StorageError propagates.
    """
    cert = store.load_certificate()
    if cert is None:
        logger.info("No certificate found in %s", store.storage_path)
        return RenewalDecision(needs_action=True)

    cert_domains = extract_domains(cert)
    if cert_domains != list(domains):
        logger.info("Certificate domains %s differ from configured domains %s", cert_domains, list(domains))
        return RenewalDecision(needs_action=True)

    now = now or datetime.now(UTC)
    days_remaining = int((cert.not_valid_after_utc - now).total_seconds() / 86400)
    if days_remaining > RENEWAL_THRESHOLD_DAYS:
        return RenewalDecision(needs_action=False, days_remaining=days_remaining)
    logger.info("Certificate expires in %d days, renewing", days_remaining)
    return RenewalDecision(needs_action=True)
