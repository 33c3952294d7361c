"""Shared test fixtures for cert-keeper."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from cert_keeper.config import AppConfig, DnsRecord, validate_config

NOW = datetime(2026, 1, 1, tzinfo=UTC)


def make_certificate_pem(
    domains: list[str],
    not_after: datetime,
    common_name: str | None = None,
) -> bytes:
    """Build a self-signed certificate; CN defaults to the first domain."""
    key = ec.generate_private_key(ec.SECP256R1())
    cn = domains[0] if common_name is None else common_name
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)] if cn else [])
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "test-ca")]))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=90))
        .not_valid_after(not_after)
    )
    if domains:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(d) for d in domains]),
            critical=False,
        )
    cert = builder.sign(key, hashes.SHA256())
    return cert.public_bytes(serialization.Encoding.PEM)


def write_certificate(storage: Path, domains: list[str], not_after: datetime) -> Path:
    path = storage / "server.crt"
    path.write_bytes(make_certificate_pem(domains, not_after))
    return path


def make_app_config(**overrides) -> AppConfig:
    defaults = {
        "key_type": "P256",
        "email": "admin@example.com",
        "domains": ("a.example", "b.example"),
        "provider_type": "http",
        "http_server_handler": "none",
        "storage_path": "/var/lib/cert-keeper",
    }
    defaults.update(overrides)
    return AppConfig(**defaults)


def make_config(**overrides):
    return validate_config(make_app_config(**overrides))


@pytest.fixture
def dns_records():
    return (DnsRecord(domain="example.com", name="www"), DnsRecord(domain="example.com", name="api"))
