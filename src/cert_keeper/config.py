"""Configuration loading and validation."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from cert_keeper.errors import ConfigError

_LETS_ENCRYPT_DIRECTORY = "https://acme-v02.api.letsencrypt.org/directory"

# Credentials may come from the environment instead of the document
_ENV_OVERRIDES = {
    "dns_client_id": "CERT_KEEPER_DNS_CLIENT_ID",
    "dns_client_secret": "CERT_KEEPER_DNS_CLIENT_SECRET",
    "dns_region": "CERT_KEEPER_DNS_REGION",
}


class KeyType(StrEnum):
    """Key algorithm and size used for both the account and the certificate."""

    EC256 = "P256"
    EC384 = "P384"
    RSA2048 = "2048"
    RSA4096 = "4096"
    RSA8192 = "8192"

    @property
    def is_ec(self) -> bool:
        return self in (KeyType.EC256, KeyType.EC384)


class ProviderType(StrEnum):
    """How domain control is proven to the certificate authority."""

    HTTP = "http"
    HTTP_REVERSE_PROXY = "http_reverse_proxy"
    GANDI = "gandi"
    ROUTE53 = "route53"

    @property
    def is_dns(self) -> bool:
        return self in (ProviderType.GANDI, ProviderType.ROUTE53)


class ServerHandlerType(StrEnum):
    """HTTP server that fronts this host and consumes the certificate."""

    NONE = "none"
    NGINX = "nginx"


@dataclass(frozen=True)
class DnsRecord:
    """An A record kept pointed at this host's public address."""

    domain: str
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> DnsRecord:
        if not isinstance(data, dict):
            raise ConfigError(f"dns_records_to_update entries must be objects, got: {data!r}", "dns_records_to_update")
        domain = data.get("domain", "")
        name = data.get("name", "")
        if not domain or not name:
            raise ConfigError(
                f"dns_records_to_update entries need both domain and name, got: {data!r}",
                "dns_records_to_update",
            )
        return cls(domain=domain, name=name)


@dataclass(frozen=True)
class AppConfig:
    """The configuration document as loaded, before validation."""

    key_type: str = ""
    email: str = ""
    domains: tuple[str, ...] = ()
    provider_type: str = ""
    http_server_handler: str = ""
    dns_client_id: str = ""
    dns_client_secret: str = ""
    dns_region: str = ""
    dns_hosted_zone_id: str = ""
    dns_records_to_update: tuple[DnsRecord, ...] = ()
    storage_path: str = ""
    acme_directory_url: str = _LETS_ENCRYPT_DIRECTORY


@dataclass(frozen=True)
class ValidatedConfig:
    """Typed configuration; only ``validate_config`` produces instances."""

    key_type: KeyType
    email: str
    domains: tuple[str, ...]
    provider_type: ProviderType
    http_server_handler: ServerHandlerType
    storage_path: Path
    dns_client_id: str | None = None
    dns_client_secret: str | None = None
    dns_region: str | None = None
    dns_hosted_zone_id: str | None = None
    dns_records: tuple[DnsRecord, ...] = field(default_factory=tuple)
    acme_directory_url: str = _LETS_ENCRYPT_DIRECTORY


def _string(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got: {value!r}", key)
    return value


def _string_list(data: dict, key: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be an array of strings, got: {value!r}", key)
    return tuple(value)


def _parse(data: dict) -> AppConfig:
    records = data.get("dns_records_to_update") or []
    if not isinstance(records, list):
        raise ConfigError(f"dns_records_to_update must be an array, got: {records!r}", "dns_records_to_update")

    values = {key: _string(data, key) for key in _ENV_OVERRIDES}
    for key, env_name in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value:
            values[key] = env_value

    return AppConfig(
        key_type=_string(data, "key_type"),
        email=_string(data, "email"),
        domains=_string_list(data, "domains"),
        provider_type=_string(data, "provider_type"),
        http_server_handler=_string(data, "http_server_handler"),
        dns_hosted_zone_id=_string(data, "dns_hosted_zone_id"),
        dns_records_to_update=tuple(DnsRecord.from_dict(r) for r in records),
        storage_path=_string(data, "storage_path"),
        acme_directory_url=_string(data, "acme_directory_url") or _LETS_ENCRYPT_DIRECTORY,
        **values,
    )


def load_config(path: str | os.PathLike) -> AppConfig:
    """Read the JSON configuration document at ``path``.

    Credential fields can be overridden from the environment
    (``CERT_KEEPER_DNS_CLIENT_ID``, ``CERT_KEEPER_DNS_CLIENT_SECRET``,
    ``CERT_KEEPER_DNS_REGION``). The result is not validated.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Could not deserialize {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Could not deserialize {path}: expected a JSON object")
    return _parse(data)


def _require_member(enum_cls: type[StrEnum], value: str, key: str) -> StrEnum:
    allowed = [member.value for member in enum_cls]
    if value not in allowed:
        raise ConfigError(
            f"invalid {key} in configuration: expected one of: {allowed}, got '{value}'",
            key,
            allowed,
        )
    return enum_cls(value)


def _require_for(config: AppConfig, key: str, provider: ProviderType) -> None:
    if not getattr(config, key):
        raise ConfigError(f"{key} must be provided when using the {provider} provider_type", key)


def validate_config(config: AppConfig) -> ValidatedConfig:
    """Check every field combination, failing on the first violation.

    No I/O is performed, so configuration mistakes surface before any
    network call or filesystem write.
    """
    key_type = _require_member(KeyType, config.key_type, "key_type")
    provider_type = _require_member(ProviderType, config.provider_type, "provider_type")
    handler_type = _require_member(ServerHandlerType, config.http_server_handler, "http_server_handler")

    if not config.storage_path:
        raise ConfigError("storage_path must be configured", "storage_path")
    if not config.domains:
        raise ConfigError("domains must be a non empty array", "domains")
    if not config.email:
        raise ConfigError("email must be configured", "email")

    if provider_type is ProviderType.HTTP_REVERSE_PROXY and handler_type is ServerHandlerType.NONE:
        raise ConfigError(
            "http_server_handler must be provided when using the http_reverse_proxy provider_type",
            "http_server_handler",
        )
    if provider_type is ProviderType.GANDI:
        _require_for(config, "dns_client_secret", provider_type)
    if provider_type is ProviderType.ROUTE53:
        for key in ("dns_client_id", "dns_client_secret", "dns_region"):
            _require_for(config, key, provider_type)

    return ValidatedConfig(
        key_type=key_type,
        email=config.email,
        domains=tuple(config.domains),
        provider_type=provider_type,
        http_server_handler=handler_type,
        storage_path=Path(config.storage_path),
        dns_client_id=config.dns_client_id or None,
        dns_client_secret=config.dns_client_secret or None,
        dns_region=config.dns_region or None,
        dns_hosted_zone_id=config.dns_hosted_zone_id or None,
        dns_records=tuple(config.dns_records_to_update),
        acme_directory_url=config.acme_directory_url,
    )
