"""Exception hierarchy shared across the renewal workflow."""

from __future__ import annotations

from collections.abc import Sequence


class CertKeeperError(Exception):
    """Base class for every error surfaced to the command line."""


class ConfigError(CertKeeperError, ValueError):
    """The configuration document is missing a value or holds an invalid one."""

    def __init__(self, message: str, field: str | None = None, allowed: Sequence[str] | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.allowed = tuple(allowed) if allowed is not None else None


class StorageError(CertKeeperError):
    """Persisted certificate state exists but cannot be read or parsed."""


class PropagationTimeout(CertKeeperError):
    """A DNS-01 TXT record did not become visible before the deadline."""


class StageError(CertKeeperError):
    """A workflow stage failed; ``__cause__`` holds the underlying exception."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
