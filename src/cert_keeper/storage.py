"""Persisted certificate state: ``server.crt`` and ``server.key`` under the storage path."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from cryptography import x509

from cert_keeper.errors import StorageError
from cert_keeper.models import IssuedCertificate

logger = logging.getLogger(__name__)

CERTIFICATE_FILE = "server.crt"
KEY_FILE = "server.key"
_FILE_MODE = 0o600


class CertificateStore:
    """Reads and writes the certificate/key pair for one storage location."""

    def __init__(self, storage_path: str | os.PathLike) -> None:
        self.storage_path = Path(storage_path)

    @property
    def certificate_path(self) -> Path:
        return self.storage_path / CERTIFICATE_FILE

    @property
    def key_path(self) -> Path:
        return self.storage_path / KEY_FILE

    def load_certificate(self) -> x509.Certificate | None:
        """Return the leaf certificate, or ``None`` when nothing was issued yet.

        A file that exists but cannot be read or parsed raises StorageError
        rather than being treated as absent.
        """
        path = self.certificate_path
        try:
            path.stat()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc
        try:
            certs = x509.load_pem_x509_certificates(data)
        except ValueError as exc:
            raise StorageError(f"Could not parse {path}: {exc}") from exc
        if not certs:
            raise StorageError(f"No certificates found in {path}")
        return certs[0]

    def save(self, issued: IssuedCertificate) -> None:
        """Write the certificate chain and private key.

        Both files are staged as temporary files next to their targets and
        then renamed into place, certificate first.
        """
        staged: list[tuple[str, Path]] = []
        try:
            staged.append((self._stage(issued.certificate_pem), self.certificate_path))
            staged.append((self._stage(issued.private_key_pem), self.key_path))
            for tmp_name, target in staged:
                os.replace(tmp_name, target)
        except OSError as exc:
            for tmp_name, _target in staged:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
            raise StorageError(f"Unable to save certificate for domain {issued.domain}: {exc}") from exc
        logger.info("Saved %s and %s", self.certificate_path, self.key_path)

    def _stage(self, content: bytes) -> str:
        fd, tmp_name = tempfile.mkstemp(dir=self.storage_path, prefix=".cert-keeper-")
        try:
            with os.fdopen(fd, "wb") as fh:
                os.fchmod(fh.fileno(), _FILE_MODE)
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError:
            os.unlink(tmp_name)
            raise
        return tmp_name
