"""cert-keeper command-line entry point.

Usage::

    cert-keeper /etc/cert-keeper/config.json
    cert-keeper -v /etc/cert-keeper/config.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError, version

from cert_keeper.config import load_config, validate_config
from cert_keeper.orchestrator import CertificateOrchestrator
from cert_keeper.server_handlers import get_server_handler
from cert_keeper.storage import CertificateStore
from cert_keeper.updater import get_dns_updater

log = logging.getLogger("cert_keeper")


def _get_version() -> str:
    try:
        return version("cert-keeper")
    except PackageNotFoundError:
        return "unknown"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cert-keeper",
        description="Obtain or renew a TLS certificate and reload the server that uses it.",
    )
    parser.add_argument("configuration_path", help="Path to the JSON configuration document.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    log.info("cert-keeper version %s", _get_version())

    try:
        config = validate_config(load_config(args.configuration_path))
        orchestrator = CertificateOrchestrator(
            config,
            server_handler=get_server_handler(config.http_server_handler),
            dns_updater=get_dns_updater(config),
            store=CertificateStore(config.storage_path),
            logger=log,
        )
        orchestrator.run()
    except Exception as exc:
        log.error("error: %s", exc, exc_info=args.verbose)
        return 1

    log.info("done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
