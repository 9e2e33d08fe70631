"""Verify the gateway's environment before (re)starting it.

Checks performed:

1. ``AppSettings`` must load from the given ``.env`` file, so missing
   MercadoLibre credentials fail here rather than on the first seller request.
2. The directory holding the SQLite database must be writable.
3. Optionally, the ``.env`` checksum is recorded or compared against a
   baseline so unexpected edits are noticed.

Example usages::

    python -m scripts.check_env record --env-file /srv/meli-gateway/.env \
        --hash-file /srv/meli-gateway/.env.sha256

    python -m scripts.check_env verify --env-file /srv/meli-gateway/.env \
        --hash-file /srv/meli-gateway/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from meli_gateway.core.config import AppSettings, _load_env_file
from meli_gateway.core.logging import configure_logging

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_STORAGE_ERROR = 4
EXIT_RUNTIME_ERROR = 5

logger = logging.getLogger("check_env")


def _checksum(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Load settings the way the service does, from ``env_file``."""
    if not env_file.exists():
        raise FileNotFoundError(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool."
        )
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _database_dir_writable(settings: AppSettings) -> bool:
    directory = Path(settings.database_path).resolve().parent
    while not directory.exists():
        directory = directory.parent
    return os.access(directory, os.W_OK)


def _record(env_file: Path, hash_file: Path) -> int:
    checksum = _checksum(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    logger.info("Recorded checksum %s to %s", checksum, hash_file)
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        logger.error(
            "Checksum baseline %s is missing; run the 'record' command first.",
            hash_file,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _checksum(env_file)
    if expected != actual:
        logger.error(
            "Environment checksum mismatch (expected %s, actual %s). "
            "Investigate recent changes before restarting the gateway.",
            expected,
            actual,
        )
        return EXIT_CHECKSUM_ERROR
    logger.info("Environment checksum OK.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate gateway settings and detect .env drift."
    )
    parser.add_argument("--log-level", default="INFO")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text, needs_hash in (
        ("record", "Validate settings and store the checksum baseline.", True),
        ("verify", "Validate settings and compare against the baseline.", True),
        ("check", "Validate settings only.", False),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )
        if needs_hash:
            subparser.add_argument(
                "--hash-file",
                required=True,
                type=Path,
                help="Location of the checksum baseline.",
            )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level)
    env_file: Path = args.env_file

    try:
        settings = _load_settings(env_file)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        logger.error(
            "Settings validation failed. Missing or invalid values detected:\n%s",
            exc.json(indent=2),
        )
        return EXIT_VALIDATION_ERROR

    if not _database_dir_writable(settings):
        logger.error("Database location %s is not writable.", settings.database_path)
        return EXIT_STORAGE_ERROR

    logger.info(
        "Settings OK for MercadoLibre app %s (api %s).",
        settings.meli.client_id,
        settings.meli.api_url,
    )

    if args.command == "record":
        return _record(env_file, args.hash_file)
    if args.command == "verify":
        return _verify(env_file, args.hash_file)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
