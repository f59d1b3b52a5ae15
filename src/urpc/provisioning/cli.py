"""Command-line entry point: ``urpc-provision --config sources.yaml``."""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from ..config.settings import load_env
from ..errors import ConfigError, ProvisioningError
from ..logging import configure_logging
from .models import load_source_configs
from .provisioner import ProvisioningReport, create_tables_from_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urpc-provision",
        description="Create missing database tables declared in urpc source configs.",
    )
    parser.add_argument("--config", required=True, help="Source config file (.yaml, .yml, .json or .toml)")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (defaults to URPC_DATABASE_URL or DATABASE_URL)",
    )
    parser.add_argument("--env-file", default=None, help="Optional .env file to load first")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    return parser


async def run(args: argparse.Namespace) -> ProvisioningReport:
    configs = load_source_configs(args.config)
    return await create_tables_from_config(configs, args.database_url)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_env(args.env_file)
    log = configure_logging(level=args.log_level, json_output=args.json_logs)

    try:
        report = asyncio.run(run(args))
    except (ConfigError, ProvisioningError) as e:
        log.log_error(e, "Error creating tables")
        return 1

    log.info(f"Provisioning complete: {len(report.created)} created, {len(report.skipped)} skipped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
