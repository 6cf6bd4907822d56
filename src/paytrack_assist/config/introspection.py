"""Command-line inspection of the effective configuration.

Usage:
    python -m paytrack_assist.config
    python -m paytrack_assist.config --check
    python -m paytrack_assist.config --json --profile staging
"""

import argparse
import json
import logging
import sys
from typing import Any

from .api import check_environment, resolve_config
from .audit import generate_telemetry_summary
from .types import SENSITIVE_FIELDS

logger = logging.getLogger(__name__)

# ruff: noqa: T201


def get_config_info(profile: str | None = None) -> dict[str, Any]:
    """Effective configuration as a JSON-safe dict, secrets redacted."""
    config = resolve_config(profile=profile)
    values = {
        field: ("<redacted>" if field in SENSITIVE_FIELDS and value else value)
        for field, value in config._asdict().items()
        if field != "origin"
    }
    return {
        "config": values,
        "sources": dict(config.origin),
        "source_summary": generate_telemetry_summary(config.origin),
        "environment": check_environment(),
        "ready": bool(config.endpoint_url and config.api_key),
    }


def check_config_validation(profile: str | None = None) -> bool:
    """Return True when configuration resolves and names an endpoint and key."""
    try:
        config = resolve_config(profile=profile)
    except Exception as e:
        logger.debug("Configuration check failed: %s", e)
        print(f"Configuration error: {e}", file=sys.stderr)
        return False
    return bool(config.endpoint_url and config.api_key)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for configuration introspection."""
    parser = argparse.ArgumentParser(
        description="Inspect paytrack-assist configuration",
        prog="python -m paytrack_assist.config",
    )
    parser.add_argument("--profile", help="Configuration profile to use")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON instead of human-readable format",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Just check if configuration is usable (exit code 0=valid, 1=invalid)",
    )
    args = parser.parse_args(argv)

    if args.check:
        sys.exit(0 if check_config_validation(profile=args.profile) else 1)

    if args.json:
        print(json.dumps(get_config_info(profile=args.profile), indent=2))
        return

    config = resolve_config(profile=args.profile)
    print("=== Effective Configuration ===")
    print(config.audit())
