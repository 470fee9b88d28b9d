"""
validatebag -- Command Line Interface

Usage:
    validatebag validate [--aip] [--response-format json|text] BAG
    validatebag run-service

``validate`` exits 0 for a compliant bag, 1 for a non-compliant bag and 2
when no report could be produced. Logs go to stderr; the report to stdout.
"""

from __future__ import annotations

import argparse
import json
import os
import sys

from validatebag.clients import SchemaLoadError
from validatebag.config import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH, load_config
from validatebag.primitives.common import InfoPackageType
from validatebag.systems.validation.errors import ValidationError
from validatebag.telemetry.logging import setup_logging

EXIT_COMPLIANT = 0
EXIT_NOT_COMPLIANT = 1
EXIT_ERROR = 2


def _validate(args: argparse.Namespace) -> int:
    from validatebag.main import build_validation_service

    config = load_config(args.config)
    setup_logging(config.logging, stream=sys.stderr)

    try:
        service, bag_store = build_validation_service(config)
    except SchemaLoadError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_ERROR

    package_type = InfoPackageType.AIP if args.aip else InfoPackageType.SIP
    try:
        report = service.validate(args.bag, package_type)
    except ValidationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        bag_store.close()

    if args.response_format == "json":
        print(json.dumps(report.to_json_dict(), indent=2))
    else:
        print(report.to_text())
    return EXIT_COMPLIANT if report.is_compliant else EXIT_NOT_COMPLIANT


def _run_service(args: argparse.Namespace) -> int:
    import uvicorn

    os.environ[CONFIG_PATH_ENV] = args.config
    config = load_config(args.config)
    uvicorn.run(
        "validatebag.main:app",
        host=config.server.host,
        port=config.server.port,
        log_config=None,
    )
    return 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="validatebag",
        description="Validate bags against the DANS BagIt profile",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH),
        help="Path to the YAML configuration (default: %(default)s)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    validate = commands.add_parser("validate", help="Validate one bag directory")
    validate.add_argument("bag", help="Bag directory or file: URI")
    validate.add_argument(
        "--aip",
        action="store_true",
        help="Validate as Archival Information Package (default: SIP)",
    )
    validate.add_argument(
        "--response-format",
        choices=("json", "text"),
        default="text",
        help="Report format (default: %(default)s)",
    )
    validate.set_defaults(handler=_validate)

    run_service = commands.add_parser("run-service", help="Start the HTTP service")
    run_service.set_defaults(handler=_run_service)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
