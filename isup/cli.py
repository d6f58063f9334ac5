"""CLI argument parsing and main entry point.

Provides two subcommands:

* ``isup serve``: poll the configured endpoints and serve the best URL over HTTP.
* ``isup check``: run a single polling cycle and print the scores.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

import uvicorn

from isup.config import load_config
from isup.constants import (
    CONFIG_ENV_VAR,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PORT,
    SERVER_NAME,
    SERVER_VERSION,
)
from isup.display.logging_config import setup_logging
from isup.errors import ConfigurationError, StoreError
from isup.service import Service

module_logger = logging.getLogger(__name__)

# Config file search order (first match wins)
_CONFIG_SEARCH_ORDER = ("config.yaml", "config.yml")


def _resolve_config_path(config_path: Optional[str]) -> str:
    """Resolve the config path: CLI flag → env var → CWD auto-detect.

    Falls back to ``CWD/config.yaml`` if nothing exists (loader will error).
    """
    if config_path:
        return os.path.abspath(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return os.path.abspath(env_path)
    for name in _CONFIG_SEARCH_ORDER:
        candidate = os.path.join(os.getcwd(), name)
        if os.path.isfile(candidate):
            return candidate
    return os.path.join(os.getcwd(), _CONFIG_SEARCH_ORDER[0])


# ── ``isup serve`` ───────────────────────────────────────────────────────


def _cmd_serve(args: argparse.Namespace) -> int:
    """Entry-point for ``isup serve``."""
    from isup.server.app import create_app

    setup_logging(args.log_level, args.log_dir)
    module_logger.info("---- %s v%s starting ----", SERVER_NAME, SERVER_VERSION)

    cfg_path = _resolve_config_path(args.config)
    module_logger.info("Configuration file path resolved to: %s", cfg_path)
    try:
        config = load_config(cfg_path)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    interval = args.interval if args.interval is not None else config.interval
    if interval is None:
        print(
            "Error: a polling interval is required (set `interval` in the config or pass --interval).",
            file=sys.stderr,
        )
        return 2

    service = Service.from_config(config)
    app = create_app(service, interval=interval)

    uvicorn_cfg = uvicorn.Config(
        app=app,
        host=args.host,
        port=args.port,
        log_config=None,
        log_level=args.log_level.lower(),
    )
    module_logger.info("Serving best URL on http://%s:%s", args.host, args.port)
    try:
        uvicorn.Server(uvicorn_cfg).run()
    except KeyboardInterrupt:
        module_logger.info("%s interrupted by KeyboardInterrupt.", SERVER_NAME)
    finally:
        module_logger.info("%s has shut down.", SERVER_NAME)
    return 0


# ── ``isup check`` ───────────────────────────────────────────────────────


async def _run_check(service: Service) -> int:
    async with service:
        report = await service.update()
        for url in service.urls():
            score = await service.store.get(url)
            if score is None:
                print(f"  {url:<60} (no score)")
                continue
            print(
                f"  {url:<60} score={score.score:.6f} "
                f"reliability={score.reliability:.3f} "
                f"avg={score.response_avg_seconds * 1000:.1f}ms"
            )
        best = await service.best_url()
    print()
    print(f"Best URL: {best or '-'}")
    print(
        f"Probes: {report.probes}, transport failures: {report.transport_failures}, "
        f"store failures: {report.store_failures}"
    )
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    """Entry-point for ``isup check``."""
    setup_logging(args.log_level)
    try:
        config = load_config(_resolve_config_path(args.config))
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    service = Service.from_config(config)
    try:
        return asyncio.run(_run_check(service))
    except StoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with serve/check subcommands."""
    parser = argparse.ArgumentParser(
        prog="isup",
        description=f"{SERVER_NAME} v{SERVER_VERSION}",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {SERVER_VERSION}",
    )

    subparsers = parser.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help=(
            "Path to configuration file (YAML). "
            f"Default: ${CONFIG_ENV_VAR}, then config.yaml/config.yml in the working directory"
        ),
    )
    common.add_argument(
        "--log-level",
        type=str,
        default=DEFAULT_LOG_LEVEL.lower(),
        choices=["debug", "info", "warning", "error", "critical"],
        help=f"Set logging level (default: {DEFAULT_LOG_LEVEL.lower()})",
    )

    # ── serve ───────────────────────────────────────────────────
    sp_serve = subparsers.add_parser(
        "serve",
        parents=[common],
        help="Poll endpoints continuously and serve the best URL over HTTP",
    )
    sp_serve.add_argument(
        "--host",
        type=str,
        default=DEFAULT_HOST,
        help=f"Host address (default: {DEFAULT_HOST})",
    )
    sp_serve.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port (default: {DEFAULT_PORT})",
    )
    sp_serve.add_argument(
        "--interval",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Override the polling interval from the configuration",
    )
    sp_serve.add_argument(
        "--log-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Also write logs to a timestamped file in DIR",
    )
    sp_serve.set_defaults(func=_cmd_serve)

    # ── check ───────────────────────────────────────────────────
    sp_check = subparsers.add_parser(
        "check",
        parents=[common],
        help="Run one polling cycle and print the resulting scores",
    )
    sp_check.set_defaults(func=_cmd_check)

    return parser


def main(argv: Optional[list] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
