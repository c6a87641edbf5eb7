"""Headless command-line interface for jitplay.

`resolve` drives a real `SessionController` through one track-load (including
the automatic transient retry) and prints the resolved URL; `download` saves
the track behind it.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from . import __version__
from .app import add_resolver_arguments
from .logging_utils import setup_logging
from .paths import catalog_path, downloads_dir, log_dir
from .runtime_config import (
    DEFAULT_RESOLVER_URL,
    normalize_bitrate,
    normalize_timeout,
    resolve_log_level,
)
from .services.catalog import Catalog, load_catalog
from .services.fake_transport import FakeTransport
from .services.resolver import HttpUrlResolver, ResolutionPipeline
from .services.session_controller import SessionController
from .version import build_help_epilog


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jitplay-cli",
        description="Resolve or download catalog tracks without the TUI.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=build_help_epilog(resolver_url=DEFAULT_RESOLVER_URL),
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    add_resolver_arguments(parser)
    commands = parser.add_subparsers(dest="command", required=True)
    resolve_cmd = commands.add_parser("resolve", help="Print the URL for a track.")
    resolve_cmd.add_argument("index", type=int, help="Catalog index (0-based).")
    download_cmd = commands.add_parser("download", help="Save a track to disk.")
    download_cmd.add_argument("index", type=int, help="Catalog index (0-based).")
    download_cmd.add_argument("--dest", help="Target directory (default: Downloads).")
    return parser


def build_controller(args: argparse.Namespace, catalog: Catalog) -> SessionController:
    timeout_s = normalize_timeout(getattr(args, "timeout", None))
    bitrate = getattr(args, "bitrate", None)

    async def discard(_event: object) -> None:
        return None

    return SessionController(
        catalog=catalog,
        pipeline=ResolutionPipeline(
            HttpUrlResolver(args.resolver_url, timeout_s=timeout_s),
            timeout_s=timeout_s,
        ),
        transport=FakeTransport(),
        emit_event=discard,
        bitrate=normalize_bitrate(bitrate) if bitrate is not None else None,
    )


async def run_command(args: argparse.Namespace) -> int:
    catalog = load_catalog(Path(args.catalog) if args.catalog else catalog_path())
    if args.source:
        catalog = catalog.with_source(args.source)
    if not 0 <= args.index < len(catalog):
        print(
            f"Track index {args.index} out of range (catalog has {len(catalog)}).",
            file=sys.stderr,
        )
        return 2
    controller = build_controller(args, catalog)
    await controller.start()
    try:
        await controller.select(args.index)
        await controller.settle()
        session = controller.session
        if session.transport_state != "ready" or session.resolved_url is None:
            print(session.error or "Resolution did not complete.", file=sys.stderr)
            return 1
        if args.command == "resolve":
            print(session.resolved_url)
            return 0
        dest = Path(args.dest) if getattr(args, "dest", None) else downloads_dir()
        target = await controller.download_current(dest)
        print(target)
        return 0
    finally:
        await controller.shutdown()


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    logger = logging.getLogger(__name__)
    try:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
        )
        logger.info("Starting jitplay CLI (%s)", args.command)
        return asyncio.run(run_command(args))
    except Exception as exc:  # pragma: no cover - top-level safety net
        logger.exception("Unhandled error: %s", exc)
        print("Unexpected error. Re-run with --verbose for details.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
