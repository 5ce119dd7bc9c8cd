from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from error_pulse.core.analytics_service import create_analytics_files
from error_pulse.core.config import resolve_analytics_config, resolve_generation_config
from error_pulse.core.generation import generate_error_file


def _positive_int(s: str) -> int:
    try:
        value = int(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected an integer, got {s!r}") from e
    if value < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return value


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv("ERROR_PULSE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run(args: argparse.Namespace) -> int:
    cfg = resolve_analytics_config()
    if args.error_dir:
        cfg = replace(cfg, error_dir=Path(args.error_dir))
    if args.analytics_dir:
        cfg = replace(cfg, analytics_dir=Path(args.analytics_dir))
    if args.top_n:
        cfg = replace(cfg, top_n=args.top_n)

    result = asyncio.run(create_analytics_files(cfg))
    for path in result.reports:
        print(path)
    print(result.message, file=sys.stdout if result.success else sys.stderr)
    return 0 if result.success else 1


def _generate(args: argparse.Namespace) -> int:
    cfg = resolve_generation_config()
    if args.error_dir:
        cfg = replace(cfg, error_dir=Path(args.error_dir))
    if args.rows:
        cfg = replace(cfg, rows=args.rows)
    if args.seed is not None:
        cfg = replace(cfg, seed=args.seed)
    if args.reference:
        cfg = replace(cfg, reference_path=Path(args.reference))

    path = asyncio.run(generate_error_file(cfg))
    print(path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Error batch analytics (severity, products, top codes, peak hours).")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Aggregate the newest batch in the error directory")
    run.add_argument("--error-dir", default=None, help="Input directory (default: ERROR_PULSE_ERROR_DIR)")
    run.add_argument("--analytics-dir", default=None, help="Output directory (default: ERROR_PULSE_ANALYTICS_DIR)")
    run.add_argument("--top", dest="top_n", type=_positive_int, default=None, help="Top error codes to keep")
    run.set_defaults(func=_run)

    gen = sub.add_parser("generate", help="Write a synthetic error batch")
    gen.add_argument("--error-dir", default=None, help="Output directory (default: ERROR_PULSE_ERROR_DIR)")
    gen.add_argument("--rows", type=_positive_int, default=None)
    gen.add_argument("--seed", type=int, default=None)
    gen.add_argument("--reference", default=None, help="Reference data JSON file")
    gen.set_defaults(func=_generate)
    return p


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entrypoint for local runs (outside the MCP server)."""
    p = build_parser()
    args = p.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        code = args.func(args)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    raise SystemExit(code)


if __name__ == "__main__":
    main()
