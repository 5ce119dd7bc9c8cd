"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: run the aggregation pipeline, generate a synthetic batch
- Resources: help text, resolved configuration, finished reports

Run locally (stdio):
    python -m error_pulse.server.analytics_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from error_pulse.resources.registry import register_resources
from error_pulse.tools.analytics import create_analytics_impl, generate_error_file_impl

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    Logs go to stderr; stdout is reserved for the stdio transport.
    """
    level_name = os.getenv("ERROR_PULSE_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


mcp = FastMCP("error-pulse", json_response=True)

register_resources(mcp)


@mcp.tool()
async def create_analytics(top_n: int | None = None) -> dict[str, Any]:
    """Aggregate the most recent error batch and write the four reports.

    Parameters
    ----------
    top_n:
        Size of the top error codes report (defaults to ERROR_PULSE_TOP_N or 10).

    Returns
    -------
    dict:
        {"success": bool, "message": str, "input_path": str | None,
         "total_events": int, "reports": list[str]}
    """
    return await create_analytics_impl(top_n=top_n)


@mcp.tool()
async def generate_error_file(rows: int | None = None, seed: int | None = None) -> dict[str, Any]:
    """Write a synthetic error batch CSV into the error directory.

    Parameters
    ----------
    rows:
        Number of rows (defaults to ERROR_PULSE_ROWS or 10000).
    seed:
        Optional seed for reproducible output.
    """
    return await generate_error_file_impl(rows=rows, seed=seed)


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
