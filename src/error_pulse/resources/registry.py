"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from error_pulse.core.config import (
    ANALYTICS_DIR_ENV,
    ERROR_DIR_ENV,
    resolve_analytics_config,
    resolve_generation_config,
)
from error_pulse.core.generation import ReferenceData
from error_pulse.core.reports import REPORT_NAMES, REPORT_SUFFIX

TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "replace"


def _analytics_dir() -> Path:
    """Return the resolved analytics output directory."""
    return resolve_analytics_config().analytics_dir.resolve()


def _safe_resolve(name: str, base: Path) -> Path:
    """Resolve a report file name under the analytics directory."""
    p = (base / name).resolve()
    if base not in p.parents:
        raise ValueError("Path escapes analytics dir")
    return p


def _resolve_report_path(name: str, base: Path | None = None) -> Path:
    """Resolve and validate a report file path."""
    base = base or _analytics_dir()
    if not name.endswith(REPORT_SUFFIX):
        name += REPORT_SUFFIX
    resolved = _safe_resolve(name, base)
    if not resolved.is_file():
        raise FileNotFoundError(f"Report not found: {resolved.name}")
    return resolved


def list_reports(base: Path | None = None) -> list[str]:
    """Return report file names in the analytics directory, newest first."""
    base = base or _analytics_dir()
    if not base.is_dir():
        return []
    files = [
        p
        for p in base.iterdir()
        if p.is_file() and p.suffix == REPORT_SUFFIX and p.name.startswith(REPORT_NAMES)
    ]
    files.sort(key=lambda p: p.name, reverse=True)
    return [p.name for p in files]


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://error-pulse/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        return (
            "Resources:\n"
            "- app://error-pulse/help\n"
            "- app://error-pulse/config\n"
            "- app://error-pulse/reports\n"
            "- app://error-pulse/schemas/reference-data\n"
            f"- report://{{name}} (CSV reports under {ANALYTICS_DIR_ENV})\n"
            f"\nInput batches are read from {ERROR_DIR_ENV}.\n"
        )

    @mcp.resource("app://error-pulse/config")
    def config_resource() -> dict[str, Any]:
        """Return the resolved runtime configuration."""
        analytics = resolve_analytics_config()
        generation = resolve_generation_config()
        return {
            "error_dir": str(analytics.error_dir) if analytics.error_dir else None,
            "analytics_dir": str(analytics.analytics_dir),
            "top_n": analytics.top_n,
            "channel_capacity": analytics.channel_capacity,
            "rows": generation.rows,
            "seed": generation.seed,
            "reference_path": (
                str(generation.reference_path) if generation.reference_path else None
            ),
        }

    @mcp.resource("app://error-pulse/reports")
    def reports_resource() -> list[str]:
        """Return the available report file names, newest first."""
        return list_reports()

    @mcp.resource("app://error-pulse/schemas/reference-data")
    def reference_schema() -> dict[str, Any]:
        """Return the JSON schema for generation reference data."""
        return ReferenceData.model_json_schema()

    @mcp.resource("report://{name}")
    async def read_report(name: str) -> str:
        """Read one report CSV from the analytics directory."""
        p = _resolve_report_path(name)
        return await asyncio.to_thread(p.read_text, encoding=TEXT_ENCODING, errors=TEXT_ERRORS)
