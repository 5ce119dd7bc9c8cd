"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from error_pulse.core.analytics_service import AnalyticsRunResult, create_analytics_files
from error_pulse.core.config import resolve_analytics_config, resolve_generation_config
from error_pulse.core.generation import generate_error_file

logger = logging.getLogger(__name__)

HARD_ROW_LIMIT = 1_000_000


def _result_to_dict(result: AnalyticsRunResult) -> dict[str, Any]:
    """Convert a run result into a JSON-serializable dict."""
    return {
        "success": result.success,
        "message": result.message,
        "input_path": str(result.input_path) if result.input_path is not None else None,
        "total_events": result.total_events,
        "reports": [str(p) for p in result.reports],
    }


async def create_analytics_impl(*, top_n: int | None = None) -> dict[str, Any]:
    """Implementation for the `create_analytics` MCP tool.

    Configuration errors are reported like any other failed run.
    """
    if top_n is not None and top_n < 1:
        raise ValueError("top_n must be >= 1")
    try:
        cfg = resolve_analytics_config()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return {"success": False, "message": str(exc), "reports": []}
    if top_n is not None:
        cfg = replace(cfg, top_n=top_n)

    result = await create_analytics_files(cfg)
    return _result_to_dict(result)


async def generate_error_file_impl(
    *,
    rows: int | None = None,
    seed: int | None = None,
) -> dict[str, Any]:
    """Implementation for the `generate_error_file` MCP tool."""
    try:
        cfg = resolve_generation_config()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return {"success": False, "message": str(exc), "path": None}
    if rows is not None:
        if rows <= 0:
            raise ValueError("rows must be > 0")
        cfg = replace(cfg, rows=min(rows, HARD_ROW_LIMIT))
    if seed is not None:
        cfg = replace(cfg, seed=seed)

    try:
        path = await generate_error_file(cfg)
    except (OSError, ValueError) as exc:
        logger.error("Error file generation failed: %s", exc)
        return {"success": False, "message": str(exc), "path": None}

    return {"success": True, "message": f"Generated {cfg.rows} rows.", "path": str(path)}
