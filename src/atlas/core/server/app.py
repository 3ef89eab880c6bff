"""Atlas dosing MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery (`fastmcp run` points here)
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from atlas.core.config.settings import Settings, get_settings
from atlas.domains.dosing.prompts.dosing_prompts import register_dosing_prompts
from atlas.domains.dosing.resources.catalog import register_catalog_resources
from atlas.domains.dosing.tools.dashboard_tools import register_dashboard_tools
from atlas.domains.dosing.tools.dose_log_tools import register_dose_log_tools
from atlas.domains.dosing.tools.inventory_tools import register_inventory_tools
from atlas.domains.dosing.tools.reconstitution_tools import register_reconstitution_tools
from atlas.domains.dosing.tools.rotation_tools import register_rotation_tools
from atlas.domains.dosing.tools.schedule_tools import register_schedule_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Atlas Dosing"
SERVER_VERSION = "0.1.0"


def create_app(*, settings_override: Settings | None = None) -> FastMCP:
    """Create and configure the Atlas dosing MCP server.

    The server is stateless: every tool receives the regimen, history and
    inventory snapshots it needs and returns updated snapshots for the host
    to persist.
    """
    settings = settings_override if settings_override is not None else get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Atlas dosing engine. Computes when scheduled doses fall due, "
            "recommends injection sites from rotation history, tracks vial "
            "inventory and solves reconstitution math. All state is passed in "
            "by the caller; returned snapshots should be stored by the caller."
        ),
    )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "default_dose_time": f"{settings.default_dose_hour:02d}:{settings.default_dose_minute:02d}",
            "rotation_lookback": settings.rotation_lookback,
        }

    register_schedule_tools(server, settings)
    register_dose_log_tools(server, settings)
    register_rotation_tools(server, settings)
    register_inventory_tools(server, settings)
    register_reconstitution_tools(server, settings)
    register_dashboard_tools(server, settings)
    logger.info("Dosing tools registered")

    # --- Register resources ---
    register_catalog_resources(server)

    # --- Register prompts ---
    register_dosing_prompts(server)

    return server


# Module-level instance for FastMCP discovery (`fastmcp run src/atlas/core/server/app.py:mcp`).
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
