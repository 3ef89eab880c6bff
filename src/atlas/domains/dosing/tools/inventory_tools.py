"""MCP tools for the vial inventory ledger.

The caller passes the current inventory snapshot with every call and stores
the returned snapshot; nothing is persisted here.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from atlas.domains.dosing.domain_logic import inventory as ledger
from atlas.domains.dosing.tools.payloads import (
    build_inventory,
    error_payload,
    inventory_to_dict,
    require_positive,
)

if TYPE_CHECKING:
    from atlas.core.config.settings import Settings

logger = logging.getLogger(__name__)


def register_inventory_tools(mcp: FastMCP, settings: Settings) -> None:
    """Register inventory ledger tools on the MCP server."""

    def _state(
        vial_count: int,
        vial_size_mg: float,
        remaining_in_current_vial_mg: float | None,
        low_stock_threshold_vials: int | None,
        auto_decrement: bool,
    ):
        threshold = (
            settings.default_low_stock_threshold
            if low_stock_threshold_vials is None
            else low_stock_threshold_vials
        )
        return build_inventory(
            vial_count=vial_count,
            vial_size_mg=vial_size_mg,
            remaining_in_current_vial_mg=remaining_in_current_vial_mg,
            low_stock_threshold_vials=threshold,
            auto_decrement=auto_decrement,
        )

    @mcp.tool
    async def decrement_inventory(
        ctx: Context,
        dose_mg: float,
        vial_count: int,
        vial_size_mg: float,
        remaining_in_current_vial_mg: float | None = None,
        low_stock_threshold_vials: int | None = None,
        auto_decrement: bool = True,
    ) -> str:
        """Consume one dose from vial stock.

        Args:
            dose_mg: Dose amount in mg.
            vial_count: Vials on hand, including the open one.
            vial_size_mg: Content of one vial in mg.
            remaining_in_current_vial_mg: What is left in the open vial (default: full).
            low_stock_threshold_vials: Low-stock alert threshold (default from settings).
            auto_decrement: False for manually tracked stock (left unchanged).
        """
        try:
            require_positive("dose_mg", dose_mg)
            state = _state(
                vial_count, vial_size_mg, remaining_in_current_vial_mg,
                low_stock_threshold_vials, auto_decrement,
            )
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        new_state, success = ledger.decrement(state, dose_mg)
        if not success:
            logger.info("Insufficient stock for %.3f mg dose", dose_mg)
        return json.dumps({
            "status": "ok" if success else "insufficient_stock",
            "success": success,
            "inventory": inventory_to_dict(new_state),
        })

    @mcp.tool
    async def restock_inventory(
        ctx: Context,
        vials_added: int,
        vial_count: int,
        vial_size_mg: float,
        remaining_in_current_vial_mg: float | None = None,
        low_stock_threshold_vials: int | None = None,
    ) -> str:
        """Add sealed vials to stock.

        Args:
            vials_added: Number of vials received.
            vial_count: Vials on hand before restocking.
            vial_size_mg: Content of one vial in mg.
            remaining_in_current_vial_mg: What is left in the open vial (default: full).
            low_stock_threshold_vials: Low-stock alert threshold (default from settings).
        """
        try:
            state = _state(
                vial_count, vial_size_mg, remaining_in_current_vial_mg,
                low_stock_threshold_vials, True,
            )
            new_state = ledger.add_vials(state, vials_added)
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        logger.info("Restocked %d vial(s); now %d", vials_added, new_state.vial_count)
        return json.dumps({"status": "ok", "inventory": inventory_to_dict(new_state)})

    @mcp.tool
    async def open_new_vial(
        ctx: Context,
        vial_count: int,
        vial_size_mg: float,
        remaining_in_current_vial_mg: float | None = None,
        low_stock_threshold_vials: int | None = None,
    ) -> str:
        """Discard the open vial's remainder and start a fresh vial.

        Args:
            vial_count: Vials on hand, including the open one.
            vial_size_mg: Content of one vial in mg.
            remaining_in_current_vial_mg: What is left in the open vial (default: full).
            low_stock_threshold_vials: Low-stock alert threshold (default from settings).
        """
        try:
            state = _state(
                vial_count, vial_size_mg, remaining_in_current_vial_mg,
                low_stock_threshold_vials, True,
            )
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        new_state = ledger.start_new_vial(state)
        logger.info("Opened new vial; %d vial(s) left", new_state.vial_count)
        return json.dumps({"status": "ok", "inventory": inventory_to_dict(new_state)})

    @mcp.tool
    async def inventory_summary(
        ctx: Context,
        vial_count: int,
        vial_size_mg: float,
        remaining_in_current_vial_mg: float | None = None,
        low_stock_threshold_vials: int | None = None,
        dose_mg: float = 0.0,
        interval_days: float = 1.0,
    ) -> str:
        """Summarize stock: total mg, low-stock flag, remaining doses and days of supply.

        Args:
            vial_count: Vials on hand, including the open one.
            vial_size_mg: Content of one vial in mg.
            remaining_in_current_vial_mg: What is left in the open vial (default: full).
            low_stock_threshold_vials: Low-stock alert threshold (default from settings).
            dose_mg: Dose per administration in mg (0 skips dose estimates).
            interval_days: Average days between doses.
        """
        try:
            state = _state(
                vial_count, vial_size_mg, remaining_in_current_vial_mg,
                low_stock_threshold_vials, True,
            )
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        return json.dumps({
            "status": "ok",
            "inventory": inventory_to_dict(state),
            "remaining": ledger.remaining_string(state),
            "remaining_doses": ledger.remaining_doses(state, dose_mg),
            "days_of_supply": ledger.days_of_supply(state, dose_mg, interval_days),
        })
