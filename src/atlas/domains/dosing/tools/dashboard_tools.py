"""MCP tool for the daily dashboard: today's progress, the week ahead and stock alerts."""

from __future__ import annotations

import json
import logging
from datetime import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from atlas.domains.dosing.domain_logic import inventory as ledger
from atlas.domains.dosing.domain_logic import schedule
from atlas.domains.dosing.tools.payloads import (
    error_payload,
    inventory_to_dict,
    parse_dose_events,
    parse_inventories,
    parse_regimens,
    resolve_now,
)

if TYPE_CHECKING:
    from atlas.core.config.settings import Settings

logger = logging.getLogger(__name__)


def register_dashboard_tools(mcp: FastMCP, settings: Settings) -> None:
    """Register dashboard aggregate tools on the MCP server."""
    default_time = time(settings.default_dose_hour, settings.default_dose_minute)

    @mcp.tool
    async def dashboard_summary(
        ctx: Context,
        regimens: list[dict[str, Any]] | None = None,
        dose_log: list[dict[str, Any]] | None = None,
        inventories: list[dict[str, Any]] | None = None,
        upcoming_days: int = 7,
        now: str = "",
    ) -> str:
        """Summarize today's doses, doses due in the coming days and low stock.

        Args:
            regimens: Regimen dicts with the next_dose fields plus 'compound_id'.
            dose_log: Logged doses like {"compound_id", "timestamp", "dosage_amount", "unit", "notes"}.
            inventories: Stock dicts like {"compound_id", "vial_count", "vial_size_mg", ...}.
            upcoming_days: How many days ahead to list (tomorrow counts as day 1).
            now: Reference time (ISO 8601). Defaults to the current local time.
        """
        try:
            reference = resolve_now(now)
            plans = parse_regimens(regimens)
            events = parse_dose_events(dose_log)
            stock = parse_inventories(
                inventories, default_threshold=settings.default_low_stock_threshold
            )
        except (TypeError, ValueError) as exc:
            return json.dumps(error_payload(exc))

        today = schedule.todays_regimens(plans, reference, default_time=default_time)
        progress = schedule.daily_progress(plans, reference, default_time=default_time)
        upcoming = schedule.upcoming_within(
            plans, reference, upcoming_days, default_time=default_time
        )
        low_stock = ledger.low_stock_items(stock)
        logger.debug(
            "Dashboard: %d/%d done today, %d upcoming, %d low on stock",
            progress.completed,
            progress.total,
            len(upcoming),
            len(low_stock),
        )

        return json.dumps({
            "status": "ok",
            "now": reference.isoformat(),
            "today": [
                {
                    "compound_id": r.compound_id,
                    "dosage": r.dosage_string,
                    "next_due": schedule.next_due(r, reference, default_time=default_time).isoformat(),
                    "completed": schedule.is_dose_completed_today(r, reference),
                    "overdue": schedule.is_overdue(r, reference, default_time=default_time),
                }
                for r in today
            ],
            "completed_today": progress.completed,
            "total_today": progress.total,
            "progress": round(progress.fraction, 4),
            "upcoming": [
                {"compound_id": r.compound_id, "next_due": due.isoformat()}
                for r, due in upcoming
            ],
            "doses_this_week": schedule.doses_this_week(events, reference),
            "active_count": sum(1 for r in plans if r.is_active),
            "low_stock": [
                {"compound_id": key, **inventory_to_dict(stock[key])} for key in low_stock
            ],
        }, indent=2)
