"""MCP tools for injection site rotation."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from atlas.domains.dosing.domain_logic import rotation
from atlas.domains.dosing.tools.payloads import (
    error_payload,
    isoformat,
    parse_history,
    parse_injection_category,
    resolve_now,
    site_to_dict,
)

if TYPE_CHECKING:
    from atlas.core.config.settings import Settings

logger = logging.getLogger(__name__)


def register_rotation_tools(mcp: FastMCP, settings: Settings) -> None:
    """Register injection site rotation tools on the MCP server."""

    @mcp.tool
    async def recommend_injection_site(
        ctx: Context,
        category: str,
        site_history: list[dict[str, str]] | None = None,
        lookback: int | None = None,
        now: str = "",
    ) -> str:
        """Recommend the next injection site from recent site history.

        Args:
            category: 'im' / 'subq', or a compound category ('ped', 'peptide').
            site_history: Entries like {"site": "glute_left", "timestamp": "2026-01-15T08:00:00"}.
            lookback: Number of recent injections considered (default from settings).
            now: Reference time (ISO 8601). Defaults to the current local time.
        """
        try:
            injection_category = parse_injection_category(category)
            reference = resolve_now(now)
            history = parse_history(site_history, now=reference)
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        window = settings.rotation_lookback if lookback is None else lookback
        site = rotation.recommend_next_site(
            injection_category,
            history,
            reference,
            lookback=window,
            time_decay=settings.rotation_time_decay,
        )
        last = rotation.last_used_site(history)
        logger.debug("Recommended %s from %d history entries", site.value, len(history))
        return json.dumps({
            "status": "ok",
            "category": injection_category.value,
            "recommended": site_to_dict(site),
            "last_used": site_to_dict(last) if last is not None else None,
            "history_considered": min(len(history), max(0, window)),
            "advisory": True,
        })

    @mcp.tool
    async def injection_site_stats(
        ctx: Context,
        category: str,
        site_history: list[dict[str, str]] | None = None,
    ) -> str:
        """Usage count and last-used time for every site of a category.

        Args:
            category: 'im' / 'subq', or a compound category ('ped', 'peptide').
            site_history: Entries like {"site": "left_belly_upper", "timestamp": "..."}.
        """
        try:
            injection_category = parse_injection_category(category)
            history = parse_history(site_history)
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        stats = rotation.site_usage_stats(
            injection_category, history, lookback=settings.rotation_stats_lookback
        )
        return json.dumps({
            "status": "ok",
            "category": injection_category.value,
            "sites": [
                {**site_to_dict(s.site), "count": s.count, "last_used": isoformat(s.last_used)}
                for s in stats
            ],
        }, indent=2)

    @mcp.tool
    async def evaluate_site_rotation(
        ctx: Context,
        category: str,
        site_history: list[dict[str, str]] | None = None,
    ) -> str:
        """Check recent injections for repeated sites or same-side streaks.

        Args:
            category: 'im' / 'subq', or a compound category ('ped', 'peptide').
            site_history: Entries like {"site": "quad_left", "timestamp": "..."}.
        """
        try:
            injection_category = parse_injection_category(category)
            history = parse_history(site_history)
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        assessment = rotation.evaluate_rotation(injection_category, history)
        logger.debug("Rotation check over %d entries: %s", len(history), assessment.message)
        return json.dumps({
            "status": "ok",
            "is_good": assessment.is_good,
            "message": assessment.message,
        })
