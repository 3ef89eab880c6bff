"""MCP tools for dose scheduling: next due dose and skipping a dose."""

from __future__ import annotations

import json
import logging
from datetime import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from atlas.domains.dosing.domain_logic import schedule
from atlas.domains.dosing.domain_logic.models import DoseEvent
from atlas.domains.dosing.tools.payloads import (
    build_regimen,
    error_payload,
    isoformat,
    parse_schedule,
    resolve_now,
)

if TYPE_CHECKING:
    from atlas.core.config.settings import Settings

logger = logging.getLogger(__name__)


def register_schedule_tools(mcp: FastMCP, settings: Settings) -> None:
    """Register scheduling tools on the MCP server."""
    default_time = time(settings.default_dose_hour, settings.default_dose_minute)

    @mcp.tool
    async def next_dose(
        ctx: Context,
        schedule_type: str,
        interval_days: int = 1,
        weekdays: list[int] | None = None,
        alternating_lengths: list[int] | None = None,
        notification_time: str = "",
        start_date: str = "",
        last_dose_date: str = "",
        is_active: bool = True,
        now: str = "",
        upcoming_count: int | None = None,
    ) -> str:
        """Compute when a regimen's next dose is due.

        Args:
            schedule_type: 'daily', 'everyXDays', 'alternating', 'specificDays' or 'asNeeded'.
            interval_days: Interval for 'everyXDays' (3 means every 3.5 days).
            weekdays: Days for 'specificDays', 0 = Sunday ... 6 = Saturday.
            alternating_lengths: Gap sequence for 'alternating' (default [3, 4]).
            notification_time: Dose time of day as 'HH:MM' (default from settings).
            start_date: Regimen start (ISO 8601).
            last_dose_date: Most recent logged or skipped dose (ISO 8601).
            is_active: False for stopped regimens.
            now: Reference time (ISO 8601). Defaults to the current local time.
            upcoming_count: How many future doses to project (default from settings).
        """
        try:
            reference = resolve_now(now)
            regimen = build_regimen(
                compound_id="regimen",
                dosage_amount=0.0,
                dosage_unit="mg",
                schedule=parse_schedule(
                    schedule_type,
                    interval_days=interval_days,
                    weekdays=weekdays,
                    alternating_lengths=alternating_lengths,
                ),
                notification_time=notification_time,
                start_date=start_date,
                last_dose_date=last_dose_date,
                is_active=is_active,
            )
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        due = schedule.next_due(regimen, reference, default_time=default_time)
        count = settings.upcoming_dose_count if upcoming_count is None else upcoming_count
        upcoming = schedule.upcoming_doses(regimen, reference, count, default_time=default_time)
        logger.debug("next_dose: %s -> %s", regimen.schedule_description, due)

        return json.dumps({
            "status": "ok",
            "schedule": regimen.schedule_description,
            "now": reference.isoformat(),
            "next_due": isoformat(due),
            "is_due_today": schedule.is_due_today(regimen, reference, default_time=default_time),
            "is_overdue": schedule.is_overdue(regimen, reference, default_time=default_time),
            "dose_completed_today": schedule.is_dose_completed_today(regimen, reference),
            "upcoming": [d.isoformat() for d in upcoming],
        })

    @mcp.tool
    async def skip_dose(
        ctx: Context,
        compound_id: str,
        schedule_type: str,
        dosage_unit: str = "mg",
        interval_days: int = 1,
        weekdays: list[int] | None = None,
        alternating_lengths: list[int] | None = None,
        notification_time: str = "",
        start_date: str = "",
        last_dose_date: str = "",
        now: str = "",
    ) -> str:
        """Skip the current dose: records a zero-amount event and moves the schedule on.

        Args:
            compound_id: Identifier of the tracked compound.
            schedule_type: Schedule kind (see next_dose).
            dosage_unit: Unit of the regimen's dose.
            interval_days: Interval for 'everyXDays'.
            weekdays: Days for 'specificDays', 0 = Sunday.
            alternating_lengths: Gap sequence for 'alternating'.
            notification_time: Dose time of day as 'HH:MM'.
            start_date: Regimen start (ISO 8601).
            last_dose_date: Previous dose (ISO 8601).
            now: Time of the skip (ISO 8601). Defaults to the current local time.
        """
        try:
            reference = resolve_now(now)
            regimen = build_regimen(
                compound_id=compound_id,
                dosage_amount=0.0,
                dosage_unit=dosage_unit,
                schedule=parse_schedule(
                    schedule_type,
                    interval_days=interval_days,
                    weekdays=weekdays,
                    alternating_lengths=alternating_lengths,
                ),
                notification_time=notification_time,
                start_date=start_date,
                last_dose_date=last_dose_date,
                is_active=True,
            )
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        event = DoseEvent.skipped(regimen, reference)
        updated = regimen.record_dose(reference)
        due = schedule.next_due(updated, reference, default_time=default_time)
        logger.info("Dose skipped for %s at %s", compound_id, reference.isoformat())

        return json.dumps({
            "status": "skipped",
            "compound_id": compound_id,
            "dose_event": {
                "timestamp": event.timestamp.isoformat(),
                "dosage_amount": event.dosage_amount,
                "unit": event.unit.value,
                "notes": event.notes,
            },
            "last_dose_date": isoformat(updated.last_dose_date),
            "next_due": isoformat(due),
        })
