"""MCP tool for logging a dose.

Logging ties the engine together: the dose event is recorded, the regimen's
next due time moves on, stock is consumed when an inventory snapshot is
supplied, and the next injection site is recommended for injectables.
"""

from __future__ import annotations

import json
import logging
from datetime import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from atlas.domains.dosing.domain_logic import inventory as ledger
from atlas.domains.dosing.domain_logic import rotation, schedule
from atlas.domains.dosing.domain_logic.models import CompoundCategory, DoseEvent, SiteHistoryEntry
from atlas.domains.dosing.domain_logic.sites import site_for_category
from atlas.domains.dosing.tools.payloads import (
    build_inventory,
    build_regimen,
    error_payload,
    inventory_to_dict,
    isoformat,
    parse_history,
    parse_schedule,
    require_positive,
    resolve_now,
    site_to_dict,
)

if TYPE_CHECKING:
    from atlas.core.config.settings import Settings

logger = logging.getLogger(__name__)


def register_dose_log_tools(mcp: FastMCP, settings: Settings) -> None:
    """Register the dose logging tool on the MCP server."""
    default_time = time(settings.default_dose_hour, settings.default_dose_minute)

    @mcp.tool
    async def log_dose(
        ctx: Context,
        compound_id: str,
        compound_category: str,
        dosage_amount: float,
        schedule_type: str,
        dosage_unit: str = "mg",
        interval_days: int = 1,
        weekdays: list[int] | None = None,
        alternating_lengths: list[int] | None = None,
        notification_time: str = "",
        start_date: str = "",
        last_dose_date: str = "",
        injection_site: str = "",
        site_history: list[dict[str, str]] | None = None,
        notes: str = "",
        vial_count: int | None = None,
        vial_size_mg: float | None = None,
        remaining_in_current_vial_mg: float | None = None,
        low_stock_threshold_vials: int | None = None,
        auto_decrement: bool = True,
        now: str = "",
    ) -> str:
        """Log a dose and return the updated regimen, stock and next site.

        Args:
            compound_id: Identifier of the tracked compound.
            compound_category: 'supplement', 'ped', 'peptide' or 'medicine'.
            dosage_amount: Amount taken, in dosage_unit.
            schedule_type: Schedule kind (see next_dose).
            dosage_unit: 'mg', 'mcg', 'IU', 'ml', 'g', 'units', 'caps' or 'tabs'.
            interval_days: Interval for 'everyXDays'.
            weekdays: Days for 'specificDays', 0 = Sunday.
            alternating_lengths: Gap sequence for 'alternating'.
            notification_time: Dose time of day as 'HH:MM'.
            start_date: Regimen start (ISO 8601).
            last_dose_date: Previous dose (ISO 8601).
            injection_site: Site used for this dose (injectables only).
            site_history: Earlier injections, entries like {"site": ..., "timestamp": ...}.
            notes: Free-text note stored on the dose event.
            vial_count: Vials on hand; with vial_size_mg, enables stock tracking.
            vial_size_mg: Content of one vial in mg.
            remaining_in_current_vial_mg: What is left in the open vial (default: full).
            low_stock_threshold_vials: Low-stock alert threshold (default from settings).
            auto_decrement: False for manually tracked stock.
            now: Time of the dose (ISO 8601). Defaults to the current local time.
        """
        try:
            reference = resolve_now(now)
            require_positive("dosage_amount", dosage_amount)
            category = CompoundCategory(compound_category)
            regimen = build_regimen(
                compound_id=compound_id,
                dosage_amount=dosage_amount,
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
            history = parse_history(site_history, now=reference)
            inventory = None
            if vial_count is not None and vial_size_mg is not None:
                inventory = build_inventory(
                    vial_count=vial_count,
                    vial_size_mg=vial_size_mg,
                    remaining_in_current_vial_mg=remaining_in_current_vial_mg,
                    low_stock_threshold_vials=(
                        settings.default_low_stock_threshold
                        if low_stock_threshold_vials is None
                        else low_stock_threshold_vials
                    ),
                    auto_decrement=auto_decrement,
                )
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        injection_category = category.injection_category
        site = None
        if injection_category is not None and injection_site:
            site = site_for_category(injection_site, injection_category)
            if site is None:
                return json.dumps({
                    "status": "error",
                    "error_type": "ValueError",
                    "message": (
                        f"Site {injection_site!r} is not a {injection_category.value} injection site"
                    ),
                })

        event = DoseEvent(
            compound_id=compound_id,
            timestamp=reference,
            dosage_amount=dosage_amount,
            unit=regimen.dosage_unit,
            injection_site=site,
            notes=notes or None,
        )
        updated = regimen.record_dose(reference)
        due = schedule.next_due(updated, reference, default_time=default_time)

        payload: dict = {
            "status": "ok",
            "compound_id": compound_id,
            "dose_event": {
                "timestamp": event.timestamp.isoformat(),
                "dosage": event.dosage_string,
                "injection_site": site.value if site is not None else None,
                "notes": event.notes,
            },
            "last_dose_date": isoformat(updated.last_dose_date),
            "next_due": isoformat(due),
            "inventory": None,
            "next_site": None,
        }

        if inventory is not None and category.supports_inventory:
            dose_mg = dosage_amount * regimen.dosage_unit.to_milligrams
            new_inventory, success = ledger.decrement(inventory, dose_mg)
            payload["inventory"] = {
                "success": success,
                **inventory_to_dict(new_inventory),
            }
            if not success:
                logger.warning("Dose of %s logged with no stock left", compound_id)

        if injection_category is not None:
            if site is not None:
                history = [SiteHistoryEntry(site=site, timestamp=reference), *history]
            next_site = rotation.recommend_next_site(
                injection_category,
                history,
                reference,
                lookback=settings.rotation_lookback,
                time_decay=settings.rotation_time_decay,
            )
            payload["next_site"] = site_to_dict(next_site)

        logger.info("Logged %s of %s at %s", event.dosage_string, compound_id, reference.isoformat())
        return json.dumps(payload)
