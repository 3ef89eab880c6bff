"""Conversion between JSON-friendly tool arguments and engine snapshots.

MCP tools receive primitives (ISO 8601 strings, enum raw values, lists).
Everything here raises ``ValueError`` (or a subclass) on bad input so the
tools can report a single error shape.
"""

from __future__ import annotations

from datetime import datetime, time
from typing import Any

from atlas.domains.dosing.domain_logic import inventory as ledger
from atlas.domains.dosing.domain_logic.models import (
    AlternatingDays,
    AsNeeded,
    CompoundCategory,
    Daily,
    DosageUnit,
    DoseEvent,
    EveryNDays,
    InventoryState,
    Regimen,
    ScheduleKind,
    SiteHistoryEntry,
    SpecificWeekdays,
)
from atlas.domains.dosing.domain_logic.reconstitution import ReconstitutionResult
from atlas.domains.dosing.domain_logic.sites import SITE_TABLE, InjectionCategory, Site, parse_site

SCHEDULE_TYPES = ("daily", "everyXDays", "alternating", "specificDays", "asNeeded")


def parse_timestamp(raw: str) -> datetime:
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO 8601 timestamp: {raw!r}") from exc


def optional_timestamp(raw: str | None) -> datetime | None:
    return parse_timestamp(raw) if raw else None


def resolve_now(raw: str | None) -> datetime:
    """Caller-supplied reference time, or the local wall clock."""
    if raw:
        return parse_timestamp(raw)
    return datetime.now().astimezone()


def align_timestamp(ts: datetime, now: datetime) -> datetime:
    """Give ``ts`` the same awareness as ``now``.

    Naive values are read as local wall-clock time, matching ``resolve_now``.
    """
    if ts.tzinfo is None and now.tzinfo is not None:
        return ts.astimezone(now.tzinfo)
    if ts.tzinfo is not None and now.tzinfo is None:
        return ts.astimezone().replace(tzinfo=None)
    return ts


def require_positive(name: str, value: float) -> float:
    if not value > 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def parse_time_of_day(raw: str | None) -> time | None:
    """Parse 'HH:MM' into a time; empty input means 'use the default'."""
    if not raw:
        return None
    try:
        hour, minute = (int(part) for part in raw.split(":")[:2])
        return time(hour, minute)
    except ValueError as exc:
        raise ValueError(f"Invalid time of day (expected HH:MM): {raw!r}") from exc


def parse_schedule(
    schedule_type: str,
    *,
    interval_days: int = 1,
    weekdays: list[int] | None = None,
    alternating_lengths: list[int] | None = None,
) -> ScheduleKind:
    if schedule_type == "daily":
        return Daily()
    if schedule_type == "everyXDays":
        return EveryNDays(interval_days)
    if schedule_type == "alternating":
        return AlternatingDays(tuple(alternating_lengths or (3, 4)))
    if schedule_type == "specificDays":
        return SpecificWeekdays(frozenset(weekdays or ()))
    if schedule_type == "asNeeded":
        return AsNeeded()
    raise ValueError(
        f"Unknown schedule_type {schedule_type!r}; expected one of {', '.join(SCHEDULE_TYPES)}"
    )


def parse_injection_category(raw: str) -> InjectionCategory:
    """Accept either an injection route ('im', 'subq') or a compound category."""
    try:
        return InjectionCategory(raw)
    except ValueError:
        pass
    try:
        category = CompoundCategory(raw).injection_category
    except ValueError as exc:
        raise ValueError(f"Unknown injection category: {raw!r}") from exc
    if category is None:
        raise ValueError(f"Compound category {raw!r} is not injected")
    return category


def parse_history(
    entries: list[dict[str, str]] | None,
    *,
    now: datetime | None = None,
) -> list[SiteHistoryEntry]:
    """Parse site history entries, aligned to ``now`` when one is given."""
    history = []
    for entry in entries or []:
        try:
            site, timestamp = entry["site"], entry["timestamp"]
        except KeyError as exc:
            raise ValueError(f"History entry missing field {exc.args[0]!r}: {entry}") from exc
        ts = parse_timestamp(timestamp)
        if now is not None:
            ts = align_timestamp(ts, now)
        history.append(SiteHistoryEntry(site=parse_site(site), timestamp=ts))
    return history


def build_regimen(
    *,
    compound_id: str,
    dosage_amount: float,
    dosage_unit: str,
    schedule: ScheduleKind,
    notification_time: str | None,
    start_date: str | None,
    last_dose_date: str | None,
    is_active: bool,
) -> Regimen:
    return Regimen(
        compound_id=compound_id,
        dosage_amount=dosage_amount,
        dosage_unit=DosageUnit(dosage_unit),
        schedule=schedule,
        notification_time=parse_time_of_day(notification_time),
        start_date=optional_timestamp(start_date),
        last_dose_date=optional_timestamp(last_dose_date),
        is_active=is_active,
    )


def _field(entry: dict[str, Any], name: str, kind: str) -> Any:
    try:
        return entry[name]
    except KeyError as exc:
        raise ValueError(f"{kind} entry missing field {name!r}: {entry}") from exc


def parse_regimens(entries: list[dict[str, Any]] | None) -> list[Regimen]:
    """Parse regimen dicts shaped like the next_dose tool arguments."""
    regimens = []
    for entry in entries or []:
        regimens.append(build_regimen(
            compound_id=str(_field(entry, "compound_id", "Regimen")),
            dosage_amount=float(entry.get("dosage_amount", 0.0)),
            dosage_unit=entry.get("dosage_unit", "mg"),
            schedule=parse_schedule(
                _field(entry, "schedule_type", "Regimen"),
                interval_days=entry.get("interval_days", 1),
                weekdays=entry.get("weekdays"),
                alternating_lengths=entry.get("alternating_lengths"),
            ),
            notification_time=entry.get("notification_time"),
            start_date=entry.get("start_date"),
            last_dose_date=entry.get("last_dose_date"),
            is_active=bool(entry.get("is_active", True)),
        ))
    return regimens


def parse_dose_events(entries: list[dict[str, Any]] | None) -> list[DoseEvent]:
    events = []
    for entry in entries or []:
        events.append(DoseEvent(
            compound_id=str(_field(entry, "compound_id", "Dose")),
            timestamp=parse_timestamp(_field(entry, "timestamp", "Dose")),
            dosage_amount=float(_field(entry, "dosage_amount", "Dose")),
            unit=DosageUnit(entry.get("unit", "mg")),
            notes=entry.get("notes") or None,
        ))
    return events


def build_inventory(
    *,
    vial_count: int,
    vial_size_mg: float,
    remaining_in_current_vial_mg: float | None,
    low_stock_threshold_vials: int,
    auto_decrement: bool,
) -> InventoryState:
    remaining = vial_size_mg if remaining_in_current_vial_mg is None else remaining_in_current_vial_mg
    return InventoryState(
        vial_count=vial_count,
        vial_size_mg=vial_size_mg,
        remaining_in_current_vial_mg=remaining,
        low_stock_threshold_vials=low_stock_threshold_vials,
        auto_decrement=auto_decrement,
    )


def parse_inventories(
    entries: list[dict[str, Any]] | None,
    *,
    default_threshold: int,
) -> dict[str, InventoryState]:
    """Inventory snapshots keyed by compound id."""
    inventories = {}
    for entry in entries or []:
        threshold = entry.get("low_stock_threshold_vials")
        inventories[str(_field(entry, "compound_id", "Inventory"))] = build_inventory(
            vial_count=_field(entry, "vial_count", "Inventory"),
            vial_size_mg=_field(entry, "vial_size_mg", "Inventory"),
            remaining_in_current_vial_mg=entry.get("remaining_in_current_vial_mg"),
            low_stock_threshold_vials=default_threshold if threshold is None else threshold,
            auto_decrement=bool(entry.get("auto_decrement", True)),
        )
    return inventories


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def isoformat(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


def site_to_dict(site: Site) -> dict[str, str]:
    info = SITE_TABLE[site]
    return {
        "site": site.value,
        "display_name": info.display_name,
        "short_name": info.short_name,
        "body_part": info.body_part,
        "side": info.side,
    }


def inventory_to_dict(state: InventoryState) -> dict[str, Any]:
    return {
        "vial_count": state.vial_count,
        "vial_size_mg": state.vial_size_mg,
        "remaining_in_current_vial_mg": round(state.remaining_in_current_vial_mg, 4),
        "low_stock_threshold_vials": state.low_stock_threshold_vials,
        "auto_decrement": state.auto_decrement,
        "total_remaining_mg": round(ledger.total_remaining_mg(state), 4),
        "is_low_stock": ledger.is_low_stock(state),
        "stock_status": ledger.stock_status(state),
    }


def reconstitution_to_dict(result: ReconstitutionResult) -> dict[str, Any]:
    return {
        "diluent_volume_ml": round(result.diluent_volume_ml, 4),
        "concentration": round(result.concentration, 4),
        "volume_to_draw_ml": round(result.volume_to_draw_ml, 4),
        "syringe_units": result.syringe_units,
        "doses_per_vial": round(result.doses_per_vial, 4),
        "diluent_too_small": result.diluent_too_small,
        "diluent_too_large": result.diluent_too_large,
        "draw_volume_large": result.draw_volume_large,
        "warnings": result.warnings,
    }


def error_payload(exc: Exception) -> dict[str, str]:
    return {"status": "error", "error_type": type(exc).__name__, "message": str(exc)}
