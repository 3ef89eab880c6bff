"""Entity snapshots and domain constants for the dosing engine.

The host owns persistence; these frozen dataclasses are the plain-data
snapshots it passes in. Anything that looks like a mutation returns a new
snapshot via ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, time
from enum import Enum

from atlas.domains.dosing.domain_logic.sites import InjectionCategory, Site

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

DEFAULT_DOSE_TIME = time(8, 0)
DEFAULT_LOW_STOCK_THRESHOLD = 2
SKIPPED_DOSE_NOTE = "Dose skipped"

WEEKDAY_SHORT_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class ScheduleValidationError(ValueError):
    """Raised when a schedule variant is constructed with invalid parameters."""


class InventoryValidationError(ValueError):
    """Raised when an inventory snapshot or operation violates its invariants."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class DosageUnit(str, Enum):
    MG = "mg"
    MCG = "mcg"
    IU = "IU"
    ML = "ml"
    G = "g"
    UNITS = "units"
    CAPSULES = "caps"
    TABLETS = "tabs"

    @property
    def long_name(self) -> str:
        return _UNIT_LONG_NAMES[self]

    @property
    def to_milligrams(self) -> float:
        """Multiplier that converts an amount in this unit to mg.

        Count-like units (IU, capsules, ...) have no mass conversion and map 1:1.
        """
        return _UNIT_MG_FACTORS.get(self, 1.0)

    @property
    def is_injectable(self) -> bool:
        return self in (DosageUnit.MG, DosageUnit.MCG, DosageUnit.IU, DosageUnit.ML)


_UNIT_LONG_NAMES = {
    DosageUnit.MG: "milligrams",
    DosageUnit.MCG: "micrograms",
    DosageUnit.IU: "international units",
    DosageUnit.ML: "milliliters",
    DosageUnit.G: "grams",
    DosageUnit.UNITS: "units",
    DosageUnit.CAPSULES: "capsules",
    DosageUnit.TABLETS: "tablets",
}

_UNIT_MG_FACTORS = {
    DosageUnit.MCG: 0.001,
    DosageUnit.G: 1000.0,
}


class CompoundCategory(str, Enum):
    SUPPLEMENT = "supplement"
    PED = "ped"
    PEPTIDE = "peptide"
    MEDICINE = "medicine"

    @property
    def supports_inventory(self) -> bool:
        return self in (CompoundCategory.PED, CompoundCategory.PEPTIDE)

    @property
    def injection_category(self) -> InjectionCategory | None:
        if self is CompoundCategory.PED:
            return InjectionCategory.INTRAMUSCULAR
        if self is CompoundCategory.PEPTIDE:
            return InjectionCategory.SUBCUTANEOUS
        return None


# ---------------------------------------------------------------------------
# Schedule kinds (tagged variant)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Daily:
    @property
    def description(self) -> str:
        return "Daily"


@dataclass(frozen=True)
class EveryNDays:
    """Dose every ``n`` calendar days.

    ``n == 3`` is the legacy encoding of "every 3.5 days" and is evaluated as
    ``AlternatingDays((3, 4))``.
    """

    n: int

    def __post_init__(self) -> None:
        if self.n < 1:
            raise ScheduleValidationError(f"EveryNDays interval must be >= 1, got {self.n}")

    @property
    def is_legacy_alternating(self) -> bool:
        return self.n == 3

    @property
    def description(self) -> str:
        if self.n == 1:
            return "Daily"
        if self.is_legacy_alternating:
            return "Every 3.5 days"
        return f"Every {self.n} days"


@dataclass(frozen=True)
class AlternatingDays:
    """Cycle through a fixed sequence of gaps, e.g. (3, 4) for every 3.5 days."""

    lengths: tuple[int, ...] = (3, 4)

    def __post_init__(self) -> None:
        if not self.lengths:
            raise ScheduleValidationError("AlternatingDays needs at least one interval")
        if any(length < 1 for length in self.lengths):
            raise ScheduleValidationError(
                f"AlternatingDays intervals must all be >= 1, got {self.lengths}"
            )

    @property
    def cycle_days(self) -> int:
        return sum(self.lengths)

    @property
    def description(self) -> str:
        average = self.cycle_days / len(self.lengths)
        if average == int(average):
            return f"Every {int(average)} days"
        return f"Every {average:g} days"


@dataclass(frozen=True)
class SpecificWeekdays:
    """Dose on the given weekdays, 0 = Sunday ... 6 = Saturday."""

    days: frozenset[int]

    def __post_init__(self) -> None:
        if not self.days:
            raise ScheduleValidationError("SpecificWeekdays needs at least one day")
        invalid = sorted(d for d in self.days if not 0 <= d <= 6)
        if invalid:
            raise ScheduleValidationError(f"Weekdays must be in 0..6, got {invalid}")

    @property
    def sorted_days(self) -> list[int]:
        return sorted(self.days)

    @property
    def description(self) -> str:
        return ", ".join(WEEKDAY_SHORT_NAMES[d] for d in self.sorted_days)


@dataclass(frozen=True)
class AsNeeded:
    @property
    def description(self) -> str:
        return "As needed"


ScheduleKind = Daily | EveryNDays | AlternatingDays | SpecificWeekdays | AsNeeded


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

def _format_amount(amount: float) -> str:
    if amount == int(amount):
        return f"{amount:.0f}"
    return f"{amount:.2f}"


@dataclass(frozen=True)
class Regimen:
    """A user's ongoing tracked dosing plan for one compound."""

    compound_id: str
    dosage_amount: float
    dosage_unit: DosageUnit
    schedule: ScheduleKind
    notification_time: time | None = None
    start_date: datetime | None = None
    last_dose_date: datetime | None = None
    is_active: bool = True

    @property
    def dosage_string(self) -> str:
        return f"{_format_amount(self.dosage_amount)} {self.dosage_unit.value}"

    @property
    def schedule_description(self) -> str:
        return self.schedule.description

    def record_dose(self, at: datetime) -> Regimen:
        """Snapshot after a logged (or skipped) dose at ``at``."""
        return replace(self, last_dose_date=at)

    def deactivate(self) -> Regimen:
        return replace(self, is_active=False)


@dataclass(frozen=True)
class DoseEvent:
    """One logged administration. History is append-only."""

    compound_id: str
    timestamp: datetime
    dosage_amount: float
    unit: DosageUnit
    injection_site: Site | None = None
    notes: str | None = None

    @classmethod
    def skipped(cls, regimen: Regimen, at: datetime) -> DoseEvent:
        return cls(
            compound_id=regimen.compound_id,
            timestamp=at,
            dosage_amount=0.0,
            unit=regimen.dosage_unit,
            notes=SKIPPED_DOSE_NOTE,
        )

    @property
    def is_skipped(self) -> bool:
        return self.dosage_amount == 0 and self.notes == SKIPPED_DOSE_NOTE

    @property
    def dosage_string(self) -> str:
        return f"{_format_amount(self.dosage_amount)} {self.unit.value}"


@dataclass(frozen=True)
class SiteHistoryEntry:
    site: Site
    timestamp: datetime


def site_history(events: list[DoseEvent]) -> list[SiteHistoryEntry]:
    """Extract (site, timestamp) pairs from dose events, newest first."""
    entries = [
        SiteHistoryEntry(site=e.injection_site, timestamp=e.timestamp)
        for e in events
        if e.injection_site is not None
    ]
    entries.sort(key=lambda e: e.timestamp, reverse=True)
    return entries


@dataclass(frozen=True)
class InventoryState:
    """Vial stock for one compound.

    ``remaining_in_current_vial_mg`` is what is left in the opened vial;
    ``vial_count`` includes that vial.
    """

    vial_count: int
    vial_size_mg: float
    remaining_in_current_vial_mg: float
    low_stock_threshold_vials: int = DEFAULT_LOW_STOCK_THRESHOLD
    auto_decrement: bool = True

    def __post_init__(self) -> None:
        if self.vial_count < 0:
            raise InventoryValidationError(f"vial_count must be >= 0, got {self.vial_count}")
        if self.vial_size_mg <= 0:
            raise InventoryValidationError(f"vial_size_mg must be > 0, got {self.vial_size_mg}")
        if not 0 <= self.remaining_in_current_vial_mg <= self.vial_size_mg:
            raise InventoryValidationError(
                "remaining_in_current_vial_mg must be within "
                f"[0, {self.vial_size_mg}], got {self.remaining_in_current_vial_mg}"
            )

    @classmethod
    def new(
        cls,
        vial_count: int,
        vial_size_mg: float,
        *,
        low_stock_threshold_vials: int = DEFAULT_LOW_STOCK_THRESHOLD,
        auto_decrement: bool = True,
    ) -> InventoryState:
        """Start tracking with a full current vial."""
        return cls(
            vial_count=vial_count,
            vial_size_mg=vial_size_mg,
            remaining_in_current_vial_mg=vial_size_mg,
            low_stock_threshold_vials=low_stock_threshold_vials,
            auto_decrement=auto_decrement,
        )
