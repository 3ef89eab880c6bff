"""Reconstitution math: how much diluent to add to a lyophilized vial.

Insulin syringes are graduated in units, 100 units = 1 ml. Given the vial
content, the desired dose, and the syringe marking the user wants each dose
to land on, solve backwards for the diluent volume::

    syringe_units = volume_to_draw * 100
    volume_to_draw = dose / concentration
    concentration = vial_size / diluent
    => diluent = (syringe_units * vial_size) / (dose * 100)

Deterministic, no I/O. Invalid input raises a ``ReconstitutionError`` subclass
and no result is produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

UNITS_PER_ML = 100.0
MAX_VIAL_SIZE = 100000.0
MAX_SYRINGE_UNITS = 100.0

# Advisory thresholds (ml)
DILUENT_TOO_SMALL_ML = 0.3
DILUENT_TOO_LARGE_ML = 5.0
DRAW_VOLUME_LARGE_ML = 1.0


class VialUnit(str, Enum):
    MG = "mg"
    IU = "IU"


class DoseUnit(str, Enum):
    MG = "mg"
    MCG = "mcg"
    IU = "IU"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ReconstitutionError(ValueError):
    """Base class for reconstitution input errors."""

    reason: str = "Invalid reconstitution input"

    def __init__(self, reason: str | None = None) -> None:
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)


class InvalidVialSizeError(ReconstitutionError):
    reason = "Enter a valid vial size"


class InvalidDoseError(ReconstitutionError):
    reason = "Enter a valid desired dose"


class DoseExceedsVialError(ReconstitutionError):
    reason = "Dose cannot exceed vial size"


class InvalidSyringeUnitsError(ReconstitutionError):
    reason = "Enter valid syringe units (1-100)"


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReconstitutionResult:
    diluent_volume_ml: float    # how much BAC water to add
    concentration: float        # vial units per ml after mixing
    volume_to_draw_ml: float    # ml per dose
    syringe_units: float        # insulin syringe units per dose
    doses_per_vial: float

    @property
    def diluent_too_small(self) -> bool:
        return self.diluent_volume_ml < DILUENT_TOO_SMALL_ML

    @property
    def diluent_too_large(self) -> bool:
        return self.diluent_volume_ml > DILUENT_TOO_LARGE_ML

    @property
    def draw_volume_large(self) -> bool:
        return self.volume_to_draw_ml > DRAW_VOLUME_LARGE_ML

    @property
    def warnings(self) -> list[str]:
        messages = []
        if self.diluent_too_small:
            messages.append("Diluent volume is very small and hard to measure accurately.")
        if self.diluent_too_large:
            messages.append("Diluent volume is large and may not fit a standard vial.")
        if self.draw_volume_large:
            messages.append("Draw volume exceeds 1 ml, which is unusual for subcutaneous dosing.")
        return messages

    @property
    def diluent_string(self) -> str:
        return f"{self.diluent_volume_ml:.2f} ml"

    @property
    def volume_to_draw_string(self) -> str:
        return f"{self.volume_to_draw_ml:.3f} ml"

    @property
    def syringe_units_string(self) -> str:
        return f"{self.syringe_units:.1f} units"

    @property
    def doses_per_vial_string(self) -> str:
        return f"{int(self.doses_per_vial)} doses"


def dose_in_vial_units(desired_dose: float, vial_unit: VialUnit, dose_unit: DoseUnit) -> float:
    """Express the dose in the vial's unit (mcg -> mg for mg vials; IU as-is)."""
    if vial_unit is VialUnit.MG and dose_unit is DoseUnit.MCG:
        return desired_dose / 1000.0
    return desired_dose


def solve(
    vial_size: float,
    desired_dose: float,
    syringe_units: float = 20.0,
    *,
    vial_unit: VialUnit = VialUnit.MG,
    dose_unit: DoseUnit = DoseUnit.MG,
    max_vial_size: float = MAX_VIAL_SIZE,
) -> ReconstitutionResult:
    """Solve for the diluent volume that puts each dose on ``syringe_units``.

    Args:
        vial_size: Vial content in ``vial_unit``.
        desired_dose: Dose per injection in ``dose_unit``.
        syringe_units: Syringe marking (units, 100 = 1 ml) each dose should fill.
        vial_unit: mg or IU.
        dose_unit: mg, mcg or IU.
        max_vial_size: Sanity bound on ``vial_size``.

    Raises:
        InvalidVialSizeError: vial_size <= 0 or above ``max_vial_size``.
        InvalidDoseError: desired dose <= 0.
        DoseExceedsVialError: dose larger than the vial content.
        InvalidSyringeUnitsError: syringe_units outside (0, 100].
    """
    if not 0 < vial_size <= max_vial_size:
        raise InvalidVialSizeError()

    dose = dose_in_vial_units(desired_dose, vial_unit, dose_unit)
    if not dose > 0:
        raise InvalidDoseError()
    if dose > vial_size:
        raise DoseExceedsVialError()
    if not 0 < syringe_units <= MAX_SYRINGE_UNITS:
        raise InvalidSyringeUnitsError()

    diluent_ml = (syringe_units * vial_size) / (dose * UNITS_PER_ML)
    concentration = vial_size / diluent_ml
    volume_to_draw = dose / concentration

    return ReconstitutionResult(
        diluent_volume_ml=diluent_ml,
        concentration=concentration,
        volume_to_draw_ml=volume_to_draw,
        syringe_units=syringe_units,
        doses_per_vial=vial_size / dose,
    )


# ---------------------------------------------------------------------------
# Presets and explanation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Preset:
    name: str
    vial_size: float
    vial_unit: VialUnit
    typical_dose: float
    dose_unit: DoseUnit
    syringe_units: float = 20.0


PRESETS: list[Preset] = [
    Preset("Retatrutide (10mg)", 10, VialUnit.MG, 2, DoseUnit.MG),
    Preset("HGH (10 IU)", 10, VialUnit.IU, 2, DoseUnit.IU),
    Preset("HCG (5000 IU)", 5000, VialUnit.IU, 500, DoseUnit.IU),
    Preset("BPC-157 (5mg)", 5, VialUnit.MG, 250, DoseUnit.MCG),
    Preset("Tirzepatide (5mg)", 5, VialUnit.MG, 2.5, DoseUnit.MG),
    Preset("Semaglutide (3mg)", 3, VialUnit.MG, 250, DoseUnit.MCG, 25),
    Preset("CJC/Ipa (2mg)", 2, VialUnit.MG, 100, DoseUnit.MCG),
]


def find_preset(name: str) -> Preset | None:
    wanted = name.strip().lower()
    if not wanted:
        return None
    for preset in PRESETS:
        if preset.name.lower() == wanted or preset.name.lower().startswith(wanted):
            return preset
    return None


def solve_preset(preset: Preset) -> ReconstitutionResult:
    return solve(
        preset.vial_size,
        preset.typical_dose,
        preset.syringe_units,
        vial_unit=preset.vial_unit,
        dose_unit=preset.dose_unit,
    )


def explain(
    result: ReconstitutionResult,
    *,
    vial_size: float,
    vial_unit: VialUnit,
    desired_dose: float,
    dose_unit: DoseUnit,
) -> str:
    """Plain-language mixing and drawing instructions."""
    return (
        f"Add {result.diluent_string} of BAC water to your {vial_size:g} {vial_unit.value} vial.\n\n"
        f"Each {desired_dose:g} {dose_unit.value} dose = {result.syringe_units:.0f} units on your syringe.\n\n"
        f"This vial will give you {result.doses_per_vial_string}."
    )
