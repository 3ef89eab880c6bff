"""Vial inventory ledger.

Every operation takes an ``InventoryState`` snapshot and returns a new one.
The one failure mode of consumption, insufficient stock, is reported through
the ``success`` flag of ``decrement`` rather than an exception so the host
can decide whether to block the dose log.

Invariants kept by every operation:
    0 <= remaining_in_current_vial_mg <= vial_size_mg
    vial_count >= 0
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import replace

from atlas.domains.dosing.domain_logic.models import InventoryState, InventoryValidationError

logger = logging.getLogger(__name__)


def decrement(state: InventoryState, dose_mg: float) -> tuple[InventoryState, bool]:
    """Consume one dose from stock.

    Args:
        state: Current inventory snapshot.
        dose_mg: Dose amount in mg.

    Returns:
        (new_state, success). Manual-tracking inventories succeed unchanged.
        A final partial vial that cannot cover the dose is zeroed out and
        still reported as a success. A dose that is not positive fails and
        leaves stock untouched.
    """
    if not dose_mg > 0:
        return state, False

    if not state.auto_decrement:
        return state, True

    remaining = state.remaining_in_current_vial_mg

    if remaining >= dose_mg:
        return replace(state, remaining_in_current_vial_mg=remaining - dose_mg), True

    if state.vial_count > 1:
        # Finish the open vial and draw the rest from a fresh one.
        still_needed = dose_mg - remaining
        new_remaining = max(0.0, state.vial_size_mg - still_needed)
        return replace(
            state,
            vial_count=state.vial_count - 1,
            remaining_in_current_vial_mg=new_remaining,
        ), True

    if remaining > 0:
        logger.debug(
            "Dose of %.3f mg exceeds last vial (%.3f mg left); consuming remainder",
            dose_mg,
            remaining,
        )
        return replace(state, remaining_in_current_vial_mg=0.0), True

    return state, False


def add_vials(state: InventoryState, count: int) -> InventoryState:
    """Restock ``count`` sealed vials.

    Raises:
        InventoryValidationError: If ``count`` is negative.
    """
    if count < 0:
        raise InventoryValidationError(f"Cannot add a negative number of vials: {count}")
    return replace(state, vial_count=state.vial_count + count)


def start_new_vial(state: InventoryState) -> InventoryState:
    """Discard what is left in the open vial and open a fresh one."""
    return replace(
        state,
        vial_count=max(0, state.vial_count - 1),
        remaining_in_current_vial_mg=state.vial_size_mg,
    )


def set_remaining_in_current_vial(state: InventoryState, amount_mg: float) -> InventoryState:
    """Manually correct the open vial's contents, clamped to [0, vial size]."""
    clamped = min(max(0.0, amount_mg), state.vial_size_mg)
    return replace(state, remaining_in_current_vial_mg=clamped)


# ---------------------------------------------------------------------------
# Derived reads
# ---------------------------------------------------------------------------

def total_remaining_mg(state: InventoryState) -> float:
    sealed = max(0, state.vial_count - 1) * state.vial_size_mg
    return sealed + max(0.0, state.remaining_in_current_vial_mg)


def is_low_stock(state: InventoryState) -> bool:
    return state.vial_count <= state.low_stock_threshold_vials


def low_stock_items(inventories: Mapping[str, InventoryState]) -> list[str]:
    """Keys of low-stock inventories, fewest vials first."""
    low = [key for key, state in inventories.items() if is_low_stock(state)]
    return sorted(low, key=lambda key: inventories[key].vial_count)


def remaining_doses(state: InventoryState, dose_mg: float) -> int:
    if dose_mg <= 0:
        return 0
    return math.floor(total_remaining_mg(state) / dose_mg)


def days_of_supply(state: InventoryState, dose_mg: float, interval_days: float) -> int:
    """Days the stock lasts at one dose every ``interval_days``."""
    return math.floor(remaining_doses(state, dose_mg) * interval_days)


def stock_status(state: InventoryState) -> str:
    plural = "" if state.vial_count == 1 else "s"
    if state.vial_count == 0 and state.remaining_in_current_vial_mg <= 0:
        return "Out of stock"
    if is_low_stock(state):
        return f"Low stock ({state.vial_count} vial{plural})"
    return f"{state.vial_count} vial{plural}"


def remaining_string(state: InventoryState) -> str:
    total = total_remaining_mg(state)
    if total >= 1000:
        return f"{total / 1000:.1f}g remaining"
    return f"{total:.0f}mg remaining"
