"""MCP tools for the reconstitution calculator."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from atlas.domains.dosing.domain_logic import reconstitution
from atlas.domains.dosing.domain_logic.reconstitution import (
    DoseUnit,
    ReconstitutionError,
    VialUnit,
)
from atlas.domains.dosing.tools.payloads import error_payload, reconstitution_to_dict

if TYPE_CHECKING:
    from atlas.core.config.settings import Settings

logger = logging.getLogger(__name__)


def register_reconstitution_tools(mcp: FastMCP, settings: Settings) -> None:
    """Register reconstitution calculator tools on the MCP server."""

    @mcp.tool
    async def reconstitution_calculator(
        ctx: Context,
        vial_size: float,
        desired_dose: float,
        syringe_units: float = 20.0,
        vial_unit: str = "mg",
        dose_unit: str = "mg",
    ) -> str:
        """Work out how much BAC water to add so each dose lands on a syringe marking.

        Args:
            vial_size: Vial content in vial_unit.
            desired_dose: Dose per injection in dose_unit.
            syringe_units: Insulin syringe units each dose should fill (100 units = 1 ml).
            vial_unit: 'mg' or 'IU'.
            dose_unit: 'mg', 'mcg' or 'IU'.
        """
        try:
            v_unit = VialUnit(vial_unit)
            d_unit = DoseUnit(dose_unit)
            result = reconstitution.solve(
                vial_size,
                desired_dose,
                syringe_units,
                vial_unit=v_unit,
                dose_unit=d_unit,
                max_vial_size=settings.max_vial_size,
            )
        except ReconstitutionError as exc:
            logger.debug("Rejected reconstitution input: %s", exc.reason)
            return json.dumps({
                "status": "error",
                "error_type": type(exc).__name__,
                "message": exc.reason,
            })
        except ValueError as exc:
            return json.dumps(error_payload(exc))

        logger.debug("Reconstitution: %s diluent for %g %s doses", result.diluent_string, desired_dose, d_unit.value)
        return json.dumps({
            "status": "ok",
            "result": reconstitution_to_dict(result),
            "explanation": reconstitution.explain(
                result,
                vial_size=vial_size,
                vial_unit=v_unit,
                desired_dose=desired_dose,
                dose_unit=d_unit,
            ),
        })

    @mcp.tool
    async def reconstitution_preset(ctx: Context, name: str) -> str:
        """Run the calculator for a common vial preset (e.g. 'BPC-157', 'HGH').

        Args:
            name: Preset name or its prefix.
        """
        preset = reconstitution.find_preset(name)
        if preset is None:
            return json.dumps({
                "status": "error",
                "message": f"Unknown preset: {name}",
                "available": [p.name for p in reconstitution.PRESETS],
            })

        result = reconstitution.solve_preset(preset)
        return json.dumps({
            "status": "ok",
            "preset": preset.name,
            "result": reconstitution_to_dict(result),
            "explanation": reconstitution.explain(
                result,
                vial_size=preset.vial_size,
                vial_unit=preset.vial_unit,
                desired_dose=preset.typical_dose,
                dose_unit=preset.dose_unit,
            ),
        })
