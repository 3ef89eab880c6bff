"""MCP Resources for the injection site catalogue and reconstitution presets."""

from __future__ import annotations

import json

from fastmcp import FastMCP

from atlas.domains.dosing.domain_logic.reconstitution import PRESETS
from atlas.domains.dosing.domain_logic.sites import InjectionCategory, body_part_groups, sites_for
from atlas.domains.dosing.tools.payloads import parse_injection_category, site_to_dict


def register_catalog_resources(mcp: FastMCP) -> None:
    """Register site and preset discovery resources on the MCP server."""

    @mcp.resource("sites://injection/{category}")
    def injection_sites_resource(category: str) -> str:
        """All injection sites for a category ('im' or 'subq'), grouped by body part."""
        injection_category: InjectionCategory = parse_injection_category(category)
        groups = body_part_groups(injection_category)
        return json.dumps(
            {
                "category": injection_category.value,
                "site_count": len(sites_for(injection_category)),
                "body_parts": {
                    part: [site_to_dict(site) for site in sites]
                    for part, sites in groups.items()
                },
            },
            indent=2,
        )

    @mcp.resource("reconstitution://presets")
    def reconstitution_presets_resource() -> str:
        """Common vial presets usable with the reconstitution_preset tool."""
        return json.dumps(
            {
                "preset_count": len(PRESETS),
                "presets": [
                    {
                        "name": p.name,
                        "vial_size": p.vial_size,
                        "vial_unit": p.vial_unit.value,
                        "typical_dose": p.typical_dose,
                        "dose_unit": p.dose_unit.value,
                        "syringe_units": p.syringe_units,
                    }
                    for p in PRESETS
                ],
            },
            indent=2,
        )
