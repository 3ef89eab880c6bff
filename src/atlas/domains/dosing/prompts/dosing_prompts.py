"""MCP Prompts: interaction templates for common dosing journeys."""

from __future__ import annotations

from fastmcp import FastMCP


def register_dosing_prompts(mcp: FastMCP) -> None:
    """Register dosing domain MCP prompts."""

    @mcp.prompt()
    def log_dose_prompt(compound: str = "my compound") -> str:
        """Prompt template for logging a dose and planning the next one."""
        return f"""I just took my dose of {compound}. Please:

1. Log it with the current time
2. Tell me when my next dose is due
3. Update my vial inventory and warn me if stock is running low
4. Suggest where to inject next time, based on my recent sites

Keep it short. I only need the essentials."""

    @mcp.prompt()
    def reconstitution_walkthrough_prompt(
        vial_size: str = "5 mg",
        desired_dose: str = "250 mcg",
    ) -> str:
        """Prompt template for mixing a lyophilized vial step by step."""
        return f"""I have a {vial_size} vial and want to dose {desired_dose} per injection.

Walk me through reconstituting it:
1. How much bacteriostatic water should I add?
2. How many units do I draw on an insulin syringe for each dose?
3. How many doses will the vial give me?
4. Flag anything about these numbers that looks off.

Use the reconstitution calculator rather than doing the math by hand."""
