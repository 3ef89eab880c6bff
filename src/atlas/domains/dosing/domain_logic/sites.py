"""Injection site catalogue: category-keyed site enums plus a static lookup table.

Intramuscular (IM) and subcutaneous (SubQ) sites are disjoint enumerations.
Everything the rotation logic needs to know about a site (which body part it
belongs to, which side it is on, how to label it) lives in ``SITE_TABLE`` so
that site sets can change without touching the scoring algorithm.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class InjectionCategory(str, Enum):
    """Route of injection; each category has its own site universe."""

    INTRAMUSCULAR = "im"
    SUBCUTANEOUS = "subq"


class IntramuscularSite(str, Enum):
    GLUTE_LEFT = "glute_left"
    GLUTE_RIGHT = "glute_right"
    DELT_LEFT = "delt_left"
    DELT_RIGHT = "delt_right"
    QUAD_LEFT = "quad_left"
    QUAD_RIGHT = "quad_right"
    VG_LEFT = "vg_left"
    VG_RIGHT = "vg_right"


class SubcutaneousSite(str, Enum):
    LEFT_BELLY_UPPER = "left_belly_upper"
    LEFT_BELLY_LOWER = "left_belly_lower"
    RIGHT_BELLY_UPPER = "right_belly_upper"
    RIGHT_BELLY_LOWER = "right_belly_lower"
    LEFT_LOVE_HANDLE_UPPER = "left_love_handle_upper"
    LEFT_LOVE_HANDLE_LOWER = "left_love_handle_lower"
    RIGHT_LOVE_HANDLE_UPPER = "right_love_handle_upper"
    RIGHT_LOVE_HANDLE_LOWER = "right_love_handle_lower"
    GLUTE_LEFT_UPPER = "glute_left_upper"
    GLUTE_LEFT_LOWER = "glute_left_lower"
    GLUTE_RIGHT_UPPER = "glute_right_upper"
    GLUTE_RIGHT_LOWER = "glute_right_lower"
    THIGH_LEFT = "thigh_left"
    THIGH_RIGHT = "thigh_right"
    DELTOID_LEFT = "deltoid_left"
    DELTOID_RIGHT = "deltoid_right"


Site = IntramuscularSite | SubcutaneousSite

LEFT = "Left"
RIGHT = "Right"


@dataclass(frozen=True)
class SiteInfo:
    """Static metadata for one injection site."""

    body_part: str      # rotation group key
    side: str           # LEFT | RIGHT
    display_name: str
    short_name: str

    @property
    def is_left_side(self) -> bool:
        return self.side == LEFT


_IM = IntramuscularSite
_SQ = SubcutaneousSite

SITE_TABLE: dict[Site, SiteInfo] = {
    # Intramuscular
    _IM.GLUTE_LEFT: SiteInfo("Glute", LEFT, "Left Glute", "L Glute"),
    _IM.GLUTE_RIGHT: SiteInfo("Glute", RIGHT, "Right Glute", "R Glute"),
    _IM.DELT_LEFT: SiteInfo("Delt", LEFT, "Left Delt", "L Delt"),
    _IM.DELT_RIGHT: SiteInfo("Delt", RIGHT, "Right Delt", "R Delt"),
    _IM.QUAD_LEFT: SiteInfo("Quad", LEFT, "Left Quad", "L Quad"),
    _IM.QUAD_RIGHT: SiteInfo("Quad", RIGHT, "Right Quad", "R Quad"),
    _IM.VG_LEFT: SiteInfo("Ventrogluteal", LEFT, "Left VG", "L VG"),
    _IM.VG_RIGHT: SiteInfo("Ventrogluteal", RIGHT, "Right VG", "R VG"),
    # Subcutaneous
    _SQ.LEFT_BELLY_UPPER: SiteInfo("Belly", LEFT, "Left of Navel - Upper", "L Belly U"),
    _SQ.LEFT_BELLY_LOWER: SiteInfo("Belly", LEFT, "Left of Navel - Lower", "L Belly L"),
    _SQ.RIGHT_BELLY_UPPER: SiteInfo("Belly", RIGHT, "Right of Navel - Upper", "R Belly U"),
    _SQ.RIGHT_BELLY_LOWER: SiteInfo("Belly", RIGHT, "Right of Navel - Lower", "R Belly L"),
    _SQ.LEFT_LOVE_HANDLE_UPPER: SiteInfo("Love Handles", LEFT, "Left Love Handle - Upper", "L Handle U"),
    _SQ.LEFT_LOVE_HANDLE_LOWER: SiteInfo("Love Handles", LEFT, "Left Love Handle - Lower", "L Handle L"),
    _SQ.RIGHT_LOVE_HANDLE_UPPER: SiteInfo("Love Handles", RIGHT, "Right Love Handle - Upper", "R Handle U"),
    _SQ.RIGHT_LOVE_HANDLE_LOWER: SiteInfo("Love Handles", RIGHT, "Right Love Handle - Lower", "R Handle L"),
    _SQ.GLUTE_LEFT_UPPER: SiteInfo("Glutes", LEFT, "Left Glute - Upper", "L Glute U"),
    _SQ.GLUTE_LEFT_LOWER: SiteInfo("Glutes", LEFT, "Left Glute - Lower", "L Glute L"),
    _SQ.GLUTE_RIGHT_UPPER: SiteInfo("Glutes", RIGHT, "Right Glute - Upper", "R Glute U"),
    _SQ.GLUTE_RIGHT_LOWER: SiteInfo("Glutes", RIGHT, "Right Glute - Lower", "R Glute L"),
    _SQ.THIGH_LEFT: SiteInfo("Thighs", LEFT, "Left Thigh", "L Thigh"),
    _SQ.THIGH_RIGHT: SiteInfo("Thighs", RIGHT, "Right Thigh", "R Thigh"),
    _SQ.DELTOID_LEFT: SiteInfo("Deltoids", LEFT, "Left Back of Arm", "L Arm"),
    _SQ.DELTOID_RIGHT: SiteInfo("Deltoids", RIGHT, "Right Back of Arm", "R Arm"),
}

_SITES_BY_CATEGORY: dict[InjectionCategory, type[Enum]] = {
    InjectionCategory.INTRAMUSCULAR: IntramuscularSite,
    InjectionCategory.SUBCUTANEOUS: SubcutaneousSite,
}


def sites_for(category: InjectionCategory) -> list[Site]:
    """All sites of a category in declaration order (first = cold-start default)."""
    return list(_SITES_BY_CATEGORY[category])


def category_of(site: Site) -> InjectionCategory:
    if isinstance(site, IntramuscularSite):
        return InjectionCategory.INTRAMUSCULAR
    return InjectionCategory.SUBCUTANEOUS


def site_info(site: Site) -> SiteInfo:
    return SITE_TABLE[site]


def body_part_groups(category: InjectionCategory) -> dict[str, list[Site]]:
    """Group a category's sites by body part, preserving declaration order."""
    groups: dict[str, list[Site]] = {}
    for site in sites_for(category):
        groups.setdefault(SITE_TABLE[site].body_part, []).append(site)
    return groups


def site_for_category(raw: str | None, category: InjectionCategory) -> Site | None:
    """Parse a stored raw site value for the given category.

    Returns None for empty input or a value that belongs to another category.
    """
    if not raw:
        return None
    try:
        return _SITES_BY_CATEGORY[category](raw)
    except ValueError:
        return None


def parse_site(raw: str) -> Site:
    """Parse a raw site value from either category.

    Raises:
        ValueError: If ``raw`` is not a known site.
    """
    for enum_cls in _SITES_BY_CATEGORY.values():
        try:
            return enum_cls(raw)
        except ValueError:
            continue
    raise ValueError(f"Unknown injection site: {raw!r}")
