"""Injection site rotation: recommend the next site from usage history.

Selection is two-tier. Every site gets a recency-weighted usage score::

    score(site) = sum(1 / (decay * days_since(entry) + 1)) over entries at site

The body-part group with the lowest total score is chosen first, then the
lowest-scoring site inside it. Ties inside the group go to the side (left or
right) used least recently, then to the site's raw value. Grouping comes from
``SITE_TABLE``, so the scoring here never names individual sites.

Recommendations are advisory; the caller may override them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from atlas.domains.dosing.domain_logic.models import SiteHistoryEntry
from atlas.domains.dosing.domain_logic.sites import (
    SITE_TABLE,
    InjectionCategory,
    Site,
    body_part_groups,
    category_of,
    sites_for,
)

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = 20
DEFAULT_STATS_LOOKBACK = 50
DEFAULT_TIME_DECAY = 1.0

_SECONDS_PER_DAY = 86400.0


@dataclass
class SiteUsage:
    """Usage summary for one site."""

    site: Site
    count: int
    last_used: datetime | None


@dataclass
class RotationAssessment:
    is_good: bool
    message: str


def _instant(ts: datetime) -> float:
    """POSIX time of ``ts``; naive values are read as local time."""
    return ts.timestamp()


def _days_since(ts: datetime, now: datetime) -> float:
    if (ts.tzinfo is None) == (now.tzinfo is None):
        seconds = (now - ts).total_seconds()
    else:
        seconds = _instant(now) - _instant(ts)
    return max(0.0, seconds / _SECONDS_PER_DAY)


def _recent(
    category: InjectionCategory,
    history: list[SiteHistoryEntry],
    lookback: int,
) -> list[SiteHistoryEntry]:
    """Newest-first entries for this category, truncated to ``lookback``."""
    entries = [e for e in history if category_of(e.site) is category]
    entries.sort(key=lambda e: _instant(e.timestamp), reverse=True)
    return entries[: max(0, lookback)]


def recency_scores(
    category: InjectionCategory,
    history: list[SiteHistoryEntry],
    now: datetime,
    *,
    lookback: int = DEFAULT_LOOKBACK,
    time_decay: float = DEFAULT_TIME_DECAY,
) -> dict[Site, float]:
    """Recency-weighted usage score for every site in the category."""
    scores: dict[Site, float] = {site: 0.0 for site in sites_for(category)}
    for entry in _recent(category, history, lookback):
        days_since = _days_since(entry.timestamp, now)
        scores[entry.site] += 1.0 / (time_decay * days_since + 1.0)
    return scores


def recommend_next_site(
    category: InjectionCategory,
    history: list[SiteHistoryEntry],
    now: datetime,
    *,
    lookback: int = DEFAULT_LOOKBACK,
    time_decay: float = DEFAULT_TIME_DECAY,
) -> Site:
    """Recommend where the next injection of this category should go.

    Args:
        category: Injection category whose site universe is searched.
        history: Site history entries (any order; other categories ignored).
        now: Reference time supplied by the caller.
        lookback: Number of most recent entries considered.
        time_decay: Decay rate for the recency weight.

    Returns:
        A site of ``category``. With no usable history, the category's first site.
    """
    recent = _recent(category, history, lookback)
    if not recent:
        return sites_for(category)[0]

    scores = recency_scores(category, recent, now, lookback=lookback, time_decay=time_decay)

    groups = body_part_groups(category)
    group_totals = {part: sum(scores[s] for s in sites) for part, sites in groups.items()}
    # min() keeps the first of equal totals, i.e. table declaration order.
    chosen_part = min(groups, key=lambda part: group_totals[part])

    side_last_used: dict[str, datetime] = {}
    for entry in recent:
        side_last_used.setdefault(SITE_TABLE[entry.site].side, entry.timestamp)

    def _side_recency(site: Site) -> float:
        last = side_last_used.get(SITE_TABLE[site].side)
        return float("-inf") if last is None else _instant(last)

    site = min(
        groups[chosen_part],
        key=lambda s: (scores[s], _side_recency(s), s.value),
    )
    logger.debug(
        "Recommended %s (group %s, score %.3f) from %d entries",
        site.value,
        chosen_part,
        scores[site],
        len(recent),
    )
    return site


def last_used_site(history: list[SiteHistoryEntry]) -> Site | None:
    if not history:
        return None
    return max(history, key=lambda e: _instant(e.timestamp)).site


def site_usage_stats(
    category: InjectionCategory,
    history: list[SiteHistoryEntry],
    *,
    lookback: int = DEFAULT_STATS_LOOKBACK,
) -> list[SiteUsage]:
    """Count and last use for every site in the category, least used first."""
    usage = {site: SiteUsage(site=site, count=0, last_used=None) for site in sites_for(category)}
    for entry in _recent(category, history, lookback):
        stats = usage[entry.site]
        stats.count += 1
        if stats.last_used is None:
            stats.last_used = entry.timestamp
    return sorted(usage.values(), key=lambda u: u.count)


def evaluate_rotation(
    category: InjectionCategory,
    history: list[SiteHistoryEntry],
    *,
    window: int = 5,
) -> RotationAssessment:
    """Check the most recent injections for poor rotation habits."""
    recent = _recent(category, history, window)
    if len(recent) < 2:
        return RotationAssessment(True, "Not enough history to evaluate rotation")

    sites = [e.site for e in recent]
    if len(set(sites)) == 1 and len(sites) > 2:
        return RotationAssessment(
            False,
            "Warning: Same site used multiple times. Consider rotating to prevent scar tissue.",
        )

    consecutive_same_side = sum(
        1
        for previous, current in zip(sites, sites[1:])
        if SITE_TABLE[previous].side == SITE_TABLE[current].side
    )
    if consecutive_same_side >= 2:
        return RotationAssessment(
            False,
            "Tip: Try alternating between left and right sides for better rotation.",
        )

    return RotationAssessment(True, "Good rotation pattern!")
