"""Percentages of platform totals and issue shares."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable

from classops.analytics.filters import FilterDimension, FilterState, apply_filters_except
from classops.common.models import ClassRecord, TeacherStats

CONTRIBUTION_METRICS = ("class_count", "total_duration", "total_attendance")
UNCATEGORIZED = "Uncategorized"


def contribution(part: float, whole: float) -> float:
    """``part`` as a percentage of ``whole``; 0 whenever ``whole`` is not positive."""

    if whole <= 0:
        return 0.0
    return part / whole * 100.0


def teacher_contribution(stats: TeacherStats, platform: TeacherStats) -> Dict[str, float]:
    """Share of each platform-wide total contributed by ``stats``.

    ``platform`` should come from the unfiltered collection so the
    denominators do not move with the filters.
    """

    return {
        metric: contribution(getattr(stats, metric).total, getattr(platform, metric).total)
        for metric in CONTRIBUTION_METRICS
    }


@dataclass(frozen=True)
class IssueSummary:
    issue_count: int = 0
    base_count: int = 0
    percentage: float = 0.0
    breakdown: Dict[str, int] = field(default_factory=dict)


def issue_summary(records: Iterable[ClassRecord], filters: FilterState) -> IssueSummary:
    """How many classes under the other active filters carry a selected issue type."""

    if not filters.issue_types:
        return IssueSummary()
    base = apply_filters_except(records, filters, FilterDimension.ISSUE_TYPE)
    if not base:
        return IssueSummary()

    counts: Dict[str, int] = {}
    issue_count = 0
    for record in base:
        if record.issues_type in filters.issue_types:
            issue_count += 1
            product = record.product or UNCATEGORIZED
            counts[product] = counts.get(product, 0) + 1

    breakdown = dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))
    return IssueSummary(
        issue_count=issue_count,
        base_count=len(base),
        percentage=contribution(issue_count, len(base)),
        breakdown=breakdown,
    )
