"""Side-by-side comparison of two teacher groups."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from classops.analytics.aggregator import aggregate_group
from classops.common.models import ClassRecord, TeacherStats

# (metric key, label, value getter)
COMPARISON_METRICS: Tuple[Tuple[str, str, Callable[[TeacherStats], float]], ...] = (
    ("class_count", "Total classes", lambda stats: stats.class_count.total),
    ("total_duration", "Total duration (min)", lambda stats: stats.total_duration.total),
    ("avg_duration", "Average duration (min)", lambda stats: stats.avg_duration.total),
    ("avg_attendance", "Average attendance", lambda stats: stats.avg_attendance.total),
    ("highest_peak_attendance", "Highest peak attendance", lambda stats: stats.highest_peak_attendance.total),
    ("average_rating", "Average rating", lambda stats: stats.average_rating),
    ("rated_classes_count", "Rated classes", lambda stats: stats.rated_classes_count),
)


@dataclass(frozen=True)
class ComparisonRow:
    metric: str
    label: str
    group1: Optional[float]
    group2: Optional[float]


@dataclass
class ComparisonResult:
    group1: Optional[TeacherStats]
    group2: Optional[TeacherStats]
    rows: List[ComparisonRow] = field(default_factory=list)


def compare(
    names_group1: Sequence[str],
    names_group2: Sequence[str],
    records: Sequence[ClassRecord],
    images: Optional[Mapping[str, str]] = None,
) -> ComparisonResult:
    """Aggregate each name list as one pseudo-teacher and line the metrics up.

    An empty list yields ``None`` for that side ("nothing selected"); a list
    that matches no classes yields zeroed stats.
    """

    group1 = aggregate_group(names_group1, records, images)
    group2 = aggregate_group(names_group2, records, images)
    rows = [
        ComparisonRow(
            metric=metric,
            label=label,
            group1=getter(group1) if group1 is not None else None,
            group2=getter(group2) if group2 is not None else None,
        )
        for metric, label, getter in COMPARISON_METRICS
    ]
    return ComparisonResult(group1=group1, group2=group2, rows=rows)
