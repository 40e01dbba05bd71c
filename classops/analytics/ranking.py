"""Leaderboards and chart series over per-teacher stats."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Union

from classops.analytics.contribution import contribution
from classops.common.models import TeacherStats

METRICS = (
    "class_count",
    "total_duration",
    "total_attendance",
    "avg_attendance",
    "avg_duration",
    "highest_peak_attendance",
    "average_rating",
    "rated_classes_count",
)
LEADERBOARD_METRICS = (
    "class_count",
    "avg_attendance",
    "highest_peak_attendance",
    "total_duration",
)
OTHERS_NAME = "Others"

StatsCollection = Union[Mapping[str, TeacherStats], Iterable[TeacherStats]]


@dataclass(frozen=True)
class RankedValue:
    name: str
    value: float


@dataclass
class RankingResult:
    metric: str
    top: List[RankedValue] = field(default_factory=list)
    others: List[TeacherStats] = field(default_factory=list)
    others_value: float = 0

    @property
    def total(self) -> float:
        return math.fsum([item.value for item in self.top] + [self.others_value])


@dataclass(frozen=True)
class ChartPoint:
    name: str
    value: float
    share: float
    is_others: bool = False


def metric_value(stats: TeacherStats, metric: str) -> float:
    if metric not in METRICS:
        raise ValueError(f"Unknown ranking metric: {metric}")
    value = getattr(stats, metric)
    return float(getattr(value, "total", value))


def rank(stats: StatsCollection, metric: str, top_n: int) -> RankingResult:
    """Sort descending on ``metric`` and split into the top ``top_n`` and the rest.

    Ties keep their incoming order (first-seen teacher order for
    ``aggregate`` output). The remainder is summed, not averaged, so
    ``top`` plus ``others_value`` always adds up to the full total. Sums use
    ``math.fsum`` so float metrics do not drift with the sorted order.
    """

    items = _as_list(stats)
    ordered = sorted(items, key=lambda entry: metric_value(entry, metric), reverse=True)
    cut = max(int(top_n), 0)
    others = ordered[cut:]
    return RankingResult(
        metric=metric,
        top=[RankedValue(entry.name, metric_value(entry, metric)) for entry in ordered[:cut]],
        others=others,
        others_value=math.fsum(metric_value(entry, metric) for entry in others),
    )


def top_teachers(stats: StatsCollection, top_n: int = 5) -> Dict[str, RankingResult]:
    items = _as_list(stats)
    return {metric: rank(items, metric, top_n) for metric in LEADERBOARD_METRICS}


def chart_series(stats: StatsCollection, metric: str, top_n: int = 30) -> List[ChartPoint]:
    """Bars for the top ``top_n`` teachers plus one ``Others`` bar for the rest."""

    ranking = rank(stats, metric, top_n)
    grand_total = ranking.total
    points = [
        ChartPoint(item.name, item.value, contribution(item.value, grand_total))
        for item in ranking.top
    ]
    if ranking.others:
        points.append(
            ChartPoint(
                OTHERS_NAME,
                ranking.others_value,
                contribution(ranking.others_value, grand_total),
                is_others=True,
            )
        )
    return points


def _as_list(stats: StatsCollection) -> List[TeacherStats]:
    if isinstance(stats, Mapping):
        return list(stats.values())
    return list(stats)
