"""pandas frames handed to the presentation layer."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from classops.analytics.comparator import ComparisonResult
from classops.analytics.ranking import ChartPoint, RankingResult
from classops.common.models import ClassRecord, TeacherStats

DEFAULT_RECORD_COLUMNS = ("source", "date", "teacher", "subject", "product", "attendance", "duration")

TEACHER_COLUMNS = [
    "teacher",
    "class_count",
    "fb_classes",
    "app_classes",
    "total_duration",
    "avg_duration",
    "avg_attendance",
    "highest_peak_attendance",
    "average_rating",
    "rated_classes_count",
]


def records_frame(
    records: Iterable[ClassRecord],
    columns: Sequence[str] = DEFAULT_RECORD_COLUMNS,
) -> pd.DataFrame:
    """One row per class with the combined-table columns.

    ``product``, ``topic``, ``attendance``, ``duration`` and ``rating`` are
    read through the record's platform so both feeds share a column.
    """

    rows = [{column: _record_cell(record, column) for column in columns} for record in records]
    return pd.DataFrame(rows, columns=list(columns))


def teacher_stats_frame(stats: Union[Mapping[str, TeacherStats], Iterable[TeacherStats]]) -> pd.DataFrame:
    items = list(stats.values()) if isinstance(stats, Mapping) else list(stats)
    rows = [
        {
            "teacher": entry.name,
            "class_count": entry.class_count.total,
            "fb_classes": entry.class_count.fb,
            "app_classes": entry.class_count.app,
            "total_duration": entry.total_duration.total,
            "avg_duration": entry.avg_duration.total,
            "avg_attendance": entry.avg_attendance.total,
            "highest_peak_attendance": entry.highest_peak_attendance.total,
            "average_rating": entry.average_rating,
            "rated_classes_count": entry.rated_classes_count,
        }
        for entry in items
    ]
    return pd.DataFrame(rows, columns=TEACHER_COLUMNS)


def summary_frame(stats: TeacherStats) -> pd.DataFrame:
    """Fb / App / total split of the headline metrics."""

    rows = {
        "Total classes": stats.class_count.as_dict(),
        "Total duration (min)": stats.total_duration.as_dict(),
        "Total attendance": stats.total_attendance.as_dict(),
        "Average attendance": stats.avg_attendance.as_dict(),
        "Highest attendance": stats.highest_peak_attendance.as_dict(),
        "Average rating": {"fb": 0.0, "app": stats.average_rating, "total": stats.average_rating},
    }
    frame = pd.DataFrame.from_dict(rows, orient="index", columns=["fb", "app", "total"])
    frame.index.name = "metric"
    return frame


def course_breakdown_frame(stats: Optional[TeacherStats]) -> pd.DataFrame:
    columns = ["course", "fb", "app", "total"]
    if stats is None:
        return pd.DataFrame(columns=columns)
    rows = [
        {"course": course, "fb": detail.fb, "app": detail.app, "total": detail.total}
        for course, detail in stats.course_breakdown.items()
    ]
    frame = pd.DataFrame(rows, columns=columns)
    return frame.sort_values("total", ascending=False, kind="stable").reset_index(drop=True)


def ranking_frame(ranking: RankingResult) -> pd.DataFrame:
    return pd.DataFrame(
        [{"teacher": item.name, ranking.metric: item.value} for item in ranking.top],
        columns=["teacher", ranking.metric],
    )


def chart_frame(points: List[ChartPoint]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [{"name": point.name, "value": point.value, "share": point.share} for point in points],
        columns=["name", "value", "share"],
    )
    return frame.set_index("name")


def comparison_frame(result: ComparisonResult) -> pd.DataFrame:
    first = result.group1.name if result.group1 is not None else "Group 1"
    second = result.group2.name if result.group2 is not None else "Group 2"
    if first == second:
        second = f"{second} (2)"
    frame = pd.DataFrame(
        [{"metric": row.label, first: row.group1, second: row.group2} for row in result.rows],
        columns=["metric", first, second],
    )
    return frame.set_index("metric")


def _record_cell(record: ClassRecord, column: str):
    if column == "id":
        return record.id
    if column == "source":
        return record.source.value.upper()
    if column in _PLATFORM_COLUMNS:
        return getattr(record, column)
    return record.get(column)


_PLATFORM_COLUMNS = frozenset(
    ("product", "topic", "course_name", "attendance", "duration", "peak_attendance", "rating")
)
