"""Teacher and platform statistics that power the dashboard."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from classops.analytics.contribution import issue_summary
from classops.analytics.filters import FilterState, apply_filters, filter_options
from classops.analytics.ranking import chart_series, top_teachers
from classops.common.models import (
    AverageDetail,
    ClassRecord,
    StatDetail,
    TeacherStats,
    is_app,
)

PLATFORM_NAME = "All classes"
CHART_METRICS = ("class_count", "avg_attendance", "total_duration")


def aggregate(
    records: Iterable[ClassRecord],
    images: Optional[Mapping[str, str]] = None,
) -> Dict[str, TeacherStats]:
    """Fold records into one ``TeacherStats`` per teacher name.

    Names are matched exactly (no case or whitespace folding). Records
    without a teacher are skipped here; they still count in
    ``aggregate_summary``. The mapping preserves first-seen teacher order.
    """

    images = images or {}
    stats: Dict[str, TeacherStats] = {}
    for record in records:
        name = record.teacher
        if not name:
            continue
        entry = stats.get(name)
        if entry is None:
            entry = stats[name] = TeacherStats(name=name, image_url=images.get(name))
        accumulate(entry, record)
    for entry in stats.values():
        finalize(entry)
    return stats


def aggregate_group(
    names: Sequence[str],
    records: Iterable[ClassRecord],
    images: Optional[Mapping[str, str]] = None,
    display_name: Optional[str] = None,
) -> Optional[TeacherStats]:
    """Treat several teacher names as one; ``None`` when no name is given."""

    names = list(names)
    if not names:
        return None
    members = set(names)
    stats = TeacherStats(
        name=display_name or ", ".join(names),
        image_url=(images or {}).get(names[0]),
    )
    for record in records:
        if record.teacher in members:
            accumulate(stats, record)
    finalize(stats)
    return stats


def aggregate_summary(records: Iterable[ClassRecord]) -> TeacherStats:
    """Platform-wide rollup over every record, teacher or not."""

    stats = TeacherStats(name=PLATFORM_NAME)
    for record in records:
        accumulate(stats, record)
    finalize(stats)
    return stats


def accumulate(stats: TeacherStats, record: ClassRecord) -> None:
    source = record.source
    stats.classes.append(record)
    stats.class_count.add(source)
    stats.total_duration.add(source, record.duration)
    stats.total_attendance.add(source, record.attendance)

    # Strictly greater: on ties the first class seen keeps the title.
    peak = record.peak_attendance
    if peak > stats.highest_peak_attendance.total:
        stats.highest_peak_attendance = StatDetail.single(source, peak)
        stats.highest_attendance_class = record

    if is_app(record):
        rating = record.rating
        # 0 means "not rated" in the app feed.
        if rating > 0:
            stats.total_rating += rating
            stats.rated_classes_count += 1
            stats.rated_classes.append(record)

    course = record.course_name
    if course:
        stats.course_breakdown.setdefault(course, StatDetail()).add(source)


def finalize(stats: TeacherStats) -> None:
    """Derive averages once all sums are in."""

    stats.avg_attendance = AverageDetail.from_sums(stats.total_attendance, stats.class_count)
    stats.avg_duration = AverageDetail.from_sums(stats.total_duration, stats.class_count)
    stats.average_rating = (
        stats.total_rating / stats.rated_classes_count if stats.rated_classes_count > 0 else 0.0
    )


class Aggregator:
    """Calculates every summary the dashboard shows for one filter state."""

    def __init__(
        self,
        images: Optional[Mapping[str, str]] = None,
        top_n: int = 5,
        chart_top_n: int = 30,
    ) -> None:
        self.images = dict(images or {})
        self.top_n = max(int(top_n), 1)
        self.chart_top_n = max(int(chart_top_n), 1)

    def run(self, records: Sequence[ClassRecord], filters: Optional[FilterState] = None) -> Dict[str, Any]:
        filters = filters or FilterState()
        filtered = apply_filters(records, filters)
        teacher_stats = aggregate(filtered, self.images)
        return {
            "filtered_records": filtered,
            "options": filter_options(records),
            "summary": aggregate_summary(filtered),
            "platform_totals": aggregate_summary(records),
            "issue_summary": issue_summary(records, filters),
            "teacher_stats": teacher_stats,
            "top_teachers": top_teachers(teacher_stats, self.top_n),
            "charts": {
                metric: chart_series(teacher_stats, metric, self.chart_top_n)
                for metric in CHART_METRICS
            },
        }

    def teacher_profile(self, names: Sequence[str], records: Sequence[ClassRecord]) -> Optional[TeacherStats]:
        return aggregate_group(names, records, self.images)

    def teachers(self, records: Sequence[ClassRecord]) -> List[str]:
        return sorted({record.teacher for record in records if record.teacher})
