from classops.analytics.aggregator import aggregate, aggregate_summary
from classops.analytics.comparator import compare
from classops.analytics.ranking import chart_series, rank
from classops.analytics.tables import (
    chart_frame,
    comparison_frame,
    course_breakdown_frame,
    ranking_frame,
    records_frame,
    summary_frame,
    teacher_stats_frame,
)


def test_records_frame_reads_platform_columns(records):
    frame = records_frame(records, columns=("id", "source", "teacher", "product", "attendance"))

    assert list(frame.columns) == ["id", "source", "teacher", "product", "attendance"]
    assert frame["source"].tolist() == ["FB", "FB", "FB", "APP", "APP"]
    assert frame["product"].tolist() == ["HSC 26", "SSC 26", "HSC 26", "Admission", "Admission"]
    assert frame["attendance"].tolist() == [800, 300, 100, 1500, 200]


def test_records_frame_for_no_records_keeps_columns():
    frame = records_frame([])

    assert frame.empty
    assert "teacher" in frame.columns


def test_summary_frame_has_platform_split(records):
    frame = summary_frame(aggregate_summary(records))

    assert frame.index.name == "metric"
    assert list(frame.columns) == ["fb", "app", "total"]
    assert frame.loc["Total classes"].tolist() == [3, 2, 5]
    assert frame.loc["Average rating", "total"] == 4.5


def test_teacher_stats_frame(records):
    frame = teacher_stats_frame(aggregate(records))

    assert frame["teacher"].tolist() == ["Rina", "Karim"]
    assert frame["fb_classes"].tolist() == [1, 1]
    assert frame["app_classes"].tolist() == [1, 1]


def test_course_breakdown_frame_is_sorted_by_total(records):
    frame = course_breakdown_frame(aggregate(records)["Rina"])

    assert frame["course"].tolist() == ["Physics", "Chemistry"]
    assert course_breakdown_frame(None).empty


def test_ranking_and_chart_frames(records):
    stats = aggregate(records)

    ranking = ranking_frame(rank(stats, "total_duration", 1))
    assert ranking.to_dict("records") == [{"teacher": "Rina", "total_duration": 150}]

    chart = chart_frame(chart_series(stats, "total_duration", top_n=1))
    assert chart.index.tolist() == ["Rina", "Others"]
    assert chart.loc["Others", "value"] == 85


def test_comparison_frame_disambiguates_same_group(records):
    frame = comparison_frame(compare(["Rina"], ["Rina"], records))

    assert list(frame.columns) == ["Rina", "Rina (2)"]
    assert frame.loc["Total classes"].tolist() == [2, 2]


def test_comparison_frame_with_nothing_selected(records):
    frame = comparison_frame(compare([], [], records))

    assert list(frame.columns) == ["Group 1", "Group 2"]
    assert frame["Group 1"].isna().all()
