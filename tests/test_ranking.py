import math

import pytest

from classops.analytics.aggregator import aggregate
from classops.analytics.ranking import (
    LEADERBOARD_METRICS,
    OTHERS_NAME,
    chart_series,
    metric_value,
    rank,
    top_teachers,
)
from classops.analytics.unifier import unify


@pytest.fixture
def teacher_stats():
    fb = [
        {"teacher": "A", "total_duration": "10", "average_attendance": "5"},
        {"teacher": "B", "total_duration": "40", "average_attendance": "1"},
        {"teacher": "C", "total_duration": "40", "average_attendance": "9"},
        {"teacher": "D", "total_duration": "5", "average_attendance": "2"},
        {"teacher": "A", "total_duration": "20", "average_attendance": "5"},
    ]
    app = [{"teacher": "E", "class_duration": "15", "total_attendance": "30"}]
    return aggregate(unify(fb, app))


def test_rank_sorts_descending_with_stable_ties(teacher_stats):
    result = rank(teacher_stats, "total_duration", 2)

    assert [(item.name, item.value) for item in result.top] == [("B", 40.0), ("C", 40.0)]
    assert [entry.name for entry in result.others] == ["A", "E", "D"]
    assert result.others_value == 30 + 15 + 5


@pytest.mark.parametrize("top_n", [0, 1, 2, 3, 5, 10])
@pytest.mark.parametrize(
    "metric", ["class_count", "total_duration", "total_attendance", "avg_attendance", "avg_duration"]
)
def test_top_plus_others_equals_total(teacher_stats, metric, top_n):
    result = rank(teacher_stats, metric, top_n)
    full = math.fsum(metric_value(entry, metric) for entry in teacher_stats.values())

    assert math.fsum(item.value for item in result.top) + result.others_value == full
    assert result.total == full
    assert len(result.top) == min(top_n, len(teacher_stats))


@pytest.fixture
def fractional_stats():
    fb = [
        {"teacher": name, "average_attendance": value}
        for name, value in [("A", "19.194892"), ("B", "802.265061"), ("C", "63.767256"), ("D", "190.240611")]
    ]
    return aggregate(unify(fb, []))


@pytest.mark.parametrize("top_n", [0, 4, 10])
def test_fractional_averages_keep_exact_total(fractional_stats, top_n):
    result = rank(fractional_stats, "avg_attendance", top_n)
    full = math.fsum(metric_value(entry, "avg_attendance") for entry in fractional_stats.values())

    assert math.fsum(item.value for item in result.top) + result.others_value == full
    assert result.total == full


@pytest.mark.parametrize("top_n", [1, 2, 3])
def test_fractional_averages_split_anywhere(fractional_stats, top_n):
    result = rank(fractional_stats, "avg_attendance", top_n)
    full = math.fsum(metric_value(entry, "avg_attendance") for entry in fractional_stats.values())

    assert result.total == pytest.approx(full)


def test_negative_top_n_puts_everyone_in_others(teacher_stats):
    result = rank(teacher_stats, "class_count", -3)

    assert result.top == []
    assert len(result.others) == len(teacher_stats)


def test_rank_accepts_plain_float_metrics(teacher_stats):
    result = rank(teacher_stats, "average_rating", 1)

    assert result.top[0].value == 0.0


def test_unknown_metric_is_rejected(teacher_stats):
    with pytest.raises(ValueError):
        rank(teacher_stats, "name", 3)


def test_top_teachers_covers_each_leaderboard(teacher_stats):
    boards = top_teachers(teacher_stats, top_n=1)

    assert list(boards) == list(LEADERBOARD_METRICS)
    assert boards["class_count"].top[0].name == "A"
    assert boards["avg_attendance"].top[0].name == "E"


def test_chart_series_appends_others_bucket(teacher_stats):
    points = chart_series(teacher_stats, "total_duration", top_n=3)

    assert [point.name for point in points] == ["B", "C", "A", OTHERS_NAME]
    assert [point.is_others for point in points] == [False, False, False, True]
    assert points[-1].value == 20
    assert sum(point.share for point in points) == pytest.approx(100.0)


def test_chart_series_without_remainder_has_no_others(teacher_stats):
    points = chart_series(teacher_stats, "class_count", top_n=30)

    assert OTHERS_NAME not in [point.name for point in points]


def test_teacher_named_others_is_not_the_bucket():
    fb = [
        {"teacher": "Others", "total_duration": "50"},
        {"teacher": "A", "total_duration": "10"},
        {"teacher": "B", "total_duration": "5"},
    ]

    points = chart_series(aggregate(unify(fb, [])), "total_duration", top_n=1)

    assert [(point.name, point.is_others) for point in points] == [(OTHERS_NAME, False), (OTHERS_NAME, True)]
    assert points[-1].value == 15


def test_empty_stats():
    assert rank({}, "class_count", 5).top == []
    assert chart_series({}, "class_count") == []
