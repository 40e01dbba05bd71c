import pytest

from classops.analytics.unifier import distinct_values, unify
from classops.common.models import (
    AppClassRecord,
    ClassRecord,
    FbClassRecord,
    SourceTag,
    classify,
    is_app,
    is_fb,
)


def test_unify_stamps_ids_and_sources_in_sheet_order(fb_rows, app_rows):
    records = unify(fb_rows, app_rows)

    assert [record.id for record in records] == ["fb-1", "fb-2", "fb-3", "app-1", "app-2"]
    assert [classify(record) for record in records] == [SourceTag.FB] * 3 + [SourceTag.APP] * 2
    assert isinstance(records[0], FbClassRecord)
    assert isinstance(records[-1], AppClassRecord)


def test_unify_does_not_mutate_or_share_input_rows(fb_rows, app_rows):
    records = unify(fb_rows, app_rows)
    fb_rows[0]["teacher"] = "Changed"

    assert "id" not in fb_rows[0]
    assert records[0].teacher == "Rina"
    with pytest.raises(TypeError):
        records[0].fields["teacher"] = "Other"


def test_unify_handles_empty_feeds():
    assert unify([], []) == []
    only_app = unify([], [{"teacher": "Rina"}])
    assert [record.id for record in only_app] == ["app-1"]


def test_classification_uses_the_stamp_not_the_fields():
    # An Fb row that happens to carry App column names is still Fb.
    records = unify([{"teacher": "Rina", "class_duration": "45", "average_class_rating": "5"}], [{}])

    assert is_fb(records[0]) and not is_app(records[0])
    assert records[0].duration == 0.0
    assert records[0].rating == 0.0
    assert is_app(records[1])
    assert records[1].teacher == ""


def test_platform_specific_field_access():
    fb, app = unify(
        [{"total_duration": "30", "highest_attendance": "90", "average_attendance": "40", "product_type": "HSC"}],
        [{"class_duration": "45", "total_attendance": "70", "product": "Admission", "subject": "Bio"}],
    )

    assert (fb.duration, fb.peak_attendance, fb.attendance, fb.product) == (30.0, 90.0, 40.0, "HSC")
    assert (app.duration, app.peak_attendance, app.attendance, app.product) == (45.0, 70.0, 70.0, "Admission")
    assert app.course_name == "Bio"


def test_distinct_values_keeps_first_seen_order(records):
    assert distinct_values(records, lambda record: record.teacher) == ["Rina", "Karim"]
    assert distinct_values(records, lambda record: record.product) == ["HSC 26", "SSC 26", "Admission"]


def test_base_record_cannot_be_built_without_a_platform():
    with pytest.raises(TypeError):
        ClassRecord(id="x-1", fields={})
