"""Streamlit dashboard for the class operations feeds."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pandas as pd
import streamlit as st

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from classops.analytics.aggregator import CHART_METRICS, Aggregator
from classops.analytics.comparator import compare
from classops.analytics.contribution import teacher_contribution
from classops.analytics.filters import FilterState, filter_options, sort_records
from classops.analytics.tables import (
    chart_frame,
    comparison_frame,
    course_breakdown_frame,
    ranking_frame,
    records_frame,
    teacher_stats_frame,
)
from classops.common.config import AppConfig, load_config
from classops.common.logging_setup import configure_logging
from classops.common.models import TeacherStats
from classops.common.numeric import format_duration
from classops.ingest.ingestion_service import DashboardSession, ImportService
from classops.ingest.sheets import SheetsClient

METRIC_LABELS = {
    "class_count": "Classes",
    "avg_attendance": "Avg. attendance",
    "highest_peak_attendance": "Highest attendance",
    "total_duration": "Duration (min)",
}
FILTER_MULTISELECTS = {
    "products": "Products",
    "courses": "Courses",
    "teachers": "Teachers",
    "subjects": "Subjects",
    "issue_types": "Issue types",
}
TABLE_COLUMNS = ["source", "date", "teacher", "subject", "product", "attendance", "duration", "rating", "issues_type"]


def _session() -> DashboardSession:
    if "dashboard_session" not in st.session_state:
        st.session_state["dashboard_session"] = DashboardSession()
    return st.session_state["dashboard_session"]


def _split(detail) -> str:
    return f"Fb: {detail.fb:,.0f} | App: {detail.app:,.0f}"


def _load(config: AppConfig, session: DashboardSession, year: str, force: bool = False) -> None:
    # A failed year is only retried via the refresh button.
    if not force and st.session_state.get("requested_year") == year:
        return
    st.session_state["requested_year"] = year
    service = ImportService(SheetsClient(credentials_file=config.sheets.credentials_file), config)
    with st.spinner(f"Loading class data for {year}..."):
        if session.reload(service, year):
            st.toast(f"Both Fb and App data for {year} loaded.")


def _store_filters(filters: FilterState) -> None:
    """Push a filter state into the sidebar widgets before they render."""

    st.session_state["filter_start_date"] = filters.start_date
    st.session_state["filter_end_date"] = filters.end_date
    for attribute in FILTER_MULTISELECTS:
        st.session_state[f"filter_{attribute}"] = sorted(getattr(filters, attribute))
    st.session_state["filter_query"] = filters.query


def _sidebar_filters(options) -> FilterState:
    st.sidebar.header("Filters")
    if st.sidebar.button("Clear filters") or "filter_query" not in st.session_state:
        _store_filters(FilterState().cleared())
    # Selections from another year may no longer be valid options.
    for attribute in FILTER_MULTISELECTS:
        key = f"filter_{attribute}"
        allowed = set(getattr(options, attribute))
        st.session_state[key] = [value for value in st.session_state.get(key, []) if value in allowed]
    filters = FilterState(
        start_date=st.sidebar.date_input("Start date", key="filter_start_date"),
        end_date=st.sidebar.date_input("End date", key="filter_end_date"),
        **{
            attribute: st.sidebar.multiselect(label, getattr(options, attribute), key=f"filter_{attribute}")
            for attribute, label in FILTER_MULTISELECTS.items()
        },
        query=st.sidebar.text_input("Search all columns", key="filter_query"),
    )
    if filters.is_active:
        st.sidebar.caption("Filters active.")
    return filters


def _summary_cards(summary: TeacherStats) -> None:
    cols = st.columns(5)
    cols[0].metric("Total classes", f"{summary.class_count.total:,.0f}")
    cols[0].caption(_split(summary.class_count))
    cols[1].metric("Total duration (min)", f"{summary.total_duration.total:,.0f}")
    cols[1].caption(_split(summary.total_duration))
    cols[2].metric("Average attendance", f"{summary.avg_attendance.total:,.2f}")
    cols[2].caption(f"Fb: {summary.avg_attendance.fb:,.2f} | App: {summary.avg_attendance.app:,.2f}")
    cols[3].metric("Highest attendance", f"{summary.highest_peak_attendance.total:,.0f}")
    peak_class = summary.highest_attendance_class
    if peak_class is not None:
        cols[3].caption(f"{peak_class.teacher} · {peak_class.topic} · {peak_class.date} ({peak_class.source.value.upper()})")
    cols[4].metric("Average class rating", f"{summary.average_rating:,.2f}")
    cols[4].caption(f"Based on {summary.rated_classes_count} rated App classes.")


def _teacher_profile(aggregator: Aggregator, records, platform: TeacherStats, teachers) -> None:
    st.subheader("Teacher profile")
    selected = st.multiselect("Teachers", teachers, key="profile_teachers")
    stats = aggregator.teacher_profile(selected, records)
    if stats is None:
        st.info("Select one or more teachers to see their profile.")
        return
    if stats.image_url:
        st.image(stats.image_url, width=120)
    cols = st.columns(4)
    cols[0].metric("Classes", f"{stats.class_count.total:,.0f}")
    cols[0].caption(_split(stats.class_count))
    cols[1].metric("Teaching time", format_duration(stats.total_duration.total))
    cols[1].caption(f"Avg: {format_duration(stats.avg_duration.total)}")
    cols[2].metric("Average attendance", f"{stats.avg_attendance.total:,.0f}")
    cols[2].caption(f"Peak: {stats.highest_peak_attendance.total:,.0f}")
    cols[3].metric("Average rating", f"{stats.average_rating:,.2f}")
    cols[3].caption(f"{stats.rated_classes_count} rated classes")

    shares = teacher_contribution(stats, platform)
    st.markdown("**Contribution to the platform**")
    st.dataframe(
        pd.DataFrame(
            {"share_pct": shares},
        ).rename(index={"class_count": "Classes", "total_duration": "Duration", "total_attendance": "Attendance"}),
        use_container_width=True,
    )
    st.markdown("**Course breakdown**")
    st.dataframe(course_breakdown_frame(stats), use_container_width=True)
    if stats.unique_courses:
        st.caption("Courses: " + ", ".join(stats.unique_courses))
    if stats.unique_product_types:
        st.caption("Products: " + ", ".join(stats.unique_product_types))


def _comparison(records, teachers, images) -> None:
    st.subheader("Compare teachers")
    col1, col2 = st.columns(2)
    first = col1.multiselect("Group 1", teachers, key="compare_group_1")
    second = col2.multiselect("Group 2", teachers, key="compare_group_2")
    result = compare(first, second, records, images)
    if result.group1 is None and result.group2 is None:
        st.info("Pick teachers on either side to compare.")
        return
    st.dataframe(comparison_frame(result), use_container_width=True)


def main() -> None:
    config_path = Path(os.environ.get("CLASSOPS_CONFIG", "config/local.yaml"))
    config = load_config(config_path)
    configure_logging(config.logging.level)

    st.set_page_config(page_title="Class Operations Dashboard", layout="wide")
    session = _session()
    st.title("Central Class Dashboard")
    st.caption("Combined Fb and App class feeds.")

    years = config.years or [config.dashboard.default_year]
    default_index = years.index(config.dashboard.default_year) if config.dashboard.default_year in years else 0
    year = st.sidebar.selectbox("Year", options=years, index=default_index)
    refresh = st.sidebar.button("Refresh data now")
    _load(config, session, year, force=refresh)

    if session.error:
        st.error(f"Data loading error: {session.error}")
    records = list(session.records)
    if not records:
        st.warning("No classes loaded yet.")

    aggregator = Aggregator(images=session.images, top_n=config.dashboard.top_n, chart_top_n=config.dashboard.chart_top_n)
    filters = _sidebar_filters(filter_options(records))
    tables = aggregator.run(records, filters)

    st.subheader("Overview")
    _summary_cards(tables["summary"])

    issues = tables["issue_summary"]
    if filters.issue_types:
        st.subheader("Issue percentage")
        st.metric("Classes with selected issues", f"{issues.percentage:.2f}%")
        st.caption(f"({issues.issue_count:,} / {issues.base_count:,}) * 100 = {issues.percentage:.2f}%")
        if issues.breakdown:
            st.dataframe(pd.Series(issues.breakdown, name="classes").rename_axis("product"), use_container_width=True)

    st.subheader("Top teachers")
    cols = st.columns(len(tables["top_teachers"]))
    for col, (metric, ranking) in zip(cols, tables["top_teachers"].items()):
        col.markdown(f"**{METRIC_LABELS.get(metric, metric)}**")
        col.dataframe(ranking_frame(ranking), hide_index=True, use_container_width=True)

    st.subheader("Teacher performance")
    for metric in CHART_METRICS:
        points = tables["charts"][metric]
        if not points:
            continue
        frame = chart_frame(points)
        st.markdown(f"**{METRIC_LABELS.get(metric, metric)} by teacher**")
        st.bar_chart(frame["value"])
        others = next((point.share for point in points if point.is_others), 0.0)
        st.caption(f"Top {config.dashboard.chart_top_n}: {100 - others:.1f}% | Others: {others:.1f}%")

    st.markdown("**All teachers**")
    st.dataframe(teacher_stats_frame(tables["teacher_stats"]), hide_index=True, use_container_width=True)

    st.subheader("Classes")
    sort_column = st.selectbox("Sort by", options=["(none)"] + TABLE_COLUMNS)
    descending = st.checkbox("Descending", value=False)
    filtered = tables["filtered_records"]
    if sort_column != "(none)":
        filtered = sort_records(filtered, sort_column, descending=descending)
    st.dataframe(records_frame(filtered, TABLE_COLUMNS), use_container_width=True)

    teachers = aggregator.teachers(records)
    _teacher_profile(aggregator, records, tables["platform_totals"], teachers)
    _comparison(records, teachers, session.images)


if __name__ == "__main__":
    main()
