"""Filter engine over the unified class collection."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from functools import lru_cache
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

from classops.analytics.unifier import distinct_values
from classops.common.models import ClassRecord
from classops.common.numeric import is_numeric, normalize, parse_date

Predicate = Callable[[ClassRecord], bool]


class FilterDimension(str, Enum):
    DATE = "date"
    PRODUCT = "product"
    COURSE = "course"
    TEACHER = "teacher"
    SUBJECT = "subject"
    ISSUE_TYPE = "issue_type"
    QUERY = "query"


# dimension -> (FilterState attribute, record accessor), in evaluation order
CATEGORICAL: Dict[FilterDimension, Tuple[str, Callable[[ClassRecord], str]]] = {
    FilterDimension.PRODUCT: ("products", lambda record: record.product),
    FilterDimension.COURSE: ("courses", lambda record: record.course),
    FilterDimension.TEACHER: ("teachers", lambda record: record.teacher),
    FilterDimension.SUBJECT: ("subjects", lambda record: record.subject),
    FilterDimension.ISSUE_TYPE: ("issue_types", lambda record: record.issues_type),
}


@dataclass(frozen=True)
class FilterState:
    """Independent predicates; an empty set leaves its dimension unrestricted."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    products: FrozenSet[str] = frozenset()
    courses: FrozenSet[str] = frozenset()
    teachers: FrozenSet[str] = frozenset()
    subjects: FrozenSet[str] = frozenset()
    issue_types: FrozenSet[str] = frozenset()
    query: str = ""

    def __post_init__(self) -> None:
        for attribute, _ in CATEGORICAL.values():
            object.__setattr__(self, attribute, frozenset(getattr(self, attribute) or ()))
        object.__setattr__(self, "query", self.query or "")

    @property
    def is_active(self) -> bool:
        return (
            self.start_date is not None
            or self.end_date is not None
            or any(getattr(self, attribute) for attribute, _ in CATEGORICAL.values())
            or bool(self.query)
        )

    def with_values(self, dimension: FilterDimension, values: Iterable[str]) -> "FilterState":
        attribute, _ = CATEGORICAL[FilterDimension(dimension)]
        return replace(self, **{attribute: frozenset(values)})

    def without(self, dimension: FilterDimension) -> "FilterState":
        dimension = FilterDimension(dimension)
        if dimension is FilterDimension.DATE:
            return replace(self, start_date=None, end_date=None)
        if dimension is FilterDimension.QUERY:
            return replace(self, query="")
        return self.with_values(dimension, ())

    def cleared(self) -> "FilterState":
        return FilterState()


@dataclass(frozen=True)
class FilterOptions:
    products: List[str] = field(default_factory=list)
    courses: List[str] = field(default_factory=list)
    teachers: List[str] = field(default_factory=list)
    subjects: List[str] = field(default_factory=list)
    issue_types: List[str] = field(default_factory=list)


def apply_filters(
    records: Iterable[ClassRecord],
    filters: FilterState,
    exclude: Iterable[Union[FilterDimension, str]] = (),
) -> List[ClassRecord]:
    """Return the records passing every active predicate not named in ``exclude``.

    Predicates run date, categorical (product, course, teacher, subject,
    issue type), then free text, stopping at the first failure. The input
    is never mutated and its order is kept.
    """

    skipped = frozenset(FilterDimension(dimension) for dimension in exclude)
    predicates = _compile(filters, skipped)
    if not predicates:
        return list(records)
    return [record for record in records if all(check(record) for check in predicates)]


def apply_filters_except(
    records: Iterable[ClassRecord],
    filters: FilterState,
    dimension: Union[FilterDimension, str],
) -> List[ClassRecord]:
    return apply_filters(records, filters, exclude=(dimension,))


def filter_options(records: Sequence[ClassRecord]) -> FilterOptions:
    return FilterOptions(
        products=distinct_values(records, lambda record: record.product),
        courses=distinct_values(records, lambda record: record.course),
        teachers=distinct_values(records, lambda record: record.teacher),
        subjects=distinct_values(records, lambda record: record.subject),
        issue_types=distinct_values(records, lambda record: record.issues_type),
    )


def _compile(filters: FilterState, skipped: FrozenSet[FilterDimension]) -> List[Predicate]:
    predicates: List[Predicate] = []
    if FilterDimension.DATE not in skipped and (filters.start_date or filters.end_date):
        predicates.append(_date_predicate(filters.start_date, filters.end_date))
    for dimension, (attribute, accessor) in CATEGORICAL.items():
        accepted = getattr(filters, attribute)
        if dimension in skipped or not accepted:
            continue
        predicates.append(_membership_predicate(accepted, accessor))
    if FilterDimension.QUERY not in skipped and filters.query:
        predicates.append(_text_predicate(filters.query))
    return predicates


def _date_predicate(start: Optional[date], end: Optional[date]) -> Predicate:
    lower = datetime.combine(start, time.min) if start else None
    upper = datetime.combine(end, time.max) if end else None

    def check(record: ClassRecord) -> bool:
        when = _record_date(record.date)
        if when is None:
            return False
        if lower is not None and when < lower:
            return False
        if upper is not None and when > upper:
            return False
        return True

    return check


def _membership_predicate(accepted: FrozenSet[str], accessor: Callable[[ClassRecord], str]) -> Predicate:
    def check(record: ClassRecord) -> bool:
        value = accessor(record)
        return bool(value) and value in accepted

    return check


def _text_predicate(query: str) -> Predicate:
    needle = query.lower()

    def check(record: ClassRecord) -> bool:
        return any(needle in value.lower() for value in record.searchable_values())

    return check


@lru_cache(maxsize=8192)
def _record_date(text: str) -> Optional[datetime]:
    return parse_date(text)


_DATE_LIKE = re.compile(r"\d{1,2}-\w{3}-\d{4}")
_TIME_LIKE = re.compile(r"\d{1,2}:\d{2}")


def sort_records(
    records: Iterable[ClassRecord],
    column: str,
    descending: bool = False,
) -> List[ClassRecord]:
    """Stable table sort on a raw column.

    Columns whose filled cells are all plain numbers sort numerically;
    anything else (names, dates such as ``12-Jan-2025``, clock times) sorts
    as lowercase text.
    """

    records = list(records)
    values = [_column_value(record, column) for record in records]
    filled = [value for value in values if value.strip()]
    numeric = bool(filled) and all(
        is_numeric(value) and not _DATE_LIKE.search(value) and not _TIME_LIKE.search(value)
        for value in filled
    )
    if numeric:
        keys = [normalize(value) for value in values]
    else:
        keys = [value.lower() for value in values]
    order = sorted(range(len(records)), key=keys.__getitem__, reverse=descending)
    return [records[index] for index in order]


def _column_value(record: ClassRecord, column: str) -> str:
    if column == "id":
        return record.id
    if column in ("source", "data_source"):
        return record.source.value
    if column in _PLATFORM_COLUMNS:
        return str(getattr(record, column))
    return record.get(column)


# Columns stored under different raw names per feed.
_PLATFORM_COLUMNS = frozenset(("product", "topic", "attendance", "duration", "rating"))
