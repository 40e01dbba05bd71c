"""Dataclasses shared between the ingestion and analytics layers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, List, Mapping, Optional, Union

from classops.common.numeric import normalize

RawRecord = Dict[str, str]

FB_FIELDS = (
    "date",
    "scheduled_time",
    "entry_time",
    "slide_qac",
    "class_start_time",
    "product_type",
    "course",
    "subject",
    "topic",
    "teacher",
    "teacher1_gmail",
    "teacher2",
    "teacher2_gmail",
    "teacher3",
    "teacher3_gmail",
    "total_duration",
    "highest_attendance",
    "average_attendance",
    "total_comments",
    "issues_type",
    "issues_details",
    "slide_communication",
    "live_class_issues",
    "other_technical_issues",
    "satisfaction",
)

APP_FIELDS = (
    "date",
    "product",
    "course",
    "subject",
    "class_topic",
    "teacher",
    "class_duration",
    "total_attendance",
    "average_class_rating",
    "total_comments",
    "issues_type",
    "issues_details",
)


class SourceTag(str, Enum):
    """Platform a class record was imported from."""

    FB = "fb"
    APP = "app"


@dataclass(frozen=True)
class ClassRecord(ABC):
    """One spreadsheet row stamped with its unified id.

    Subclasses pin ``source`` and know which raw columns carry each
    measurement, so callers never sniff field names to tell platforms apart.
    """

    source: ClassVar[SourceTag]

    id: str
    fields: Mapping[str, str]

    def get(self, name: str, default: str = "") -> str:
        value = self.fields.get(name)
        return default if value is None else value

    @property
    def teacher(self) -> str:
        return self.get("teacher")

    @property
    def date(self) -> str:
        return self.get("date")

    @property
    def course(self) -> str:
        return self.get("course")

    @property
    def subject(self) -> str:
        return self.get("subject")

    @property
    def issues_type(self) -> str:
        return self.get("issues_type")

    @property
    @abstractmethod
    def product(self) -> str:
        ...

    @property
    @abstractmethod
    def course_name(self) -> str:
        """Key used for per-course breakdowns."""

    @property
    @abstractmethod
    def topic(self) -> str:
        ...

    @property
    @abstractmethod
    def duration(self) -> float:
        ...

    @property
    @abstractmethod
    def attendance(self) -> float:
        ...

    @property
    @abstractmethod
    def peak_attendance(self) -> float:
        ...

    @property
    def rating(self) -> float:
        return 0.0

    def searchable_values(self) -> List[str]:
        values = [self.id, self.source.value]
        values.extend(str(value) for value in self.fields.values() if value is not None)
        return values


@dataclass(frozen=True)
class FbClassRecord(ClassRecord):
    source: ClassVar[SourceTag] = SourceTag.FB

    @property
    def product(self) -> str:
        return self.get("product_type")

    @property
    def course_name(self) -> str:
        return self.get("course")

    @property
    def topic(self) -> str:
        return self.get("subject") or self.get("topic")

    @property
    def duration(self) -> float:
        return normalize(self.fields.get("total_duration"))

    @property
    def attendance(self) -> float:
        return normalize(self.fields.get("average_attendance"))

    @property
    def peak_attendance(self) -> float:
        return normalize(self.fields.get("highest_attendance"))


@dataclass(frozen=True)
class AppClassRecord(ClassRecord):
    source: ClassVar[SourceTag] = SourceTag.APP

    @property
    def product(self) -> str:
        return self.get("product")

    @property
    def course_name(self) -> str:
        return self.get("subject")

    @property
    def topic(self) -> str:
        return self.get("class_topic") or self.get("subject")

    @property
    def duration(self) -> float:
        return normalize(self.fields.get("class_duration"))

    @property
    def attendance(self) -> float:
        return normalize(self.fields.get("total_attendance"))

    @property
    def peak_attendance(self) -> float:
        # The app feed reports one attendance figure per class.
        return normalize(self.fields.get("total_attendance"))

    @property
    def rating(self) -> float:
        return normalize(self.fields.get("average_class_rating"))


UnifiedRecord = Union[FbClassRecord, AppClassRecord]

RECORD_TYPES: Dict[SourceTag, type] = {
    SourceTag.FB: FbClassRecord,
    SourceTag.APP: AppClassRecord,
}


def classify(record: ClassRecord) -> SourceTag:
    return record.source


def is_fb(record: ClassRecord) -> bool:
    return record.source is SourceTag.FB


def is_app(record: ClassRecord) -> bool:
    return record.source is SourceTag.APP


@dataclass
class StatDetail:
    """A measurement split by platform; ``total`` is always ``fb + app``."""

    fb: float = 0
    app: float = 0

    @property
    def total(self) -> float:
        return self.fb + self.app

    @classmethod
    def single(cls, source: SourceTag, value: float) -> "StatDetail":
        detail = cls()
        detail.add(source, value)
        return detail

    def add(self, source: SourceTag, amount: float = 1) -> None:
        if source is SourceTag.FB:
            self.fb += amount
        else:
            self.app += amount

    def as_dict(self) -> Dict[str, float]:
        return {"fb": self.fb, "app": self.app, "total": self.total}


@dataclass(frozen=True)
class AverageDetail:
    """Per-platform averages; ``total`` is the pooled average, not ``fb + app``."""

    fb: float = 0.0
    app: float = 0.0
    total: float = 0.0

    @classmethod
    def from_sums(cls, sums: StatDetail, counts: StatDetail) -> "AverageDetail":
        return cls(
            fb=_safe_divide(sums.fb, counts.fb),
            app=_safe_divide(sums.app, counts.app),
            total=_safe_divide(sums.total, counts.total),
        )

    def as_dict(self) -> Dict[str, float]:
        return {"fb": self.fb, "app": self.app, "total": self.total}


@dataclass
class TeacherStats:
    """Per-teacher (or per-group) rollup rebuilt on every aggregation."""

    name: str
    class_count: StatDetail = field(default_factory=StatDetail)
    total_duration: StatDetail = field(default_factory=StatDetail)
    total_attendance: StatDetail = field(default_factory=StatDetail)
    avg_attendance: AverageDetail = field(default_factory=AverageDetail)
    avg_duration: AverageDetail = field(default_factory=AverageDetail)
    highest_peak_attendance: StatDetail = field(default_factory=StatDetail)
    highest_attendance_class: Optional[ClassRecord] = None
    total_rating: float = 0.0
    rated_classes_count: int = 0
    average_rating: float = 0.0
    rated_classes: List[ClassRecord] = field(default_factory=list)
    course_breakdown: Dict[str, StatDetail] = field(default_factory=dict)
    classes: List[ClassRecord] = field(default_factory=list)
    image_url: Optional[str] = None

    @property
    def unique_courses(self) -> List[str]:
        return list(self.course_breakdown)

    @property
    def unique_product_types(self) -> List[str]:
        seen: Dict[str, None] = {}
        for record in self.classes:
            if record.product:
                seen.setdefault(record.product, None)
        return list(seen)


def _safe_divide(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0
