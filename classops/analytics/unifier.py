"""Merge the Fb and App feeds into one tagged collection."""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Iterable, List, Mapping, Sequence

from classops.common.models import RECORD_TYPES, ClassRecord, SourceTag, UnifiedRecord


def unify(
    fb_rows: Sequence[Mapping[str, str]],
    app_rows: Sequence[Mapping[str, str]],
) -> List[UnifiedRecord]:
    """Stamp every row with ``{tag}-{row number}`` and its platform.

    Fb rows come first, then App rows; each keeps its sheet order. Rows are
    copied, never mutated, and the two sheets are assumed disjoint.
    """

    return _tag(fb_rows, SourceTag.FB) + _tag(app_rows, SourceTag.APP)


def _tag(rows: Sequence[Mapping[str, str]], source: SourceTag) -> List[UnifiedRecord]:
    record_type = RECORD_TYPES[source]
    return [
        record_type(id=f"{source.value}-{index}", fields=MappingProxyType(dict(row)))
        for index, row in enumerate(rows, start=1)
    ]


def distinct_values(
    records: Iterable[ClassRecord], accessor: Callable[[ClassRecord], str]
) -> List[str]:
    """Unique non-empty values in first-seen order."""

    seen = {}
    for record in records:
        value = accessor(record)
        if value:
            seen.setdefault(value, None)
    return list(seen)
