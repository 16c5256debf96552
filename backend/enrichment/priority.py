"""
Enrichment Priority Ordering

Far-future hearings drain first so they are enriched long before they
become urgent. Undated records are lowest priority. Anything heard before
the floor date is never enqueued.
"""

from datetime import date, datetime, time, timezone
from typing import Iterable, List, Union

from sweep.field_normalizer import parse_timestamp
from sweep.models import CaseRecord

DEFAULT_HEARING_DATE_FLOOR = "2022-01-01"


def _floor_timestamp(floor: Union[str, date, datetime]) -> datetime:
    if isinstance(floor, datetime):
        parsed = floor
    elif isinstance(floor, date):
        parsed = datetime.combine(floor, time.min)
    else:
        parsed = parse_timestamp(floor)
        if parsed is None:
            raise ValueError(f"Invalid hearing date floor: {floor!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def apply_hearing_date_floor(
    records: Iterable[CaseRecord],
    floor: Union[str, date, datetime] = DEFAULT_HEARING_DATE_FLOOR
) -> List[CaseRecord]:
    """
    Drop records heard strictly before the floor.

    Undated records (and dates that do not parse) always pass.
    """
    floor_ts = _floor_timestamp(floor)

    kept = []
    for record in records:
        hearing = parse_timestamp(record.hearing_date)
        if hearing is None or hearing >= floor_ts:
            kept.append(record)
    return kept


def sort_by_hearing_date_desc(records: Iterable[CaseRecord]) -> List[CaseRecord]:
    """Latest hearing first, undated last; stable for equal dates."""
    records = list(records)

    dated = [(parse_timestamp(r.hearing_date), r) for r in records]
    with_date = [(ts, r) for ts, r in dated if ts is not None]
    without_date = [r for ts, r in dated if ts is None]

    with_date.sort(key=lambda pair: pair[0], reverse=True)
    return [r for _, r in with_date] + without_date
