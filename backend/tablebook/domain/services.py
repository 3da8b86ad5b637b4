from datetime import datetime
from typing import Iterable, Sequence

from .entities import Reservation, Table


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open [start, end) overlap. Back-to-back intervals do not overlap."""
    return a_start < b_end and b_start < a_end


def suitable_tables(tables: Iterable[Table], party_size: int) -> list[Table]:
    return [table for table in tables if table.fits(party_size)]


def busy_table_ids(
    reservations: Iterable[Reservation],
    start: datetime,
    end: datetime,
) -> set[str]:
    busy: set[str] = set()
    for reservation in reservations:
        if not reservation.is_active:
            continue
        if overlaps(reservation.start_at, reservation.end_at, start, end):
            busy.update(reservation.table_ids)
    return busy


def find_available_tables(
    candidates: Sequence[Table],
    reservations: Iterable[Reservation],
    start: datetime,
    end: datetime,
) -> list[Table]:
    """
    Pure resolution: candidates not held by any non-cancelled reservation overlapping
    [start, end). Input order is preserved, so callers that book take the first entry.
    Candidates are expected to be pre-filtered by party size (see `suitable_tables`).
    """
    busy = busy_table_ids(reservations, start, end)
    return [table for table in candidates if table.id not in busy]
