from datetime import datetime, timedelta, timezone

from fakes import make_reservation
from tablebook.domain.entities import ReservationStatus, Table
from tablebook.domain.services import busy_table_ids, find_available_tables, overlaps, suitable_tables

START = datetime(2025, 1, 15, 16, 0, tzinfo=timezone.utc)
END = START + timedelta(minutes=90)

T1 = Table(id="T1", sector_id="S1", name="Table 1", min_size=1, max_size=2)
T2 = Table(id="T2", sector_id="S1", name="Table 2", min_size=1, max_size=2)
T3 = Table(id="T3", sector_id="S1", name="Table 3", min_size=3, max_size=4)
T6 = Table(id="T6", sector_id="S1", name="Table 6", min_size=5, max_size=8)


def test_overlap_is_half_open() -> None:
    assert overlaps(START, END, START + timedelta(minutes=30), END + timedelta(minutes=30)) is True
    assert overlaps(START, END, END, END + timedelta(minutes=90)) is False
    assert overlaps(START, END, START - timedelta(minutes=90), START) is False
    assert overlaps(START, END, START + timedelta(minutes=10), START + timedelta(minutes=20)) is True


def test_suitable_tables_respects_capacity_bounds() -> None:
    tables = [T1, T2, T3, T6]
    assert suitable_tables(tables, 2) == [T1, T2]
    assert suitable_tables(tables, 4) == [T3]
    assert suitable_tables(tables, 5) == [T6]
    assert suitable_tables(tables, 9) == []
    for party in range(1, 10):
        assert all(t.min_size <= party <= t.max_size for t in suitable_tables(tables, party))


def test_overlapping_reservation_makes_table_busy() -> None:
    existing = [make_reservation("r1", "T1", START + timedelta(minutes=30), END + timedelta(minutes=30))]
    assert find_available_tables([T1, T2], existing, START, END) == [T2]


def test_adjacent_reservation_does_not_block() -> None:
    existing = [make_reservation("r1", "T1", START - timedelta(minutes=90), START)]
    assert find_available_tables([T1, T2], existing, START, END) == [T1, T2]


def test_cancelled_reservations_are_ignored() -> None:
    existing = [make_reservation("r1", "T1", START, END, status=ReservationStatus.CANCELLED)]
    assert busy_table_ids(existing, START, END) == set()
    assert find_available_tables([T1], existing, START, END) == [T1]


def test_pending_reservations_hold_their_table() -> None:
    existing = [make_reservation("r1", "T1", START, END, status=ReservationStatus.PENDING)]
    assert find_available_tables([T1, T2], existing, START, END) == [T2]


def test_input_order_is_preserved() -> None:
    existing = [make_reservation("r1", "T2", START, END)]
    assert find_available_tables([T3, T1, T2], existing, START, END) == [T3, T1]


def test_all_tables_busy_yields_empty_list() -> None:
    existing = [make_reservation("r1", "T1", START, END), make_reservation("r2", "T2", START, END)]
    assert find_available_tables([T1, T2], existing, START, END) == []
