from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fakes import make_reservation
from sql_support import make_memory_engine, make_session_factory, seed_floor
from tablebook.domain.entities import ReservationStatus, Shift
from tablebook.domain.repositories import IdempotencyKeyConflictError
from tablebook.infrastructure.repositories import (
    SqlAlchemyIdempotencyKeyRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyRestaurantRepository,
    SqlAlchemySectorRepository,
    SqlAlchemyTableRepository,
)

START = datetime(2025, 1, 15, 16, 0, tzinfo=timezone.utc)
END = START + timedelta(minutes=90)


@pytest_asyncio.fixture
async def session_factory():
    engine = await make_memory_engine()
    factory = make_session_factory(engine)
    await seed_floor(factory)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.mark.asyncio
async def test_restaurant_shifts_round_trip_from_json(session) -> None:
    repo = SqlAlchemyRestaurantRepository(session)
    restaurant = await repo.find_by_id("R1")
    assert restaurant is not None
    assert restaurant.shifts == (Shift("12:00", "16:00"),)
    assert await repo.find_by_id("missing") is None

    other = await repo.find_by_id("R0")
    assert other is not None
    assert other.shifts == ()
    assert [r.id for r in await repo.find_all()] == ["R0", "R1"]


@pytest.mark.asyncio
async def test_sectors_and_tables_lookup(session) -> None:
    sectors = SqlAlchemySectorRepository(session)
    assert [s.id for s in await sectors.find_by_restaurant_id("R1")] == ["S2", "S1"]
    assert (await sectors.find_by_id("S1")).restaurant_id == "R1"  # type: ignore[union-attr]

    tables = SqlAlchemyTableRepository(session)
    # Seating position, not id, orders the sector's tables.
    assert [t.id for t in await tables.find_by_sector_id("S1")] == ["T2", "T1"]
    t1 = await tables.find_by_id("T1")
    assert t1 is not None and (t1.min_size, t1.max_size) == (1, 4)


@pytest.mark.asyncio
async def test_save_and_reload_reservation(session) -> None:
    repo = SqlAlchemyReservationRepository(session)
    stored = await repo.save(make_reservation("r1", "T1", START, END))
    assert stored.table_ids == ("T1",)
    assert stored.start_at == START

    loaded = await repo.find_by_id("r1")
    assert loaded is not None
    assert loaded.start_at.tzinfo is not None
    assert loaded.end_at == END
    assert loaded.status == ReservationStatus.CONFIRMED
    assert loaded.customer.email == "ana@example.com"


@pytest.mark.asyncio
async def test_save_replaces_table_links(session) -> None:
    repo = SqlAlchemyReservationRepository(session)
    await repo.save(make_reservation("r1", "T1", START, END))
    moved = await repo.save(make_reservation("r1", "T2", START, END))
    assert moved.table_ids == ("T2",)
    assert (await repo.find_by_id("r1")).table_ids == ("T2",)  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_save_is_visible_to_other_sessions(session_factory) -> None:
    async with session_factory() as writer:
        await SqlAlchemyReservationRepository(writer).save(make_reservation("r1", "T1", START, END))
    async with session_factory() as reader:
        assert await SqlAlchemyReservationRepository(reader).find_by_id("r1") is not None


@pytest.mark.asyncio
async def test_find_overlapping_is_half_open_and_skips_cancelled(session) -> None:
    repo = SqlAlchemyReservationRepository(session)
    await repo.save(make_reservation("r1", "T1", START, END))
    await repo.save(make_reservation("gone", "T2", START, END, status=ReservationStatus.CANCELLED))
    await repo.save(make_reservation("pending", "T2", END, END + timedelta(minutes=90), status=ReservationStatus.PENDING))

    assert [r.id for r in await repo.find_overlapping("S1", START + timedelta(minutes=30), END)] == ["r1"]
    # Touching the end boundary does not overlap r1, but does reach the pending one.
    assert [r.id for r in await repo.find_overlapping("S1", END, END + timedelta(minutes=15))] == ["pending"]
    assert await repo.find_overlapping("S1", START - timedelta(minutes=90), START) == []
    assert await repo.find_overlapping("S2", START, END) == []


@pytest.mark.asyncio
async def test_find_by_date_uses_local_calendar_day(session) -> None:
    repo = SqlAlchemyReservationRepository(session)
    late = datetime(2025, 1, 16, 1, 0, tzinfo=timezone.utc)  # 22:00 on the 15th in Buenos Aires
    await repo.save(make_reservation("late", "T1", late, late + timedelta(minutes=90)))
    await repo.save(make_reservation("lunch", "T2", START, END, sector_id="S1"))

    local = await repo.find_by_date_and_restaurant(
        date(2025, 1, 15), "R1", tz_name="America/Argentina/Buenos_Aires"
    )
    assert [r.id for r in local] == ["lunch", "late"]

    utc = await repo.find_by_date_and_restaurant(date(2025, 1, 15), "R1")
    assert [r.id for r in utc] == ["lunch"]
    assert await repo.find_by_date_and_restaurant(date(2025, 1, 15), "R1", "S2") == []


@pytest.mark.asyncio
async def test_delete_removes_reservation(session) -> None:
    repo = SqlAlchemyReservationRepository(session)
    await repo.save(make_reservation("r1", "T1", START, END))
    await repo.delete("r1")
    assert await repo.find_by_id("r1") is None
    assert await repo.find_overlapping("S1", START, END) == []
    await repo.delete("r1")


@pytest.mark.asyncio
async def test_idempotency_ledger_insert_and_lookup(session) -> None:
    repo = SqlAlchemyIdempotencyKeyRepository(session)
    assert await repo.get("key-1") is None
    await repo.set("key-1", "r1")
    assert await repo.get("key-1") == "r1"


@pytest.mark.asyncio
async def test_second_writer_for_a_key_conflicts(session_factory) -> None:
    async with session_factory() as first:
        await SqlAlchemyIdempotencyKeyRepository(first).set("key-1", "r1")
    async with session_factory() as second:
        repo = SqlAlchemyIdempotencyKeyRepository(second)
        with pytest.raises(IdempotencyKeyConflictError):
            await repo.set("key-1", "r2")
        assert await repo.get("key-1") == "r1"


@pytest.mark.asyncio
async def test_replacing_swaps_only_the_expected_stale_id(session) -> None:
    repo = SqlAlchemyIdempotencyKeyRepository(session)
    await repo.set("key-1", "stale")

    with pytest.raises(IdempotencyKeyConflictError):
        await repo.set("key-1", "r2", replacing="something-else")

    await repo.set("key-1", "r2", replacing="stale")
    assert await repo.get("key-1") == "r2"
