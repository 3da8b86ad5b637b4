import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..domain.entities import Customer, Reservation, ReservationStatus
from ..domain.errors import (
    Failure,
    no_capacity,
    not_found,
    outside_service_window,
    validation_error,
)
from ..domain.repositories import (
    IdempotencyKeyRepository,
    LockRepository,
    ReservationRepository,
    RestaurantRepository,
    SectorRepository,
    TableRepository,
    lock_key,
)
from ..domain.services import find_available_tables, suitable_tables
from ..domain.shifts import is_within_shifts, reservation_end
from ..utils.time import parse_instant, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingContext:
    """Collaborators of one booking attempt, built per request by the caller."""

    restaurants: RestaurantRepository
    sectors: SectorRepository
    tables: TableRepository
    reservations: ReservationRepository
    idempotency: IdempotencyKeyRepository
    locks: LockRepository


@dataclass(frozen=True)
class DayReservations:
    date: date
    items: list[Reservation]


async def create_reservation(
    ctx: BookingContext,
    *,
    restaurant_id: str,
    sector_id: str,
    party_size: int,
    start: str,
    customer_name: str,
    customer_phone: str,
    customer_email: str,
    idempotency_key: str,
    notes: Optional[str] = None,
) -> tuple[Reservation, bool] | Failure:
    """
    Book one table for `party_size` at `start` (ISO 8601 with offset).

    Returns the reservation and whether it was replayed from the idempotency ledger.

    A key already recorded in the idempotency ledger returns the stored reservation
    without re-running table matching. Otherwise the attempt takes the
    (sector, start) lock, picks the first free table that fits, persists the
    reservation and records the key. The lock is released on every exit path.
    """
    start_at = parse_instant(start)
    if start_at is None:
        return validation_error("start must be an ISO 8601 datetime with a UTC offset")
    if party_size < 1:
        return validation_error("party_size must be at least 1")
    if not idempotency_key:
        return validation_error("idempotency key is required")

    stale_id: Optional[str] = None
    existing_id = await ctx.idempotency.get(idempotency_key)
    if existing_id is not None:
        existing = await ctx.reservations.find_by_id(existing_id)
        if existing is not None:
            logger.info("idempotent replay key=%s reservation_id=%s", idempotency_key, existing.id)
            return existing, True
        # The reservation behind the key is gone (cancelled); book afresh.
        stale_id = existing_id

    restaurant = await ctx.restaurants.find_by_id(restaurant_id)
    if restaurant is None:
        return not_found("Restaurant", restaurant_id)
    sector = await ctx.sectors.find_by_id(sector_id)
    if sector is None or sector.restaurant_id != restaurant.id:
        return not_found("Sector", sector_id)

    end_at = reservation_end(start_at)
    if not is_within_shifts(start_at, end_at, restaurant.timezone, restaurant.shifts):
        return outside_service_window()

    key = lock_key(sector.id, start_at)
    if not await ctx.locks.acquire(key):
        logger.info("lock busy key=%s", key)
        return no_capacity("Reservation slot is being processed by another request")

    try:
        candidates = suitable_tables(await ctx.tables.find_by_sector_id(sector.id), party_size)
        if not candidates:
            return no_capacity()
        overlapping = await ctx.reservations.find_overlapping(sector.id, start_at, end_at)
        available = find_available_tables(candidates, overlapping, start_at, end_at)
        if not available:
            logger.info("no capacity sector_id=%s start=%s party_size=%d", sector.id, start_at.isoformat(), party_size)
            return no_capacity()

        now = utc_now()
        reservation = Reservation(
            id=str(uuid.uuid4()),
            restaurant_id=restaurant.id,
            sector_id=sector.id,
            table_ids=(available[0].id,),
            party_size=party_size,
            start_at=start_at,
            end_at=end_at,
            status=ReservationStatus.CONFIRMED,
            customer=Customer(
                name=customer_name,
                phone=customer_phone,
                email=customer_email,
                created_at=now,
                updated_at=now,
            ),
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        stored = await ctx.reservations.save(reservation)
        await ctx.idempotency.set(idempotency_key, stored.id, replacing=stale_id)
        return stored, False
    finally:
        await ctx.locks.release(key)
        logger.debug("released lock key=%s", key)


async def cancel_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: str,
) -> Reservation | Failure:
    # Deleting can never create an overlap, so no lock is taken.
    reservation = await res_repo.find_by_id(reservation_id)
    if reservation is None:
        return not_found("Reservation", reservation_id)
    await res_repo.delete(reservation_id)
    return reservation


async def list_reservations(
    res_repo: ReservationRepository,
    restaurant_repo: RestaurantRepository,
    *,
    restaurant_id: str,
    day: date,
    sector_id: Optional[str] = None,
) -> DayReservations | Failure:
    restaurant = await restaurant_repo.find_by_id(restaurant_id)
    if restaurant is None:
        return not_found("Restaurant", restaurant_id)
    items = await res_repo.find_by_date_and_restaurant(
        day,
        restaurant_id,
        sector_id,
        tz_name=restaurant.timezone,
    )
    return DayReservations(date=day, items=sorted(items, key=lambda r: r.start_at))
