from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..domain.entities import Customer, Reservation, ReservationStatus, Restaurant, Sector, Shift, Table
from ..domain.repositories import (
    IdempotencyKeyConflictError,
    IdempotencyKeyRepository,
    ReservationRepository,
    RestaurantRepository,
    SectorRepository,
    TableRepository,
)
from ..utils.time import local_day_bounds, to_utc_naive, utc_naive_to_aware, utc_now


def _restaurant_to_entity(row: models.Restaurant) -> Restaurant:
    return Restaurant(
        id=row.id,
        name=row.name,
        timezone=row.timezone,
        shifts=tuple(Shift(start=s["start"], end=s["end"]) for s in (row.shifts or [])),
    )


def _sector_to_entity(row: models.Sector) -> Sector:
    return Sector(id=row.id, restaurant_id=row.restaurant_id, name=row.name)


def _table_to_entity(row: models.DiningTable) -> Table:
    return Table(
        id=row.id,
        sector_id=row.sector_id,
        name=row.name,
        min_size=row.min_size,
        max_size=row.max_size,
    )


def _reservation_to_entity(row: models.Reservation) -> Reservation:
    return Reservation(
        id=row.id,
        restaurant_id=row.restaurant_id,
        sector_id=row.sector_id,
        table_ids=tuple(link.table_id for link in row.tables),
        party_size=row.party_size,
        start_at=utc_naive_to_aware(row.start_at),
        end_at=utc_naive_to_aware(row.end_at),
        status=ReservationStatus(row.status),
        customer=Customer(
            name=row.customer_name,
            phone=row.customer_phone,
            email=row.customer_email,
            created_at=utc_naive_to_aware(row.customer_created_at),
            updated_at=utc_naive_to_aware(row.customer_updated_at),
        ),
        notes=row.notes,
        created_at=utc_naive_to_aware(row.created_at),
        updated_at=utc_naive_to_aware(row.updated_at),
    )


class SqlAlchemyRestaurantRepository(RestaurantRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, restaurant_id: str) -> Restaurant | None:
        row = await self.session.get(models.Restaurant, restaurant_id)
        return _restaurant_to_entity(row) if row is not None else None

    async def find_all(self) -> List[Restaurant]:
        rows = await self.session.scalars(select(models.Restaurant).order_by(models.Restaurant.name))
        return [_restaurant_to_entity(row) for row in rows]


class SqlAlchemySectorRepository(SectorRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, sector_id: str) -> Sector | None:
        row = await self.session.get(models.Sector, sector_id)
        return _sector_to_entity(row) if row is not None else None

    async def find_by_restaurant_id(self, restaurant_id: str) -> List[Sector]:
        stmt = (
            select(models.Sector)
            .where(models.Sector.restaurant_id == restaurant_id)
            .order_by(models.Sector.name)
        )
        return [_sector_to_entity(row) for row in await self.session.scalars(stmt)]


class SqlAlchemyTableRepository(TableRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, table_id: str) -> Table | None:
        row = await self.session.get(models.DiningTable, table_id)
        return _table_to_entity(row) if row is not None else None

    async def find_by_sector_id(self, sector_id: str) -> List[Table]:
        stmt = (
            select(models.DiningTable)
            .where(models.DiningTable.sector_id == sector_id)
            .order_by(models.DiningTable.position, models.DiningTable.id)
        )
        return [_table_to_entity(row) for row in await self.session.scalars(stmt)]


class SqlAlchemyReservationRepository(ReservationRepository):
    """Writes commit immediately: a booking must be visible to others before its lock is released."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, reservation_id: str) -> Reservation | None:
        row = await self.session.get(models.Reservation, reservation_id)
        return _reservation_to_entity(row) if row is not None else None

    async def find_by_date_and_restaurant(
        self,
        day: date,
        restaurant_id: str,
        sector_id: Optional[str] = None,
        *,
        tz_name: str = "UTC",
    ) -> List[Reservation]:
        day_start, day_end = local_day_bounds(day, tz_name)
        stmt = (
            select(models.Reservation)
            .where(
                models.Reservation.restaurant_id == restaurant_id,
                models.Reservation.status != ReservationStatus.CANCELLED,
                models.Reservation.start_at >= to_utc_naive(day_start),
                models.Reservation.start_at < to_utc_naive(day_end),
            )
            .order_by(models.Reservation.start_at)
        )
        if sector_id is not None:
            stmt = stmt.where(models.Reservation.sector_id == sector_id)
        return [_reservation_to_entity(row) for row in await self.session.scalars(stmt)]

    async def find_overlapping(self, sector_id: str, start: datetime, end: datetime) -> List[Reservation]:
        # Half-open: existing.start < end AND start < existing.end
        stmt = (
            select(models.Reservation)
            .where(
                models.Reservation.sector_id == sector_id,
                models.Reservation.status != ReservationStatus.CANCELLED,
                models.Reservation.start_at < to_utc_naive(end),
                models.Reservation.end_at > to_utc_naive(start),
            )
            .order_by(models.Reservation.start_at)
        )
        return [_reservation_to_entity(row) for row in await self.session.scalars(stmt)]

    async def save(self, reservation: Reservation) -> Reservation:
        links = [
            models.ReservationTable(table_id=table_id, position=position)
            for position, table_id in enumerate(reservation.table_ids)
        ]
        row = await self.session.get(models.Reservation, reservation.id)
        if row is None:
            # Collection assigned up front: a lazy load after flush is not allowed under asyncio.
            row = models.Reservation(id=reservation.id, tables=links)
            self.session.add(row)
        else:
            await self.session.refresh(row, ["tables"])
            if [link.table_id for link in row.tables] != list(reservation.table_ids):
                # Old links go first so a re-added table id does not collide on the primary key.
                row.tables.clear()
                await self.session.flush()
                await self.session.refresh(row, ["tables"])
                row.tables = links

        row.restaurant_id = reservation.restaurant_id
        row.sector_id = reservation.sector_id
        row.party_size = reservation.party_size
        row.start_at = to_utc_naive(reservation.start_at)
        row.end_at = to_utc_naive(reservation.end_at)
        row.status = reservation.status
        row.customer_name = reservation.customer.name
        row.customer_phone = reservation.customer.phone
        row.customer_email = reservation.customer.email
        row.customer_created_at = to_utc_naive(reservation.customer.created_at)
        row.customer_updated_at = to_utc_naive(reservation.customer.updated_at)
        row.notes = reservation.notes
        row.created_at = to_utc_naive(reservation.created_at)
        row.updated_at = to_utc_naive(reservation.updated_at)

        await self.session.flush()
        await self.session.commit()
        await self.session.refresh(row, ["tables"])
        return _reservation_to_entity(row)

    async def delete(self, reservation_id: str) -> None:
        row = await self.session.get(models.Reservation, reservation_id)
        if row is None:
            return
        # The delete-orphan cascade walks the links, so they must be loaded first.
        await self.session.refresh(row, ["tables"])
        await self.session.delete(row)
        await self.session.commit()


class SqlAlchemyIdempotencyKeyRepository(IdempotencyKeyRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, key: str) -> str | None:
        row = await self.session.get(models.IdempotencyKey, key)
        return row.reservation_id if row is not None else None

    async def set(self, key: str, reservation_id: str, *, replacing: Optional[str] = None) -> None:
        if replacing is not None:
            result = await self.session.execute(
                update(models.IdempotencyKey)
                .where(models.IdempotencyKey.key == key, models.IdempotencyKey.reservation_id == replacing)
                .values(reservation_id=reservation_id)
            )
            if result.rowcount != 1:
                await self.session.rollback()
                raise IdempotencyKeyConflictError(key)
            await self.session.commit()
            return

        now = to_utc_naive(utc_now())
        self.session.add(models.IdempotencyKey(key=key, reservation_id=reservation_id, created_at=now))
        try:
            await self.session.flush()
            await self.session.commit()
        except IntegrityError as exc:
            # Primary key on `key` rejects a second writer.
            await self.session.rollback()
            raise IdempotencyKeyConflictError(key) from exc
