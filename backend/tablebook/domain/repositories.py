from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol

from .entities import Reservation, Restaurant, Sector, Table


class RestaurantRepository(Protocol):
    async def find_by_id(self, restaurant_id: str) -> Restaurant | None: ...

    async def find_all(self) -> list[Restaurant]: ...


class SectorRepository(Protocol):
    async def find_by_id(self, sector_id: str) -> Sector | None: ...

    async def find_by_restaurant_id(self, restaurant_id: str) -> list[Sector]: ...


class TableRepository(Protocol):
    async def find_by_id(self, table_id: str) -> Table | None: ...

    async def find_by_sector_id(self, sector_id: str) -> list[Table]: ...


class ReservationRepository(Protocol):
    async def find_by_id(self, reservation_id: str) -> Reservation | None: ...

    async def find_by_date_and_restaurant(
        self,
        day: date,
        restaurant_id: str,
        sector_id: str | None = None,
        *,
        tz_name: str = "UTC",
    ) -> list[Reservation]: ...

    async def find_overlapping(self, sector_id: str, start: datetime, end: datetime) -> list[Reservation]: ...

    async def save(self, reservation: Reservation) -> Reservation: ...

    async def delete(self, reservation_id: str) -> None: ...


class IdempotencyKeyConflictError(Exception):
    """The ledger already maps the key to a different reservation."""


class IdempotencyKeyRepository(Protocol):
    async def get(self, key: str) -> str | None: ...

    # Insert-only unless `replacing` names the stale reservation id currently stored,
    # in which case the swap happens only if that id is still the one recorded.
    # Raises IdempotencyKeyConflictError otherwise.
    async def set(self, key: str, reservation_id: str, *, replacing: str | None = None) -> None: ...


class LockRepository(Protocol):
    # False while another holder has an unexpired lock on the key.
    async def acquire(self, key: str) -> bool: ...

    # Releasing an absent key is a no-op.
    async def release(self, key: str) -> None: ...


def lock_key(sector_id: str, start: datetime) -> str:
    """Mutual-exclusion scope for one booking attempt: sector plus slot start (as UTC)."""
    return f"reservation:{sector_id}:{start.astimezone(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}"
