from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Optional


class ReservationStatus(StrEnum):
    CONFIRMED = "CONFIRMED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Shift:
    """Local wall-clock service window, "HH:MM" strings. "24:00" closes at end of day."""

    start: str
    end: str


@dataclass(frozen=True)
class Restaurant:
    id: str
    name: str
    timezone: str
    shifts: tuple[Shift, ...] = ()


@dataclass(frozen=True)
class Sector:
    id: str
    restaurant_id: str
    name: str


@dataclass(frozen=True)
class Table:
    id: str
    sector_id: str
    name: str
    min_size: int
    max_size: int

    def fits(self, party_size: int) -> bool:
        return self.min_size <= party_size <= self.max_size


@dataclass(frozen=True)
class Customer:
    name: str
    phone: str
    email: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Reservation:
    id: str
    restaurant_id: str
    sector_id: str
    table_ids: tuple[str, ...]
    party_size: int
    start_at: datetime
    end_at: datetime
    status: ReservationStatus
    customer: Customer
    created_at: datetime
    updated_at: datetime
    notes: Optional[str] = field(default=None)

    @property
    def is_active(self) -> bool:
        return self.status != ReservationStatus.CANCELLED
