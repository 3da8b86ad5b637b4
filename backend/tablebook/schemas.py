from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_serializer

from .domain.entities import Reservation, ReservationStatus, Restaurant, Sector
from .domain.errors import ErrorKind
from .usecases.availability import AvailabilityReport
from .usecases.reservations import DayReservations


def _utc_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


class ShiftRead(BaseModel):
    start: str
    end: str


class RestaurantRead(BaseModel):
    id: str
    name: str
    timezone: str
    shifts: List[ShiftRead]

    @classmethod
    def from_entity(cls, restaurant: Restaurant) -> "RestaurantRead":
        return cls(
            id=restaurant.id,
            name=restaurant.name,
            timezone=restaurant.timezone,
            shifts=[ShiftRead(start=s.start, end=s.end) for s in restaurant.shifts],
        )


class SectorRead(BaseModel):
    id: str
    restaurant_id: str
    name: str

    @classmethod
    def from_entity(cls, sector: Sector) -> "SectorRead":
        return cls(id=sector.id, restaurant_id=sector.restaurant_id, name=sector.name)


class CustomerIn(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: EmailStr


class ReservationCreate(BaseModel):
    restaurant_id: str = Field(min_length=1)
    sector_id: str = Field(min_length=1)
    party_size: int = Field(ge=1)
    start: str = Field(min_length=1, description="ISO 8601 datetime with offset")
    customer: CustomerIn
    notes: Optional[str] = None


class CustomerRead(BaseModel):
    name: str
    phone: str
    email: str
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return _utc_iso(dt)


class ReservationRead(BaseModel):
    id: str
    restaurant_id: str
    sector_id: str
    table_ids: List[str]
    party_size: int
    start: datetime
    end: datetime
    status: ReservationStatus
    customer: CustomerRead
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("start", "end", "created_at", "updated_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return _utc_iso(dt)

    @classmethod
    def from_entity(cls, reservation: Reservation) -> "ReservationRead":
        customer = reservation.customer
        return cls(
            id=reservation.id,
            restaurant_id=reservation.restaurant_id,
            sector_id=reservation.sector_id,
            table_ids=list(reservation.table_ids),
            party_size=reservation.party_size,
            start=reservation.start_at,
            end=reservation.end_at,
            status=reservation.status,
            customer=CustomerRead(
                name=customer.name,
                phone=customer.phone,
                email=customer.email,
                created_at=customer.created_at,
                updated_at=customer.updated_at,
            ),
            notes=reservation.notes,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )


class DayReservationsRead(BaseModel):
    date: date
    items: List[ReservationRead]

    @classmethod
    def from_result(cls, result: DayReservations) -> "DayReservationsRead":
        return cls(date=result.date, items=[ReservationRead.from_entity(r) for r in result.items])


class SlotRead(BaseModel):
    start: datetime
    available: bool
    tables: Optional[List[str]] = None
    reason: Optional[ErrorKind] = None

    @field_serializer("start")
    def _ser_datetime(self, dt: datetime) -> str:
        return _utc_iso(dt)


class AvailabilityRead(BaseModel):
    slot_granularity_minutes: int
    reservation_duration_minutes: int
    slots: List[SlotRead]

    @classmethod
    def from_report(cls, report: AvailabilityReport) -> "AvailabilityRead":
        return cls(
            slot_granularity_minutes=report.slot_granularity_minutes,
            reservation_duration_minutes=report.reservation_duration_minutes,
            slots=[
                SlotRead(start=s.start, available=s.available, tables=s.tables, reason=s.reason)
                for s in report.slots
            ],
        )
