from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ..domain.errors import ErrorKind, Failure, not_found, validation_error
from ..domain.repositories import ReservationRepository, RestaurantRepository, SectorRepository, TableRepository
from ..domain.services import find_available_tables, suitable_tables
from ..domain.shifts import (
    RESERVATION_DURATION_MINUTES,
    SLOT_MINUTES,
    generate_day_slots,
    is_within_shifts,
    reservation_end,
)


@dataclass(frozen=True)
class SlotAvailability:
    start: datetime
    available: bool
    tables: Optional[List[str]] = None
    reason: Optional[ErrorKind] = None


@dataclass(frozen=True)
class AvailabilityReport:
    slots: List[SlotAvailability] = field(default_factory=list)
    slot_granularity_minutes: int = SLOT_MINUTES
    reservation_duration_minutes: int = RESERVATION_DURATION_MINUTES


async def check_availability(
    restaurant_repo: RestaurantRepository,
    sector_repo: SectorRepository,
    table_repo: TableRepository,
    res_repo: ReservationRepository,
    *,
    restaurant_id: str,
    sector_id: str,
    day: date,
    party_size: int,
) -> AvailabilityReport | Failure:
    if party_size < 1:
        return validation_error("party_size must be at least 1")

    restaurant = await restaurant_repo.find_by_id(restaurant_id)
    if restaurant is None:
        return not_found("Restaurant", restaurant_id)
    sector = await sector_repo.find_by_id(sector_id)
    if sector is None or sector.restaurant_id != restaurant.id:
        return not_found("Sector", sector_id)

    # Party-size filter runs once for the whole scan.
    candidates = suitable_tables(await table_repo.find_by_sector_id(sector.id), party_size)
    slot_starts = generate_day_slots(day, restaurant.timezone, restaurant.shifts)
    if not slot_starts:
        return AvailabilityReport()

    # One fetch covers every slot interval of the day, including bookings that
    # started the evening before or spill into the next day.
    existing = await res_repo.find_overlapping(
        sector.id,
        slot_starts[0],
        reservation_end(slot_starts[-1]),
    )

    slots: List[SlotAvailability] = []
    for start in slot_starts:
        end = reservation_end(start)
        if not is_within_shifts(start, end, restaurant.timezone, restaurant.shifts):
            slots.append(SlotAvailability(start=start, available=False, reason=ErrorKind.OUTSIDE_SERVICE_WINDOW))
            continue
        free = find_available_tables(candidates, existing, start, end)
        if free:
            slots.append(SlotAvailability(start=start, available=True, tables=[t.id for t in free]))
        else:
            slots.append(SlotAvailability(start=start, available=False, reason=ErrorKind.NO_CAPACITY))
    return AvailabilityReport(slots=slots)
