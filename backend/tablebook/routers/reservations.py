from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_idempotency_key, get_lock_repo, get_session
from ..domain.entities import ReservationStatus
from ..domain.errors import Failure
from ..domain.repositories import LockRepository
from ..infrastructure.repositories import (
    SqlAlchemyIdempotencyKeyRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyRestaurantRepository,
    SqlAlchemySectorRepository,
    SqlAlchemyTableRepository,
)
from ..schemas import DayReservationsRead, ReservationCreate, ReservationRead
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import emit_audit_log
from .errors import to_http_exception

router = APIRouter(prefix="", tags=["reservations"])


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    idempotency_key: str = Depends(get_idempotency_key),
    session: AsyncSession = Depends(get_session),
    locks: LockRepository = Depends(get_lock_repo),
) -> ReservationRead:
    ctx = reservation_usecase.BookingContext(
        restaurants=SqlAlchemyRestaurantRepository(session),
        sectors=SqlAlchemySectorRepository(session),
        tables=SqlAlchemyTableRepository(session),
        reservations=SqlAlchemyReservationRepository(session),
        idempotency=SqlAlchemyIdempotencyKeyRepository(session),
        locks=locks,
    )
    result = await reservation_usecase.create_reservation(
        ctx,
        restaurant_id=payload.restaurant_id,
        sector_id=payload.sector_id,
        party_size=payload.party_size,
        start=payload.start,
        customer_name=payload.customer.name,
        customer_phone=payload.customer.phone,
        customer_email=str(payload.customer.email),
        notes=payload.notes,
        idempotency_key=idempotency_key,
    )
    if isinstance(result, Failure):
        raise to_http_exception(result)

    reservation, replayed = result
    if replayed:
        # Already audited when it was first booked.
        return ReservationRead.from_entity(reservation)

    try:
        emit_audit_log(
            action="reservation.created",
            initiator="customer",
            reservation_id=reservation.id,
            restaurant_id=reservation.restaurant_id,
            sector_id=reservation.sector_id,
            table_ids=reservation.table_ids,
            party_size=reservation.party_size,
            start=reservation.start_at,
            status_from=None,
            status_to=reservation.status,
            extra={"idempotency_key": idempotency_key},
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc

    return ReservationRead.from_entity(reservation)


@router.get("/reservations/day", response_model=DayReservationsRead)
async def list_reservations(
    restaurant_id: str = Query(..., min_length=1),
    day: date = Query(..., alias="date"),
    sector_id: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_session),
) -> DayReservationsRead:
    result = await reservation_usecase.list_reservations(
        SqlAlchemyReservationRepository(session),
        SqlAlchemyRestaurantRepository(session),
        restaurant_id=restaurant_id,
        day=day,
        sector_id=sector_id,
    )
    if isinstance(result, Failure):
        raise to_http_exception(result)
    return DayReservationsRead.from_result(result)


@router.delete("/reservations/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_reservation(
    reservation_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    result = await reservation_usecase.cancel_reservation(
        SqlAlchemyReservationRepository(session),
        reservation_id=reservation_id,
    )
    if isinstance(result, Failure):
        raise to_http_exception(result)

    try:
        emit_audit_log(
            action="reservation.cancelled",
            initiator="customer",
            reservation_id=result.id,
            restaurant_id=result.restaurant_id,
            sector_id=result.sector_id,
            table_ids=result.table_ids,
            party_size=result.party_size,
            start=result.start_at,
            status_from=result.status,
            status_to=ReservationStatus.CANCELLED,
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
