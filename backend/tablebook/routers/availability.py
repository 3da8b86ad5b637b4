from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import Failure
from ..infrastructure.repositories import (
    SqlAlchemyReservationRepository,
    SqlAlchemyRestaurantRepository,
    SqlAlchemySectorRepository,
    SqlAlchemyTableRepository,
)
from ..schemas import AvailabilityRead
from ..usecases import availability as availability_usecase
from .errors import to_http_exception

router = APIRouter(prefix="", tags=["availability"])


@router.get("/availability", response_model=AvailabilityRead, response_model_exclude_none=True)
async def get_availability(
    restaurant_id: str = Query(..., min_length=1),
    sector_id: str = Query(..., min_length=1),
    day: date = Query(..., alias="date", description="Local calendar date (YYYY-MM-DD)"),
    party_size: int = Query(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> AvailabilityRead:
    result = await availability_usecase.check_availability(
        SqlAlchemyRestaurantRepository(session),
        SqlAlchemySectorRepository(session),
        SqlAlchemyTableRepository(session),
        SqlAlchemyReservationRepository(session),
        restaurant_id=restaurant_id,
        sector_id=sector_id,
        day=day,
        party_size=party_size,
    )
    if isinstance(result, Failure):
        raise to_http_exception(result)
    return AvailabilityRead.from_report(result)
