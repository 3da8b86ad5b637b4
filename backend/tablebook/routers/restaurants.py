from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import Failure
from ..infrastructure.repositories import SqlAlchemyRestaurantRepository, SqlAlchemySectorRepository
from ..schemas import RestaurantRead, SectorRead
from ..usecases import restaurants as restaurant_usecase
from .errors import to_http_exception

router = APIRouter(prefix="/restaurants", tags=["restaurants"])


@router.get("", response_model=List[RestaurantRead])
async def list_restaurants(session: AsyncSession = Depends(get_session)) -> list[RestaurantRead]:
    rows = await restaurant_usecase.list_restaurants(SqlAlchemyRestaurantRepository(session))
    return [RestaurantRead.from_entity(r) for r in rows]


@router.get("/{restaurant_id}/sectors", response_model=List[SectorRead])
async def list_sectors(
    restaurant_id: str,
    session: AsyncSession = Depends(get_session),
) -> list[SectorRead]:
    result = await restaurant_usecase.list_sectors(
        SqlAlchemyRestaurantRepository(session),
        SqlAlchemySectorRepository(session),
        restaurant_id=restaurant_id,
    )
    if isinstance(result, Failure):
        raise to_http_exception(result)
    return [SectorRead.from_entity(s) for s in result]
