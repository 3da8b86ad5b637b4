from typing import List

from ..domain.entities import Restaurant, Sector
from ..domain.errors import Failure, not_found
from ..domain.repositories import RestaurantRepository, SectorRepository


async def list_restaurants(restaurant_repo: RestaurantRepository) -> List[Restaurant]:
    return await restaurant_repo.find_all()


async def list_sectors(
    restaurant_repo: RestaurantRepository,
    sector_repo: SectorRepository,
    *,
    restaurant_id: str,
) -> List[Sector] | Failure:
    restaurant = await restaurant_repo.find_by_id(restaurant_id)
    if restaurant is None:
        return not_found("Restaurant", restaurant_id)
    return await sector_repo.find_by_restaurant_id(restaurant.id)
