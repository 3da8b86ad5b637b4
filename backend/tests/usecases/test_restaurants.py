import pytest
from fakes import FakeRestaurantRepo, FakeSectorRepo, make_restaurant
from tablebook.domain.entities import Sector
from tablebook.domain.errors import ErrorKind, Failure
from tablebook.usecases.restaurants import list_restaurants, list_sectors


@pytest.mark.asyncio
async def test_list_restaurants_returns_all() -> None:
    restaurants = await list_restaurants(FakeRestaurantRepo(make_restaurant()))
    assert [r.id for r in restaurants] == ["R1"]
    assert restaurants[0].shifts[0].start == "12:00"


@pytest.mark.asyncio
async def test_list_sectors_only_returns_the_restaurants_own() -> None:
    sectors = FakeSectorRepo(
        Sector(id="S1", restaurant_id="R1", name="Main Hall"),
        Sector(id="S2", restaurant_id="R1", name="Terrace"),
        Sector(id="S3", restaurant_id="R2", name="Elsewhere"),
    )
    result = await list_sectors(FakeRestaurantRepo(make_restaurant()), sectors, restaurant_id="R1")
    assert not isinstance(result, Failure)
    assert [s.id for s in result] == ["S1", "S2"]


@pytest.mark.asyncio
async def test_list_sectors_for_unknown_restaurant() -> None:
    result = await list_sectors(FakeRestaurantRepo(), FakeSectorRepo(), restaurant_id="R9")
    assert isinstance(result, Failure)
    assert result.kind == ErrorKind.NOT_FOUND
    assert result.message == "Restaurant with id R9 not found"
