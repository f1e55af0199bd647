from datetime import time

import pytest
from canteen_api.models import MealType
from httpx import ASGITransport, AsyncClient

PARAMS = {"startDate": "2030-01-14", "endDate": "2030-01-14", "startTime": "08:00", "endTime": "13:00", "duration": 60}


@pytest.mark.asyncio
async def test_canteen_status_lists_slots(api, store) -> None:
    canteen = store.add_canteen(
        capacity=2,
        hours=[(MealType.BREAKFAST, time(8, 0), time(10, 0)), (MealType.LUNCH, time(12, 0), time(14, 0))],
    )
    store.add_reservation(store.add_student(), canteen, at=time(12, 30))

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.get(f"/api/canteens/{canteen.id}/status", params=PARAMS)

    assert resp.status_code == 200
    body = resp.json()
    assert body["canteenId"] == canteen.id
    assert body["slots"] == [
        {"date": "2030-01-14", "meal": "breakfast", "startTime": "08:00", "remainingCapacity": 2},
        {"date": "2030-01-14", "meal": "breakfast", "startTime": "09:00", "remainingCapacity": 2},
        {"date": "2030-01-14", "meal": "lunch", "startTime": "12:00", "remainingCapacity": 1},
    ]


@pytest.mark.asyncio
async def test_status_of_all_canteens(api, store) -> None:
    first = store.add_canteen(name="One")
    second = store.add_canteen(name="Two")

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.get("/api/canteens/status", params=PARAMS)

    assert resp.status_code == 200
    assert [item["canteenId"] for item in resp.json()] == [first.id, second.id]


@pytest.mark.parametrize(
    "overrides,status_code,kind",
    [
        ({"duration": 45}, 400, "InvalidDuration"),
        ({"startDate": "14-01-2030"}, 400, "InvalidFormat"),
        ({"startTime": "13:00"}, 400, "BadRequest"),
    ],
)
@pytest.mark.asyncio
async def test_status_query_errors(api, store, overrides, status_code, kind) -> None:
    canteen = store.add_canteen()

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.get(f"/api/canteens/{canteen.id}/status", params={**PARAMS, **overrides})

    assert (resp.status_code, resp.json()["error"]) == (status_code, kind)


@pytest.mark.asyncio
async def test_status_of_unknown_canteen(api) -> None:
    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.get("/api/canteens/999/status", params=PARAMS)

    assert (resp.status_code, resp.json()["error"]) == (404, "CanteenNotFound")


@pytest.mark.asyncio
async def test_status_on_last_calendar_day(api, store) -> None:
    canteen = store.add_canteen()
    params = {**PARAMS, "startDate": "9999-12-31", "endDate": "9999-12-31", "startTime": "12:00", "duration": 30}

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.get(f"/api/canteens/{canteen.id}/status", params=params)

    assert resp.status_code == 200
    assert [(s["date"], s["startTime"]) for s in resp.json()["slots"]] == [
        ("9999-12-31", "12:00"),
        ("9999-12-31", "12:30"),
    ]
