import pytest
from httpx import ASGITransport, AsyncClient

STATUS_PARAMS = {"startDate": "2030-01-14", "endDate": "2030-01-14", "startTime": "12:00", "endTime": "13:00"}


@pytest.mark.asyncio
async def test_non_numeric_query_duration_is_bad_request(api, store) -> None:
    canteen = store.add_canteen()

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.get(f"/api/canteens/{canteen.id}/status", params={**STATUS_PARAMS, "duration": "abc"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "BadRequest"
    assert "duration" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_missing_query_parameter_is_bad_request(api, store) -> None:
    canteen = store.add_canteen()

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.get(f"/api/canteens/{canteen.id}/status", params=STATUS_PARAMS)

    assert (resp.status_code, resp.json()["error"]) == (400, "BadRequest")


@pytest.mark.asyncio
async def test_non_numeric_body_duration_is_bad_request(api, store) -> None:
    student = store.add_student()
    canteen = store.add_canteen()
    body = {"studentId": student.id, "canteenId": canteen.id, "date": "2030-01-14", "time": "12:00", "duration": "thirty"}

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.post("/api/reservations", json=body)

    assert resp.status_code == 400
    assert resp.json()["error"] == "BadRequest"
    assert "duration" in resp.json()["detail"]
    assert store.reservations == {}


@pytest.mark.asyncio
async def test_missing_student_header_uses_error_body(api, store) -> None:
    reservation = store.add_reservation(store.add_student(), store.add_canteen())

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        missing = await client.delete(f"/api/reservations/{reservation.id}")
        malformed = await client.delete(f"/api/reservations/{reservation.id}", headers={"X-Student-Id": "abc"})

    assert missing.status_code == 401
    assert missing.json() == {"error": "Unauthorized", "detail": "X-Student-Id header required"}
    assert malformed.status_code == 400
    assert malformed.json() == {"error": "BadRequest", "detail": "Invalid X-Student-Id"}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(api) -> None:
    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as client:
        resp = await client.get("/api/nowhere")

    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"
