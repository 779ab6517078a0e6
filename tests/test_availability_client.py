from __future__ import annotations

import base64
import json
from datetime import date, datetime

import httpx
import pytest

from hotel_availability.core.errors import UpstreamRejected, UpstreamTimeout, UpstreamUnreachable
from hotel_availability.hotels import RoomSpec
from hotel_availability.services import AvailabilityClient

URL = "https://api.example.test/HotelAPI/Search"
CHECK_IN = date(2030, 5, 1)
CHECK_OUT = date(2030, 5, 3)


def _client(handler, **kwargs) -> AvailabilityClient:
    return AvailabilityClient(
        base_url=URL,
        username="agent",
        password="secret",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


async def _fetch(client: AvailabilityClient, codes=("1001", "1002")):
    return await client.fetch_availability(
        list(codes),
        CHECK_IN,
        CHECK_OUT,
        [RoomSpec(adults=2), RoomSpec(adults=1, children=1, children_ages=(6,))],
        "IN",
    )


@pytest.mark.asyncio
async def test_request_payload_and_auth():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"Status": {"Code": 200, "Description": "Successful"}, "HotelResult": [{"HotelCode": "1001"}]},
        )

    async with _client(handler, response_time=20.0) as client:
        payload = await _fetch(client)

    assert captured["url"] == URL
    expected_auth = "Basic " + base64.b64encode(b"agent:secret").decode()
    assert captured["auth"] == expected_auth
    body = captured["body"]
    assert body["CheckIn"] == "2030-05-01"
    assert body["CheckOut"] == "2030-05-03"
    assert body["HotelCodes"] == "1001,1002"
    assert body["GuestNationality"] == "IN"
    assert body["PaxRooms"] == [
        {"Adults": 2, "Children": 0, "ChildrenAges": None},
        {"Adults": 1, "Children": 1, "ChildrenAges": [6]},
    ]
    assert body["ResponseTime"] == 20.0
    assert body["IsDetailedResponse"] is True
    assert body["Filters"]["Refundable"] is False
    assert body["Filters"]["HotelName"] is None

    assert payload.status_code == 200
    assert payload.results == ({"HotelCode": "1001"},)
    assert not payload.is_empty


@pytest.mark.asyncio
async def test_no_availability_status_is_empty_success():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Status": {"Code": 201, "Description": "No Available rooms for given criteria"}})

    async with _client(handler) as client:
        payload = await _fetch(client)

    assert payload.is_empty
    assert payload.status_code == 201


@pytest.mark.asyncio
async def test_no_rooms_description_is_empty_success():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Status": {"Code": 204, "Description": "No rooms available"}})

    async with _client(handler) as client:
        payload = await _fetch(client)

    assert payload.is_empty


@pytest.mark.asyncio
async def test_missing_results_key_is_empty_success():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Status": {"Code": 200}})

    async with _client(handler) as client:
        payload = await _fetch(client)

    assert payload.results == ()


@pytest.mark.asyncio
async def test_custom_results_key():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Status": {"Code": 200}, "Hotels": [{"HotelCode": "9"}]})

    async with _client(handler, results_key="Hotels") as client:
        payload = await _fetch(client)

    assert payload.results == ({"HotelCode": "9"},)


@pytest.mark.asyncio
async def test_error_status_code_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Status": {"Code": 500, "Description": "Invalid credentials"}})

    async with _client(handler) as client:
        with pytest.raises(UpstreamRejected) as excinfo:
            await _fetch(client)

    assert excinfo.value.status_code == 500
    assert excinfo.value.description == "Invalid credentials"


@pytest.mark.asyncio
async def test_http_error_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="Service Unavailable")

    async with _client(handler) as client:
        with pytest.raises(UpstreamRejected) as excinfo:
            await _fetch(client)

    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_missing_status_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"HotelResult": []})

    async with _client(handler) as client:
        with pytest.raises(UpstreamRejected, match="Invalid availability response format"):
            await _fetch(client)


@pytest.mark.asyncio
async def test_non_json_body_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    async with _client(handler) as client:
        with pytest.raises(UpstreamRejected):
            await _fetch(client)


@pytest.mark.asyncio
async def test_timeout_maps_to_upstream_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with _client(handler) as client:
        with pytest.raises(UpstreamTimeout):
            await _fetch(client)


@pytest.mark.asyncio
async def test_connect_error_maps_to_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(UpstreamUnreachable):
            await _fetch(client)


@pytest.mark.asyncio
async def test_datetime_stay_dates_are_sent_as_plain_dates():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"Status": {"Code": 200}, "HotelResult": []})

    async with _client(handler) as client:
        await client.fetch_availability(
            ["1001"], datetime(2030, 5, 1, 14, 30), datetime(2030, 5, 3, 9), [RoomSpec(adults=1)], "IN"
        )

    assert captured["body"]["CheckIn"] == "2030-05-01"
    assert captured["body"]["CheckOut"] == "2030-05-03"
