from __future__ import annotations

import httpx
import pytest

from heritage_routing.core.enums import RouteMode, RoutingTier
from heritage_routing.services.geodesy import Coordinate
from heritage_routing.services.polyline import encode_polyline
from heritage_routing.services.routing import GoogleDirectionsRouteProvider, RoutingRequest

COLOMBO = Coordinate(latitude=6.9271, longitude=79.8612)
KANDY = Coordinate(latitude=7.2906, longitude=80.6337)


def _candidate(meters: float, seconds: float, points: list[Coordinate] | None = None, summary: str = "") -> dict:
    route: dict = {
        "summary": summary,
        "legs": [{"distance": {"value": meters}, "duration": {"value": seconds}, "steps": []}],
    }
    if points is not None:
        route["overview_polyline"] = {"points": encode_polyline(points)}
    return route


class DirectionsHandler:
    def __init__(self, payload: dict, status: int = 200) -> None:
        self.payload = payload
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.payload)


def _provider(handler: DirectionsHandler | None = None, **kwargs) -> GoogleDirectionsRouteProvider:
    transport = httpx.MockTransport(handler) if handler is not None else None
    return GoogleDirectionsRouteProvider(
        "test-key",
        base_url="https://directions.test/json",
        transport=transport,
        **kwargs,
    )


def test_score_rewards_short_and_quick_routes():
    assert GoogleDirectionsRouteProvider.score_route(_candidate(40_000, 3_000)) == 600 + 10_000
    assert GoogleDirectionsRouteProvider.score_route(_candidate(60_000, 4_000)) == 0
    assert GoogleDirectionsRouteProvider.score_route({"legs": []}) == 3_600 + 50_000


def test_score_sums_every_leg():
    route = {
        "legs": [
            {"distance": {"value": 10_000}, "duration": {"value": 600}},
            {"distance": {"value": 15_000}, "duration": {"value": 900}},
        ]
    }
    assert GoogleDirectionsRouteProvider.score_route(route) == (3_600 - 1_500) + (50_000 - 25_000)


def test_best_route_has_highest_score():
    slow = _candidate(45_000, 1_800, summary="slow")
    best = _candidate(40_000, 3_000, summary="best")

    chosen = _provider().select_best_route([slow, best])

    assert chosen["summary"] == "best"


def test_tied_scores_keep_the_earlier_candidate():
    first = _candidate(70_000, 5_000, summary="first")
    second = _candidate(90_000, 7_000, summary="second")

    assert _provider().select_best_route([first, second])["summary"] == "first"


def test_without_main_road_preference_the_first_candidate_wins():
    first = _candidate(90_000, 7_000, summary="first")
    second = _candidate(1_000, 60, summary="second")

    assert _provider(prefer_main_roads=False).select_best_route([first, second])["summary"] == "first"


def test_params_are_lat_lon_with_region_and_language():
    params = _provider().build_params(RoutingRequest(origin=COLOMBO, destination=KANDY, mode=RouteMode.CYCLING))

    assert params == {
        "origin": "6.9271,79.8612",
        "destination": "7.2906,80.6337",
        "mode": "bicycling",
        "key": "test-key",
        "region": "LK",
        "language": "en",
        "alternatives": "true",
    }


def test_avoid_is_only_sent_when_requested():
    request = RoutingRequest(origin=COLOMBO, destination=KANDY)

    assert "avoid" not in _provider().build_params(request)
    assert _provider(avoid_tolls=True).build_params(request)["avoid"] == "tolls"
    assert _provider(avoid_tolls=True, avoid_highways=True).build_params(request)["avoid"] == "tolls|highways"


def test_overview_polyline_is_decoded():
    points = [COLOMBO, Coordinate(latitude=7.1, longitude=80.2), KANDY]

    geometry = _provider().extract_geometry(_candidate(115_000, 9_000, points))

    assert geometry == points


def test_step_geometry_keeps_order_and_duplicates():
    a = Coordinate(latitude=6.9, longitude=79.85)
    b = Coordinate(latitude=6.91, longitude=79.86)
    c = Coordinate(latitude=6.92, longitude=79.87)
    route = {
        "legs": [
            {
                "steps": [
                    {
                        "start_location": {"lat": a.latitude, "lng": a.longitude},
                        "polyline": {"points": encode_polyline([a, b])},
                        "end_location": {"lat": b.latitude, "lng": b.longitude},
                    },
                    {
                        "start_location": {"lat": b.latitude, "lng": b.longitude},
                        "end_location": {"lat": c.latitude, "lng": c.longitude},
                    },
                ]
            }
        ]
    }

    assert _provider().extract_geometry(route) == [a, a, b, b, b, c]


def test_malformed_overview_falls_back_to_steps():
    a = Coordinate(latitude=6.9, longitude=79.85)
    b = Coordinate(latitude=6.91, longitude=79.86)
    route = {
        "overview_polyline": {"points": "_p~iF"},
        "legs": [
            {
                "steps": [
                    {
                        "start_location": {"lat": a.latitude, "lng": a.longitude},
                        "end_location": {"lat": b.latitude, "lng": b.longitude},
                    }
                ]
            }
        ],
    }

    assert _provider().extract_geometry(route) == [a, b]


@pytest.mark.asyncio
async def test_route_uses_best_candidate_and_raw_totals():
    points = [COLOMBO, KANDY]
    handler = DirectionsHandler(
        {
            "status": "OK",
            "routes": [
                _candidate(130_000, 10_000, points, summary="A1"),
                _candidate(12_345, 1_510, points, summary="B"),
            ],
        }
    )

    route = await _provider(handler).get_route(COLOMBO, KANDY)

    assert route is not None
    assert route.tier == RoutingTier.GOOGLE
    assert route.is_fallback is False
    assert route.summary == "B"
    assert route.distance_km == pytest.approx(12.345)
    assert route.duration_min == pytest.approx(1_510 / 60)
    assert route.geometry == tuple(points)

    sent = handler.requests[0]
    assert sent.url.params["key"] == "test-key"
    assert sent.url.params["alternatives"] == "true"
    assert sent.url.params["origin"] == "6.9271,79.8612"


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "ZERO_RESULTS", "routes": []},
        {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."},
        {"status": "OK", "routes": []},
    ],
)
@pytest.mark.asyncio
async def test_unusable_status_yields_no_route(payload):
    provider = _provider(DirectionsHandler(payload))

    assert await provider.get_route(COLOMBO, KANDY, allow_fallback=False) is None
    fallback = await provider.get_route(COLOMBO, KANDY)
    assert fallback is not None
    assert fallback.is_fallback is True


@pytest.mark.asyncio
async def test_http_error_yields_no_route():
    provider = _provider(DirectionsHandler({"error": "boom"}, status=502))

    assert await provider.get_route(COLOMBO, KANDY, allow_fallback=False) is None


@pytest.mark.asyncio
async def test_alternatives_return_every_candidate_in_order():
    handler = DirectionsHandler(
        {
            "status": "OK",
            "routes": [
                _candidate(130_000, 10_000, [COLOMBO, KANDY], summary="A1"),
                _candidate(120_000, 11_000, [COLOMBO, KANDY], summary="A2"),
            ],
        }
    )

    routes = await _provider(handler).get_route_alternatives(RoutingRequest(origin=COLOMBO, destination=KANDY))

    assert [route.summary for route in routes] == ["A1", "A2"]


@pytest.mark.asyncio
async def test_alternatives_are_empty_when_service_refuses():
    handler = DirectionsHandler({"status": "OVER_QUERY_LIMIT"})

    assert await _provider(handler).get_route_alternatives(RoutingRequest(origin=COLOMBO, destination=KANDY)) == []
