from __future__ import annotations

import math

import pytest

from heritage_routing.core.enums import RoutingTier
from heritage_routing.services.geodesy import Coordinate, distance_km
from heritage_routing.services.routing import (
    MAX_FALLBACK_STEPS,
    MIN_FALLBACK_STEPS,
    RouteResult,
    StraightLineRouteProvider,
    fallback_step_count,
    straight_line_route,
)

COLOMBO = Coordinate(latitude=6.9271, longitude=79.8612)
KANDY = Coordinate(latitude=7.2906, longitude=80.6337)


def test_route_is_marked_as_fallback():
    route = straight_line_route(COLOMBO, KANDY)

    assert route.is_fallback is True
    assert route.tier == RoutingTier.STRAIGHT_LINE
    assert route.summary == f"{distance_km(COLOMBO, KANDY):.1f}km direct route"


def test_geometry_starts_and_ends_on_the_endpoints():
    route = straight_line_route(COLOMBO, KANDY)

    assert route.geometry[0] == COLOMBO
    assert route.geometry[-1] == KANDY


def test_long_route_uses_the_step_ceiling():
    route = straight_line_route(COLOMBO, KANDY)

    assert len(route.geometry) == MAX_FALLBACK_STEPS + 1


def test_short_route_uses_distance_based_steps():
    # Roughly 3 km north of Colombo: round(3 * 2) == 6 steps.
    nearby = Coordinate(latitude=COLOMBO.latitude + math.degrees(3.0 / 6371.0), longitude=COLOMBO.longitude)
    route = straight_line_route(COLOMBO, nearby)

    assert len(route.geometry) == 7


def test_latitudes_progress_monotonically():
    route = straight_line_route(COLOMBO, KANDY)
    latitudes = [point.latitude for point in route.geometry]

    assert latitudes == sorted(latitudes)


def test_distance_and_duration_use_average_speed():
    direct = distance_km(COLOMBO, KANDY)
    route = straight_line_route(COLOMBO, KANDY)

    assert route.distance_km == round(direct, 1)
    assert route.duration_min == round(direct / 50 * 60)


def test_custom_average_speed():
    provider = StraightLineRouteProvider(average_speed_kmh=25)
    route = provider.straight_line_route(COLOMBO, KANDY)

    assert route.duration_min == round(distance_km(COLOMBO, KANDY) / 25 * 60)


def test_zero_length_route_still_draws_a_line():
    route = straight_line_route(KANDY, KANDY)

    assert route.distance_km == 0
    assert route.duration_min == 0
    assert len(route.geometry) == MIN_FALLBACK_STEPS + 1
    assert all(point == KANDY for point in route.geometry)


@pytest.mark.parametrize(
    ("distance", "expected"),
    [
        (0.0, 5),
        (1.0, 5),
        (2.6, 5),
        (3.0, 6),
        # Ties round half to even: 10.5 -> 10, 12.5 -> 12.
        (5.25, 10),
        (6.25, 12),
        (7.5, 15),
        (10.0, 20),
        (250.0, 20),
        (float("nan"), 5),
    ],
)
def test_fallback_step_count_is_clamped(distance, expected):
    assert fallback_step_count(distance) == expected


def test_route_result_rejects_single_point_geometry():
    with pytest.raises(ValueError):
        RouteResult(distance_km=1.0, duration_min=1.0, geometry=(KANDY,))


def test_route_result_rejects_negative_distance():
    with pytest.raises(ValueError):
        RouteResult(distance_km=-0.1, duration_min=1.0)


@pytest.mark.asyncio
async def test_provider_always_returns_a_route():
    provider = StraightLineRouteProvider()

    route = await provider.get_route(COLOMBO, KANDY)

    assert route is not None
    assert route.is_fallback
