from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from heritage_routing.core.enums import RouteMode
from heritage_routing.services.geodesy import (
    COUNTRY_BOUNDS,
    BoundingBox,
    Coordinate,
    distance_km,
    is_valid_coordinate,
    validate_coordinate,
)

if TYPE_CHECKING:
    from heritage_routing.services.routing import RouteService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DistrictCenter:
    name: str
    coordinate: Coordinate


@dataclass(frozen=True, slots=True)
class DistrictDistance:
    distance_km: float
    center_name: str
    is_road_distance: bool


@dataclass(frozen=True, slots=True)
class DistanceComparison:
    direct_km: float
    road_km: float | None
    estimated_minutes: int | None
    recommended_km: float


# Grouped by province: Western, Central, Southern, Northern, Eastern,
# North Western, North Central, Uva, Sabaragamuwa.
_DEFAULT_CENTERS: tuple[tuple[str, str, float, float], ...] = (
    ("Colombo", "Colombo City", 6.9271, 79.8612),
    ("Gampaha", "Gampaha Town", 7.0873, 79.9990),
    ("Kalutara", "Kalutara Town", 6.5854, 79.9607),
    ("Kandy", "Kandy City", 7.2906, 80.6337),
    ("Matale", "Matale Town", 7.4675, 80.6234),
    ("Nuwara Eliya", "Nuwara Eliya Town", 6.9497, 80.7891),
    ("Galle", "Galle City", 6.0535, 80.2210),
    ("Matara", "Matara Town", 5.9549, 80.5550),
    ("Hambantota", "Hambantota Town", 6.1241, 81.1185),
    ("Jaffna", "Jaffna City", 9.6615, 80.0255),
    ("Kilinochchi", "Kilinochchi Town", 9.3964, 80.4037),
    ("Mannar", "Mannar Town", 8.9810, 79.9047),
    ("Mullaitivu", "Mullaitivu Town", 9.2674, 80.8142),
    ("Vavuniya", "Vavuniya Town", 8.7514, 80.4971),
    ("Trincomalee", "Trincomalee City", 8.5874, 81.2152),
    ("Batticaloa", "Batticaloa Town", 7.7102, 81.6924),
    ("Ampara", "Ampara Town", 7.2976, 81.6747),
    ("Kurunegala", "Kurunegala Town", 7.4818, 80.3609),
    ("Puttalam", "Puttalam Town", 8.0362, 79.8283),
    ("Anuradhapura", "Anuradhapura City", 8.3114, 80.4037),
    ("Polonnaruwa", "Polonnaruwa Town", 7.9403, 81.0188),
    ("Badulla", "Badulla Town", 6.9934, 81.0550),
    ("Monaragala", "Monaragala Town", 6.8728, 81.3507),
    ("Ratnapura", "Ratnapura Town", 6.6828, 80.4126),
    ("Kegalle", "Kegalle Town", 7.2513, 80.3464),
)

MAJOR_DISTRICTS: tuple[str, ...] = (
    "Colombo",
    "Kandy",
    "Galle",
    "Jaffna",
    "Trincomalee",
    "Anuradhapura",
    "Polonnaruwa",
    "Nuwara Eliya",
    "Badulla",
    "Ratnapura",
)


class DistrictGazetteer:
    """Read-only table of district name -> reference centre."""

    def __init__(self, centers: Mapping[str, DistrictCenter]) -> None:
        self._centers = MappingProxyType(dict(centers))
        self._by_folded = MappingProxyType({key.casefold(): key for key in self._centers})

    def __len__(self) -> int:
        return len(self._centers)

    def __contains__(self, district_name: object) -> bool:
        return isinstance(district_name, str) and self.resolve(district_name) is not None

    def resolve(self, district_name: str) -> DistrictCenter | None:
        normalized = district_name.strip()
        exact = self._centers.get(normalized)
        if exact is not None:
            return exact
        key = self._by_folded.get(normalized.casefold())
        if key is None:
            return None
        return self._centers[key]

    def available_districts(self) -> list[str]:
        return sorted(self._centers)


def build_default_gazetteer() -> DistrictGazetteer:
    return DistrictGazetteer(
        {
            district: DistrictCenter(name=center_name, coordinate=Coordinate(latitude=lat, longitude=lon))
            for district, center_name, lat, lon in _DEFAULT_CENTERS
        }
    )


def format_distance(distance_km: float, center_name: str) -> str:
    if distance_km < 1:
        return f"{round(distance_km * 1000)}m from {center_name}"
    return f"{distance_km:.1f}km from {center_name}"


def _generic_label(district_name: str) -> str:
    return f"Distance from {district_name}"


class DistrictDistanceService:
    def __init__(
        self,
        gazetteer: DistrictGazetteer,
        bounds: BoundingBox = COUNTRY_BOUNDS,
        route_service: "RouteService | None" = None,
    ) -> None:
        self.gazetteer = gazetteer
        self.bounds = bounds
        self.route_service = route_service

    def distance_from_district(self, district_name: str, coordinate: Coordinate) -> DistrictDistance | None:
        center = self.gazetteer.resolve(district_name)
        if center is None:
            logger.warning("District center not found", extra={"district": district_name})
            return None
        return DistrictDistance(
            distance_km=distance_km(center.coordinate, coordinate),
            center_name=center.name,
            is_road_distance=False,
        )

    def auto_calculate_distance(self, district_name: str, latitude: float, longitude: float) -> str:
        """Straight-line "N km from <centre>" label; never raises."""
        try:
            coordinate = Coordinate(latitude=float(latitude), longitude=float(longitude))
            if not is_valid_coordinate(coordinate):
                logger.warning("Invalid coordinates for distance label", extra={"district": district_name})
                return _generic_label(district_name)
            validate_coordinate(coordinate, self.bounds)
            result = self.distance_from_district(district_name, coordinate)
            if result is None:
                return _generic_label(district_name)
            return format_distance(result.distance_km, result.center_name)
        except Exception:
            logger.exception("Error calculating district distance", extra={"district": district_name})
            return _generic_label(district_name)

    async def road_distance_from_district(self, district_name: str, coordinate: Coordinate) -> DistrictDistance | None:
        center = self.gazetteer.resolve(district_name)
        if center is None:
            logger.warning("District center not found", extra={"district": district_name})
            return None
        if self.route_service is None:
            return self.distance_from_district(district_name, coordinate)

        route = await self.route_service.get_route(center.coordinate, coordinate, RouteMode.DRIVING, allow_fallback=True)
        if route is None or route.is_fallback:
            return DistrictDistance(
                distance_km=distance_km(center.coordinate, coordinate),
                center_name=center.name,
                is_road_distance=False,
            )
        return DistrictDistance(distance_km=route.distance_km, center_name=center.name, is_road_distance=True)

    async def auto_calculate_road_distance(self, district_name: str, latitude: float, longitude: float) -> str:
        """Like auto_calculate_distance but prefers a road route when one is available."""
        try:
            coordinate = Coordinate(latitude=float(latitude), longitude=float(longitude))
            if not is_valid_coordinate(coordinate):
                logger.warning("Invalid coordinates for distance label", extra={"district": district_name})
                return _generic_label(district_name)
            validate_coordinate(coordinate, self.bounds)
            result = await self.road_distance_from_district(district_name, coordinate)
            if result is None:
                return _generic_label(district_name)
            text = format_distance(result.distance_km, result.center_name)
            if result.is_road_distance:
                return f"{text} via road"
            return text
        except Exception:
            logger.exception("Error calculating district road distance", extra={"district": district_name})
            return _generic_label(district_name)

    async def distance_from_user_location(
        self,
        user_location: Coordinate,
        site: Coordinate,
        use_road_distance: bool = True,
    ) -> DistanceComparison:
        direct = round(distance_km(user_location, site), 1)
        road_km: float | None = None
        estimated_minutes: int | None = None

        if use_road_distance and self.route_service is not None:
            route = await self.route_service.get_route(user_location, site, RouteMode.DRIVING, allow_fallback=True)
            if route is not None:
                road_km = round(route.distance_km, 1)
                estimated_minutes = round(route.duration_min)

        return DistanceComparison(
            direct_km=direct,
            road_km=road_km,
            estimated_minutes=estimated_minutes,
            recommended_km=road_km if road_km else direct,
        )
