from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable

from heritage_routing.core.config import Settings

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float

    def as_latlon(self) -> list[float]:
        return [self.latitude, self.longitude]


@dataclass(frozen=True, slots=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float

    def contains(self, coordinate: Coordinate) -> bool:
        return (
            self.south <= coordinate.latitude <= self.north
            and self.west <= coordinate.longitude <= self.east
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "BoundingBox":
        return cls(
            south=settings.country_bounds_south,
            west=settings.country_bounds_west,
            north=settings.country_bounds_north,
            east=settings.country_bounds_east,
        )


# Approximate extent of Sri Lanka.
COUNTRY_BOUNDS = BoundingBox(south=5.9, west=79.5, north=9.9, east=82.0)


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in kilometres using the haversine formula.

    Pure and total: NaN or out-of-range inputs produce NaN instead of raising,
    so callers must validate coordinates first when that matters.
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    # Rounding can push h a hair above 1 for near-antipodal points.
    h = min(1.0, h) if not math.isnan(h) else h
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_valid_coordinate(coordinate: Coordinate) -> bool:
    lat, lon = coordinate.latitude, coordinate.longitude
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def within_country_bounds(coordinate: Coordinate, bounds: BoundingBox = COUNTRY_BOUNDS) -> bool:
    return bounds.contains(coordinate)


def validate_coordinate(coordinate: Coordinate, bounds: BoundingBox = COUNTRY_BOUNDS) -> bool:
    """Check the coordinate against the national bounding box.

    Falling outside is only worth a warning; the coordinate is still usable.
    """
    inside = within_country_bounds(coordinate, bounds)
    if not inside:
        logger.warning(
            "Coordinates appear to be outside country bounds",
            extra={"latitude": coordinate.latitude, "longitude": coordinate.longitude},
        )
    return inside


def midpoint(a: Coordinate, b: Coordinate) -> Coordinate:
    # Plain lat/lon average; good enough for framing a map at national scale.
    return Coordinate(latitude=(a.latitude + b.latitude) / 2, longitude=(a.longitude + b.longitude) / 2)


def bounding_box(points: Iterable[Coordinate]) -> BoundingBox | None:
    lats: list[float] = []
    lons: list[float] = []
    for point in points:
        lats.append(point.latitude)
        lons.append(point.longitude)
    if not lats:
        return None
    return BoundingBox(south=min(lats), west=min(lons), north=max(lats), east=max(lons))
