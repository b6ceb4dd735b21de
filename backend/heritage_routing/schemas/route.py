from __future__ import annotations

from pydantic import BaseModel, Field

from heritage_routing.core.enums import RouteMode, RoutingTier
from heritage_routing.services.geodesy import Coordinate
from heritage_routing.services.routing import RouteResult


class RoutePoint(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)

    @classmethod
    def from_coordinate(cls, coordinate: Coordinate) -> "RoutePoint":
        return cls(lat=coordinate.latitude, lon=coordinate.longitude)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.lat, longitude=self.lon)


class RoutePreviewResponse(BaseModel):
    mode: RouteMode
    tier: RoutingTier | None = None
    distance_km: float
    duration_min: float
    is_fallback: bool
    summary: str | None = None
    from_point: RoutePoint
    to_point: RoutePoint
    geometry_latlon: list[list[float]] = Field(default_factory=list)

    @classmethod
    def from_route(cls, route: RouteResult, mode: RouteMode, origin: Coordinate, destination: Coordinate) -> "RoutePreviewResponse":
        return cls(
            mode=mode,
            tier=route.tier,
            distance_km=route.distance_km,
            duration_min=route.duration_min,
            is_fallback=route.is_fallback,
            summary=route.summary,
            from_point=RoutePoint.from_coordinate(origin),
            to_point=RoutePoint.from_coordinate(destination),
            geometry_latlon=route.geometry_latlon(),
        )


class ConnectivityResponse(BaseModel):
    osrm: bool
    google: bool | None = None
