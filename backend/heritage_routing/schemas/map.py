from __future__ import annotations

from pydantic import BaseModel, Field

from heritage_routing.schemas.route import RoutePoint
from heritage_routing.services.map_document import MapDestination, MapDocumentConfig


class MapDestinationIn(RoutePoint):
    label: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class MapRenderRequest(BaseModel):
    destination: MapDestinationIn
    user_location: RoutePoint | None = None
    route_geometry: list[RoutePoint] = Field(default_factory=list)
    show_fallback_banner: bool = False
    fallback_message: str | None = Field(default=None, max_length=500)

    def to_config(self) -> MapDocumentConfig:
        return MapDocumentConfig(
            destination=MapDestination(
                coordinate=self.destination.to_coordinate(),
                label=self.destination.label,
                description=self.destination.description,
            ),
            user_location=self.user_location.to_coordinate() if self.user_location else None,
            route_geometry=tuple(point.to_coordinate() for point in self.route_geometry),
            show_fallback_banner=self.show_fallback_banner,
            fallback_message=self.fallback_message,
        )
