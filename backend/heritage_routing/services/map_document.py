from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from jinja2 import Environment, PackageLoader, select_autoescape
from pydantic import BaseModel, Field

from heritage_routing.core.config import Settings, get_settings
from heritage_routing.services.geodesy import Coordinate, bounding_box, distance_km, midpoint
from heritage_routing.services.routing import RouteResult

TEMPLATE_NAME = "route_map.html"
DEFAULT_FALLBACK_MESSAGE = "Routing failed. Showing straight line route."
USER_MARKER_TITLE = "Your Location"
USER_MARKER_DESCRIPTION = "You are here"

# (upper distance bound in km, zoom). A distance equal to a bound falls into the next row.
ZOOM_BUCKETS: tuple[tuple[float, int], ...] = (
    (1, 15),
    (5, 13),
    (10, 12),
    (25, 11),
    (50, 10),
    (100, 9),
)
FARTHEST_ZOOM = 8


@dataclass(frozen=True, slots=True)
class MapDestination:
    coordinate: Coordinate
    label: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class MapDocumentConfig:
    destination: MapDestination
    user_location: Coordinate | None = None
    route_geometry: tuple[Coordinate, ...] = ()
    show_fallback_banner: bool = False
    fallback_message: str | None = None

    @classmethod
    def for_route(
        cls,
        destination: MapDestination,
        user_location: Coordinate | None,
        route: RouteResult | None,
        fallback_message: str | None = None,
    ) -> "MapDocumentConfig":
        return cls(
            destination=destination,
            user_location=user_location,
            route_geometry=route.geometry if route is not None else (),
            show_fallback_banner=bool(route is not None and route.is_fallback),
            fallback_message=fallback_message,
        )


class MarkerPayload(BaseModel):
    kind: Literal["user", "destination"]
    position: tuple[float, float]
    title: str
    description: str | None = None


class ViewPayload(BaseModel):
    center: tuple[float, float]
    zoom: int
    padding: int = 20
    # [[south, west], [north, east]] over every marker and route point; None for a lone marker.
    bounds: tuple[tuple[float, float], tuple[float, float]] | None = None


class TileLayerPayload(BaseModel):
    url: str
    attribution: str
    max_zoom: int = 19


class BannerPayload(BaseModel):
    visible: bool = False
    message: str = DEFAULT_FALLBACK_MESSAGE


class MapPayload(BaseModel):
    """Everything the bootstrap script needs, serialised once into the document."""

    view: ViewPayload
    tiles: TileLayerPayload
    markers: list[MarkerPayload] = Field(default_factory=list)
    route: list[tuple[float, float]] = Field(default_factory=list)
    banner: BannerPayload = Field(default_factory=BannerPayload)


def zoom_for_distance(distance: float, default: int = FARTHEST_ZOOM) -> int:
    for upper_bound, zoom in ZOOM_BUCKETS:
        if distance < upper_bound:
            return zoom
    return default


def initial_view(config: MapDocumentConfig, default_zoom: int = 13) -> tuple[Coordinate, int]:
    destination = config.destination.coordinate
    if config.user_location is None:
        return destination, default_zoom
    center = midpoint(config.user_location, destination)
    return center, zoom_for_distance(distance_km(config.user_location, destination))


def _position(coordinate: Coordinate) -> tuple[float, float]:
    return (coordinate.latitude, coordinate.longitude)


class MapDocumentGenerator:
    def __init__(self, settings: Settings | None = None, environment: Environment | None = None) -> None:
        self.settings = settings or get_settings()
        self.environment = environment or Environment(
            loader=PackageLoader("heritage_routing", "templates"),
            autoescape=select_autoescape(["html"]),
        )

    def build_payload(self, config: MapDocumentConfig) -> MapPayload:
        center, zoom = initial_view(config, self.settings.map_default_zoom)

        markers: list[MarkerPayload] = []
        if config.user_location is not None:
            markers.append(
                MarkerPayload(
                    kind="user",
                    position=_position(config.user_location),
                    title=USER_MARKER_TITLE,
                    description=USER_MARKER_DESCRIPTION,
                )
            )
        markers.append(
            MarkerPayload(
                kind="destination",
                position=_position(config.destination.coordinate),
                title=config.destination.label,
                description=config.destination.description or None,
            )
        )

        points = [config.user_location] if config.user_location is not None else []
        points.append(config.destination.coordinate)
        points.extend(config.route_geometry)
        box = bounding_box(points) if len(points) > 1 else None
        bounds = ((box.south, box.west), (box.north, box.east)) if box is not None else None

        return MapPayload(
            view=ViewPayload(
                center=_position(center),
                zoom=zoom,
                padding=self.settings.map_fit_padding_px,
                bounds=bounds,
            ),
            tiles=TileLayerPayload(
                url=self.settings.map_tile_url,
                attribution=self.settings.map_tile_attribution,
                max_zoom=self.settings.map_max_zoom,
            ),
            markers=markers,
            route=[_position(point) for point in config.route_geometry],
            banner=BannerPayload(
                visible=config.show_fallback_banner,
                message=config.fallback_message or self.settings.fallback_message,
            ),
        )

    def render(self, config: MapDocumentConfig) -> str:
        payload = self.build_payload(config)
        template = self.environment.get_template(TEMPLATE_NAME)
        return template.render(title=config.destination.label, payload=payload.model_dump(mode="json"))

    def render_simple(
        self,
        latitude: float,
        longitude: float,
        title: str = "Location",
        description: str | None = None,
    ) -> str:
        destination = MapDestination(
            coordinate=Coordinate(latitude=latitude, longitude=longitude),
            label=title,
            description=description,
        )
        return self.render(MapDocumentConfig(destination=destination))


def render(config: MapDocumentConfig) -> str:
    return MapDocumentGenerator().render(config)
