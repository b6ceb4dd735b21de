from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from heritage_routing.api.deps import get_map_generator, get_route_service
from heritage_routing.core.config import get_settings
from heritage_routing.core.enums import RouteMode, RoutingTier
from heritage_routing.core.exceptions import AppError
from heritage_routing.core.responses import success_response
from heritage_routing.schemas.route import ConnectivityResponse, RoutePreviewResponse
from heritage_routing.services.geodesy import BoundingBox, Coordinate, is_valid_coordinate, validate_coordinate
from heritage_routing.services.map_document import MapDestination, MapDocumentConfig, MapDocumentGenerator
from heritage_routing.services.routing import RouteService

router = APIRouter(prefix="/routes", tags=["Routes"])


def parse_coordinates(raw: str) -> Coordinate:
    try:
        lat_str, lon_str = raw.split(",", 1)
        coordinate = Coordinate(latitude=float(lat_str.strip()), longitude=float(lon_str.strip()))
    except ValueError as exc:
        raise AppError(
            code="invalid_coordinates",
            message=f"Expected 'lat,lon', got: {raw}",
            status_code=422,
        ) from exc
    if not is_valid_coordinate(coordinate):
        raise AppError(code="invalid_coordinates", message=f"Coordinates out of range: {raw}", status_code=422)
    validate_coordinate(coordinate, BoundingBox.from_settings(get_settings()))
    return coordinate


@router.get("/preview")
async def route_preview(
    request: Request,
    from_raw: str = Query(alias="from"),
    to_raw: str = Query(alias="to"),
    mode: RouteMode = Query(default=RouteMode.DRIVING),
    tier: RoutingTier | None = Query(default=None),
    service: RouteService = Depends(get_route_service),
):
    origin = parse_coordinates(from_raw)
    destination = parse_coordinates(to_raw)

    if tier is None:
        route = await service.get_route(origin, destination, mode, allow_fallback=True)
    else:
        route = await service.get_route_via(tier, origin, destination, mode, allow_fallback=True)
    if route is None:
        raise AppError(code="route_unavailable", message="No route available", status_code=503)
    data = RoutePreviewResponse.from_route(route, mode, origin, destination)
    return success_response(data=data.model_dump(mode="json"), request=request)


@router.get("/alternatives")
async def route_alternatives(
    request: Request,
    from_raw: str = Query(alias="from"),
    to_raw: str = Query(alias="to"),
    mode: RouteMode = Query(default=RouteMode.DRIVING),
    service: RouteService = Depends(get_route_service),
):
    origin = parse_coordinates(from_raw)
    destination = parse_coordinates(to_raw)

    routes = await service.get_route_alternatives(origin, destination, mode)
    data = [RoutePreviewResponse.from_route(route, mode, origin, destination).model_dump(mode="json") for route in routes]
    return success_response(data=data, request=request)


@router.get("/map", response_class=HTMLResponse)
async def route_map(
    to_raw: str = Query(alias="to"),
    from_raw: str | None = Query(default=None, alias="from"),
    name: str = Query(default="Destination", min_length=1, max_length=200),
    description: str | None = Query(default=None, max_length=2000),
    mode: RouteMode = Query(default=RouteMode.DRIVING),
    service: RouteService = Depends(get_route_service),
    generator: MapDocumentGenerator = Depends(get_map_generator),
):
    destination = MapDestination(coordinate=parse_coordinates(to_raw), label=name, description=description)
    if from_raw is None:
        return HTMLResponse(generator.render(MapDocumentConfig(destination=destination)))

    origin = parse_coordinates(from_raw)
    route = await service.get_route(origin, destination.coordinate, mode, allow_fallback=True)
    config = MapDocumentConfig.for_route(destination, origin, route)
    return HTMLResponse(generator.render(config))


@router.get("/connectivity")
async def route_connectivity(
    request: Request,
    service: RouteService = Depends(get_route_service),
):
    results = await service.test_connectivity()
    data = ConnectivityResponse(
        osrm=results.get(RoutingTier.OSRM, False),
        google=results.get(RoutingTier.GOOGLE),
    )
    return success_response(data=data.model_dump(), request=request)
