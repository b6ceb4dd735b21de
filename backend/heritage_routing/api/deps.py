from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from heritage_routing.core.config import get_settings
from heritage_routing.services.districts import DistrictDistanceService, DistrictGazetteer, build_default_gazetteer
from heritage_routing.services.geodesy import BoundingBox
from heritage_routing.services.map_document import MapDocumentGenerator
from heritage_routing.services.routing import RouteService, build_route_service


@lru_cache(maxsize=1)
def get_route_service() -> RouteService:
    return build_route_service(get_settings())


@lru_cache(maxsize=1)
def get_gazetteer() -> DistrictGazetteer:
    return build_default_gazetteer()


@lru_cache(maxsize=1)
def get_map_generator() -> MapDocumentGenerator:
    return MapDocumentGenerator(get_settings())


def get_district_service(
    gazetteer: DistrictGazetteer = Depends(get_gazetteer),
    route_service: RouteService = Depends(get_route_service),
) -> DistrictDistanceService:
    bounds = BoundingBox.from_settings(get_settings())
    return DistrictDistanceService(gazetteer, bounds=bounds, route_service=route_service)
