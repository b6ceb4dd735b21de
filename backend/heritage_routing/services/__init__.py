from heritage_routing.services.districts import DistrictDistanceService, DistrictGazetteer, build_default_gazetteer
from heritage_routing.services.map_document import MapDocumentConfig, MapDocumentGenerator
from heritage_routing.services.routing import DirectionsSession, RouteService, build_route_service

__all__ = [
    "DistrictDistanceService",
    "DistrictGazetteer",
    "build_default_gazetteer",
    "MapDocumentConfig",
    "MapDocumentGenerator",
    "DirectionsSession",
    "RouteService",
    "build_route_service",
]
