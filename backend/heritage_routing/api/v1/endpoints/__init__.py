from heritage_routing.api.v1.endpoints import districts, maps, routes

__all__ = [
    "routes",
    "maps",
    "districts",
]
