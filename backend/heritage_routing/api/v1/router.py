from fastapi import APIRouter

from heritage_routing.api.v1.endpoints import districts, maps, routes

api_router = APIRouter()
api_router.include_router(routes.router)
api_router.include_router(maps.router)
api_router.include_router(districts.router)
