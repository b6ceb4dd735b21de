from __future__ import annotations

from typing import Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from heritage_routing.api import deps
from heritage_routing.core.config import Settings
from heritage_routing.main import app
from heritage_routing.services.routing import RouteService, build_route_service

Handler = Callable[[httpx.Request], httpx.Response]


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Name or service not known", request=request)


def osrm_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "code": "Ok",
            "routes": [
                {
                    "distance": 115_400.0,
                    "duration": 8_460.0,
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [[79.8612, 6.9271], [80.2, 7.1], [80.6337, 7.2906]],
                    },
                    "legs": [{"summary": "A1", "steps": []}],
                }
            ],
        },
    )


@pytest.fixture()
def unreachable_handler() -> Handler:
    return unreachable


@pytest.fixture()
def osrm_handler() -> Handler:
    return osrm_ok


@pytest.fixture()
def settings() -> Settings:
    return Settings(google_maps_api_key="", env="dev")


@pytest.fixture()
def route_service_for(settings: Settings) -> Callable[[Handler], RouteService]:
    def _factory(handler: Handler) -> RouteService:
        return build_route_service(settings, transport=httpx.MockTransport(handler))

    return _factory


@pytest.fixture()
def override_route_service():
    def _override(service: RouteService) -> None:
        app.dependency_overrides[deps.get_route_service] = lambda: service

    yield _override
    app.dependency_overrides.clear()


@pytest.fixture()
async def app_client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
