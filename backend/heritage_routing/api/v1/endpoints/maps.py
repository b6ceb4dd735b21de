from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from heritage_routing.api.deps import get_map_generator
from heritage_routing.schemas.map import MapRenderRequest
from heritage_routing.services.map_document import MapDocumentGenerator

router = APIRouter(prefix="/maps", tags=["Maps"])


@router.post("/render", response_class=HTMLResponse)
async def render_map(
    payload: MapRenderRequest,
    generator: MapDocumentGenerator = Depends(get_map_generator),
):
    return HTMLResponse(generator.render(payload.to_config()))


@router.get("/location", response_class=HTMLResponse)
async def location_map(
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
    title: str = Query(default="Location", min_length=1, max_length=200),
    description: str | None = Query(default=None, max_length=2000),
    generator: MapDocumentGenerator = Depends(get_map_generator),
):
    return HTMLResponse(generator.render_simple(lat, lon, title, description))
