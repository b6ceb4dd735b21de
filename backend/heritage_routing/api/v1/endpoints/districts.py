from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from heritage_routing.api.deps import get_district_service, get_gazetteer
from heritage_routing.core.exceptions import NotFoundError
from heritage_routing.core.responses import success_response
from heritage_routing.schemas.district import DistrictCenterResponse, DistrictDistanceResponse
from heritage_routing.services.districts import MAJOR_DISTRICTS, DistrictDistanceService, DistrictGazetteer

router = APIRouter(prefix="/districts", tags=["Districts"])


@router.get("")
async def list_districts(
    request: Request,
    major: bool = Query(default=False),
    gazetteer: DistrictGazetteer = Depends(get_gazetteer),
):
    names = [name for name in MAJOR_DISTRICTS if name in gazetteer] if major else gazetteer.available_districts()
    data = []
    for name in names:
        center = gazetteer.resolve(name)
        if center is not None:
            data.append(DistrictCenterResponse.from_center(name, center).model_dump())
    return success_response(data=data, request=request)


@router.get("/{district_name}")
async def get_district(
    request: Request,
    district_name: str,
    gazetteer: DistrictGazetteer = Depends(get_gazetteer),
):
    center = gazetteer.resolve(district_name)
    if center is None:
        raise NotFoundError(f"Unknown district: {district_name}")
    data = DistrictCenterResponse.from_center(district_name.strip(), center)
    return success_response(data=data.model_dump(), request=request)


@router.get("/{district_name}/distance")
async def district_distance(
    request: Request,
    district_name: str,
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
    road: bool = Query(default=False),
    service: DistrictDistanceService = Depends(get_district_service),
):
    if road:
        label = await service.auto_calculate_road_distance(district_name, lat, lon)
    else:
        label = service.auto_calculate_distance(district_name, lat, lon)
    data = DistrictDistanceResponse(district=district_name, label=label, road=road)
    return success_response(data=data.model_dump(), request=request)
