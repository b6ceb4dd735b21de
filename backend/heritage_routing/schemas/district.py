from __future__ import annotations

from pydantic import BaseModel

from heritage_routing.services.districts import DistrictCenter


class DistrictCenterResponse(BaseModel):
    district: str
    name: str
    lat: float
    lon: float

    @classmethod
    def from_center(cls, district: str, center: DistrictCenter) -> "DistrictCenterResponse":
        return cls(
            district=district,
            name=center.name,
            lat=center.coordinate.latitude,
            lon=center.coordinate.longitude,
        )


class DistrictDistanceResponse(BaseModel):
    district: str
    label: str
    road: bool
