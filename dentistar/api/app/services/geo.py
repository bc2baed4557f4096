"""Distance, bounding boxes and address-component parsing."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.32
MIN_BOX_RADIUS_KM = 25

FULL_ZIP = re.compile(r"^\d{5}(-\d{4})?$")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @classmethod
    def around(cls, lat: float, lng: float, radius_km: float) -> BoundingBox:
        """Box of ``max(2 * radius, 25)`` km around a point."""

        reach = max(radius_km * 2, MIN_BOX_RADIUS_KM)
        lat_delta = reach / KM_PER_DEGREE
        lng_delta = reach / (KM_PER_DEGREE * max(math.cos(math.radians(lat)), 1e-6))
        return cls(lat - lat_delta, lat + lat_delta, lng - lng_delta, lng + lng_delta)


@dataclass
class AreaInfo:
    zip_code: str = "Unknown"
    city: str = "Unknown"
    state: str = ""
    country: str = "US"

    @property
    def has_zip(self) -> bool:
        return self.zip_code != "Unknown"

    def as_dict(self) -> dict[str, str]:
        return {
            "zipCode": self.zip_code,
            "city": self.city,
            "state": self.state,
            "country": self.country,
        }


def is_full_zip(text: str) -> bool:
    return bool(FULL_ZIP.match(text.strip()))


def area_from_components(components: Sequence[Mapping[str, Any]]) -> AreaInfo:
    area = AreaInfo()
    for component in components:
        types = component.get("types") or []
        if "postal_code" in types:
            area.zip_code = component.get("long_name") or area.zip_code
        if "locality" in types or "administrative_area_level_2" in types:
            area.city = component.get("long_name") or area.city
        if "administrative_area_level_1" in types:
            area.state = component.get("short_name") or area.state
        if "country" in types:
            area.country = component.get("short_name") or area.country
    return area


__all__ = [
    "AreaInfo",
    "BoundingBox",
    "area_from_components",
    "haversine_km",
    "is_full_zip",
]
