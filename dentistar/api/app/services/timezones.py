"""Coarse coordinate to IANA zone lookup.

The table is a set of latitude/longitude bounding boxes, checked in order,
so it is an approximation: areas near zone borders can resolve to a
neighbouring zone. Narrower boxes precede the wider boxes that contain them.
"""

from __future__ import annotations

import logging
from typing import NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ZONE = "UTC"


class ZoneBox(NamedTuple):
    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float
    zone: str

    def contains(self, lat: float, lng: float) -> bool:
        return (
            self.lat_min <= lat <= self.lat_max and self.lng_min <= lng <= self.lng_max
        )


ZONE_BOXES: tuple[ZoneBox, ...] = (
    # US Pacific territories
    ZoneBox(13, 15, 144, 146, "Pacific/Guam"),
    ZoneBox(-15, -13, -172, -169, "Pacific/Pago_Pago"),
    ZoneBox(18, 23, -162, -154, "Pacific/Honolulu"),
    ZoneBox(54, 72, -180, -129, "America/Anchorage"),
    ZoneBox(51, 72, -168, -140, "America/Anchorage"),
    # Arizona stays on MST all year
    ZoneBox(31, 37, -115, -109, "America/Phoenix"),
    ZoneBox(32, 49, -125, -114, "America/Los_Angeles"),
    ZoneBox(31, 37, -118, -114, "America/Los_Angeles"),
    ZoneBox(25, 49, -114, -104, "America/Denver"),
    ZoneBox(31, 37, -109, -103, "America/Denver"),
    ZoneBox(24, 26, -82, -80, "America/New_York"),
    ZoneBox(24, 49, -85, -66, "America/New_York"),
    ZoneBox(25, 49, -104, -82, "America/Chicago"),
    ZoneBox(25, 30, -97, -82, "America/Chicago"),
    # Caribbean
    ZoneBox(17, 19, -68, -65, "America/Puerto_Rico"),
    ZoneBox(17, 19, -65, -64, "America/St_Thomas"),
    # Canada, west to east
    ZoneBox(48, 60, -140, -114, "America/Vancouver"),
    ZoneBox(48, 70, -139, -114, "America/Edmonton"),
    ZoneBox(45, 84, -130, -95, "America/Winnipeg"),
    ZoneBox(41, 84, -141, -52, "America/Toronto"),
    # Mexico; Sonora has no DST
    ZoneBox(20, 33, -117, -109, "America/Hermosillo"),
    ZoneBox(25, 33, -109, -102, "America/Chihuahua"),
    ZoneBox(14, 33, -118, -86, "America/Mexico_City"),
    # Europe
    ZoneBox(49, 61, -8, 2, "Europe/London"),
    ZoneBox(35, 72, -10, 40, "Europe/Berlin"),
    ZoneBox(35, 71, 20, 50, "Europe/Helsinki"),
    # Asia
    ZoneBox(33, 43, 124, 132, "Asia/Seoul"),
    ZoneBox(24, 46, 129, 146, "Asia/Tokyo"),
    ZoneBox(6, 37, 68, 97, "Asia/Kolkata"),
    ZoneBox(18, 54, 73, 135, "Asia/Shanghai"),
    ZoneBox(-10, 28, 92, 141, "Asia/Singapore"),
    ZoneBox(12, 42, 44, 75, "Asia/Dubai"),
    # Oceania
    ZoneBox(-44, -10, 113, 154, "Australia/Sydney"),
    ZoneBox(-48, -12, 165, 180, "Pacific/Auckland"),
    ZoneBox(-35, 37, -18, 52, "Africa/Cairo"),
    # South America
    ZoneBox(-56, 13, -82, -34, "America/Sao_Paulo"),
    ZoneBox(-56, 13, -82, -66, "America/Argentina/Buenos_Aires"),
)


def timezone_for_coordinates(lat: float, lng: float) -> str:
    """Return the IANA zone name for a point, ``UTC`` when nothing matches."""

    for box in ZONE_BOXES:
        if box.contains(lat, lng):
            return box.zone
    return DEFAULT_ZONE


def zone_for_coordinates(lat: float, lng: float) -> ZoneInfo:
    name = timezone_for_coordinates(lat, lng)
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:  # pragma: no cover - missing tzdata
        logger.warning("timezone data unavailable", extra={"zone": name})
        return ZoneInfo(DEFAULT_ZONE)


__all__ = ["ZONE_BOXES", "ZoneBox", "timezone_for_coordinates", "zone_for_coordinates"]
