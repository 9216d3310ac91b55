"""Geometry helpers for lat/lon points at city scale."""
import math
from typing import Iterable, Tuple

from configurations.config import Config
from core.errors import EmptyInputError, GeoBoundaryError
from models.entities import BoundingBox

LatLon = Tuple[float, float]


def centroid(points: Iterable[LatLon]) -> LatLon:
    """Arithmetic mean of latitude and of longitude."""
    sum_lat = 0.0
    sum_lon = 0.0
    count = 0
    for lat, lon in points:
        sum_lat += lat
        sum_lon += lon
        count += 1

    if count == 0:
        raise EmptyInputError("Cannot compute the centroid of an empty point set")

    return sum_lat / count, sum_lon / count


def planar_distance_meters(a: LatLon, b: LatLon) -> float:
    """Haversine distance between two (lat, lon) points in meters.

    Uses the same spherical earth radius as the map layer, so containment
    decisions made here agree with what the operator sees.
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [a[0], a[1], b[0], b[1]])

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return Config.EARTH_RADIUS_METERS * c


def degree_offset_for_radius(radius_meters: float, at_latitude_degrees: float) -> Tuple[float, float]:
    """Return (lat_offset, lon_offset) in degrees covering a circle of the given radius.

    The longitude offset grows with 1 / cos(latitude); the spherical form
    asin(sin(d) / cos(lat)) is used so the box still contains the whole
    circle for large radii. At the poles the cosine is zero and no finite
    box exists, so |latitude| >= 90 raises GeoBoundaryError. When the
    circle reaches over a pole the longitude offset is clamped to 180
    degrees, i.e. the box spans every meridian.
    """
    if radius_meters < 0:
        raise ValueError(f"Radius must be non-negative, got {radius_meters}")
    if abs(at_latitude_degrees) >= 90:
        raise GeoBoundaryError(
            f"Longitude offset is undefined at latitude {at_latitude_degrees}"
        )

    angular_radius = radius_meters / Config.EARTH_RADIUS_METERS
    lat_offset = math.degrees(angular_radius)

    cos_lat = math.cos(math.radians(at_latitude_degrees))
    ratio = math.sin(min(angular_radius, math.pi / 2)) / cos_lat
    if ratio >= 1:
        return lat_offset, 180.0

    return lat_offset, math.degrees(math.asin(ratio))


def bounding_box(center: LatLon, radius_meters: float) -> BoundingBox:
    """Axis-aligned box around a circle centred on (lat, lon)."""
    lat_offset, lon_offset = degree_offset_for_radius(radius_meters, center[0])
    return BoundingBox(
        min_lat=max(center[0] - lat_offset, -90.0),
        min_lon=center[1] - lon_offset,
        max_lat=min(center[0] + lat_offset, 90.0),
        max_lon=center[1] + lon_offset,
    )


def normalize_longitude(lon: float) -> float:
    """Wrap a longitude into [-180, 180)."""
    return (lon + 180.0) % 360.0 - 180.0
