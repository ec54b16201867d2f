"""
Geographic helpers for proximity search
Bounding-box pre-filter and haversine distance
"""

from dataclasses import dataclass
import math

from greensprint.utils.error_handler import ValidationError

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0

# cos() of the latitude collapses towards zero at the poles
MAX_ABS_LATITUDE = 89.9

@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

@dataclass(frozen=True)
class BoundingBox:
    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float

    def contains(self, point):
        return (
            self.lat_min <= point.lat <= self.lat_max
            and self.lng_min <= point.lng <= self.lng_max
        )

def _to_float(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number

def point_from_record(record, lat_field='latitude', lng_field='longitude'):
    """
    GeoPoint from a record's coordinate fields, or None when either is missing
    """
    lat = _to_float(record.get(lat_field))
    lng = _to_float(record.get(lng_field))
    if lat is None or lng is None:
        return None
    return GeoPoint(lat, lng)

def bounding_box(center, radius_km):
    """
    Latitude/longitude box containing every point within radius_km of center.

    The latitude used for the longitude delta is clamped to +/-89.9 degrees.
    The longitude delta is the larger of the flat-earth estimate and the
    widest longitude reached by the spherical circle. A circle that wraps
    across the antimeridian or contains a pole covers every longitude.
    """
    if radius_km < 0:
        raise ValidationError("Radius must not be negative", field='radius_km')

    lat_delta = radius_km / KM_PER_DEGREE
    clamped_lat = max(-MAX_ABS_LATITUDE, min(MAX_ABS_LATITUDE, center.lat))
    cos_lat = math.cos(math.radians(clamped_lat))
    angular_radius = radius_km / EARTH_RADIUS_KM

    lat_min = max(-90.0, center.lat - lat_delta)
    lat_max = min(90.0, center.lat + lat_delta)

    contains_pole = angular_radius >= math.pi / 2 - math.radians(abs(clamped_lat))
    reaches_pole = lat_min <= -MAX_ABS_LATITUDE or lat_max >= MAX_ABS_LATITUDE
    if contains_pole or reaches_pole:
        return BoundingBox(lat_min, lat_max, -180.0, 180.0)

    lng_delta = max(
        radius_km / (KM_PER_DEGREE * cos_lat),
        math.degrees(math.asin(min(1.0, math.sin(angular_radius) / cos_lat)))
    )
    lng_min = center.lng - lng_delta
    lng_max = center.lng + lng_delta

    if lng_min < -180.0 or lng_max > 180.0:
        lng_min, lng_max = -180.0, 180.0

    return BoundingBox(lat_min, lat_max, lng_min, lng_max)

def haversine_km(a, b):
    """
    Great-circle distance in kilometres between two GeoPoints
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    # Rounding can push h a hair past 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))

def filter_by_distance(center, radius_km, records, lat_field='latitude', lng_field='longitude'):
    """
    Keep records within radius_km of center, nearest first.

    Returns copies of the records with a 'distance_km' key. Records without
    both coordinates are dropped. Ties keep their input order.
    """
    results = []
    for record in records:
        point = point_from_record(record, lat_field, lng_field)
        if point is None:
            continue
        distance = haversine_km(center, point)
        if distance > radius_km:
            continue
        results.append({**record, 'distance_km': distance})

    # sorted() is stable
    return sorted(results, key=lambda r: r['distance_km'])
