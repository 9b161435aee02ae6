import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from geopy.distance import geodesic
from shapely.errors import GEOSException
from shapely.geometry import LineString, Point
from shapely.ops import nearest_points

from road_segment import Coordinate, RoadSegment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    speed_limit: float
    segment: Optional[RoadSegment]
    distance_km: float

    @property
    def matched(self) -> bool:
        return self.segment is not None


def calculate_distance_user_to_road_segment(user_coords, road_coords) -> float:
    """
    Calculate the minimum perpendicular distance from a point to a road polyline.

    :param user_coords: Tuple (longitude, latitude) of the point.
    :param road_coords: Sequence of (lon, lat) pairs making up the road.
    :return: Minimum distance in kilometers.
    """
    if len(road_coords) < 2:
        raise ValueError(f"road needs at least two points, got {len(road_coords)}")

    user_location = Point(user_coords[0], user_coords[1])
    min_distance = float("inf")

    for i in range(len(road_coords) - 1):
        segment = LineString([road_coords[i], road_coords[i + 1]])

        nearest_point = nearest_points(segment, user_location)[0]
        distance_km = geodesic((user_coords[1], user_coords[0]), (nearest_point.y, nearest_point.x)).kilometers

        min_distance = min(min_distance, distance_km)

    return min_distance


def find_nearest_road(user_coords, road_segments: Iterable[RoadSegment]) -> Tuple[Optional[RoadSegment], float]:
    """Linear scan for the closest segment. The first segment wins ties."""
    closest_road = None
    min_distance = float("inf")

    for road in road_segments:
        try:
            distance = calculate_distance_user_to_road_segment(user_coords, road.geometry)
        except (ValueError, TypeError, GEOSException) as e:
            logger.warning("Skipping segment %s: %s", road.id, e)
            continue

        if distance < min_distance:
            min_distance = distance
            closest_road = road

    return closest_road, min_distance


def as_query_point(point) -> Optional[Coordinate]:
    """Return point as a (lon, lat) float pair, or None if it isn't a usable location."""
    if point is None:
        return None
    try:
        lon, lat = point
        lon, lat = float(lon), float(lat)
    except (TypeError, ValueError):
        return None

    if not (math.isfinite(lon) and math.isfinite(lat)):
        return None
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        return None
    return lon, lat


class SpeedLimitMatcher:
    """
    Resolves the speed limit at a location from the nearest road segment.

    Stateless apart from the store it reads, so lookups are safe to call
    from independent callers.
    """

    def __init__(self, store, max_distance_km=0.015, default_speed_limit=10.0):
        self.store = store
        self.max_distance_km = max_distance_km
        self.default_speed_limit = default_speed_limit

    def no_match(self, distance=float("inf")) -> MatchResult:
        return MatchResult(speed_limit=self.default_speed_limit, segment=None, distance_km=distance)

    def lookup(self, point) -> MatchResult:
        user_coords = as_query_point(point)
        if user_coords is None:
            logger.warning("Invalid location %r", point)
            return self.no_match()

        if len(self.store) == 0:
            logger.warning("No speed limit segments available")
            return self.no_match()

        closest_road, min_distance = find_nearest_road(user_coords, self.store)

        if closest_road is not None and min_distance <= self.max_distance_km:
            logger.debug("Matched %s (%s) at %.4f km", closest_road.id, closest_road.name, min_distance)
            return MatchResult(speed_limit=closest_road.speed_limit, segment=closest_road, distance_km=min_distance)

        logger.debug("No segment within %.3f km of %s (nearest %.4f km)", self.max_distance_km, user_coords, min_distance)
        return self.no_match(min_distance)

    def lookup_sample(self, sample) -> MatchResult:
        return self.lookup(sample.coordinates)
