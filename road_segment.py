import logging
import math
import re
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

UNNAMED_ROAD = "Unnamed Road"
MPH_TO_KMH = 1.609344

# Default speed limits for OSM highway types (km/h)
DEFAULT_SPEED_LIMITS = {
    "motorway": 120,
    "trunk": 100,
    "primary": 80,
    "secondary": 80,
    "tertiary": 60,
    "unclassified": 50,
    "residential": 40,
    "service": 30,
    "motorway_link": 80,
    "trunk_link": 60,
    "primary_link": 60,
    "secondary_link": 50,
    "tertiary_link": 50,
}

SPEED_TAGS = ("maxspeed", "maxspeed:forward")

# "type" on raw Overpass elements, not a road classification
OSM_ELEMENT_TYPES = {"way", "node", "relation"}

Coordinate = Tuple[float, float]


class RoadSegment(BaseModel):
    """A named road polyline with its speed limit. Geometry is (lon, lat)."""

    model_config = ConfigDict(frozen=True)

    id: Union[int, str]
    name: str = UNNAMED_ROAD
    road_type: str = "unclassified"
    speed_limit: float = Field(gt=0)  # km/h
    geometry: Tuple[Coordinate, ...] = Field(min_length=2)
    tags: Dict[str, str] = Field(default_factory=dict)

    @field_validator("tags", mode="before")
    @classmethod
    def _stringify_tags(cls, v):
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        return {str(key): str(value) for key, value in v.items()}


def extract_float(value: str) -> Optional[float]:
    """
    Extracts the numeric value from a string and converts it to a float.

    :param value: A string containing a number with possible text.
    :return: The extracted number as a float.
    """
    match = re.search(r"\d+\.?\d*", value)
    return float(match.group()) if match else None


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_speed_limit(value) -> Optional[float]:
    """
    Parse an OSM style speed value ("80", "80 km/h", "30 mph", 50) into km/h.
    Returns None for anything without a positive number in it ("none", "signals").
    """
    if value is None or isinstance(value, bool):
        return None
    if _is_number(value):
        return float(value) if value > 0 else None
    if not isinstance(value, str):
        return None

    speed = extract_float(value)
    if not speed:
        return None
    if "mph" in value.lower():
        speed = round(speed * MPH_TO_KMH, 1)
    return speed


def speed_limit_for_road_type(road_type) -> Optional[float]:
    speed = DEFAULT_SPEED_LIMITS.get(road_type)
    return float(speed) if speed is not None else None


def resolve_speed_limit(record, tags, road_type, fallback_speed_limit) -> float:
    """
    Resolve a record's speed limit: explicit field, then maxspeed tags,
    then the road type table, then the fallback.
    """
    for key in ("speedLimit", "speed_limit"):
        speed = parse_speed_limit(record.get(key))
        if speed is not None:
            return speed

    for key in SPEED_TAGS:
        speed = parse_speed_limit(tags.get(key))
        if speed is not None:
            return speed

    speed = speed_limit_for_road_type(road_type)
    if speed is not None:
        return speed

    return float(fallback_speed_limit)


def _to_coordinate(point) -> Optional[Coordinate]:
    if isinstance(point, dict):
        # Overpass "out geom" node
        lon, lat = point.get("lon"), point.get("lat")
    elif isinstance(point, (list, tuple)) and len(point) >= 2:
        lon, lat = point[0], point[1]
    else:
        return None

    if not (_is_number(lon) and _is_number(lat)):
        return None
    return float(lon), float(lat)


def normalize_geometry(raw) -> Optional[Tuple[Coordinate, ...]]:
    """
    Normalize a raw geometry to a tuple of (lon, lat) pairs.

    Accepts a flat list of pairs, a GeoJSON LineString object or an Overpass
    node list. Returns None if the shape is unknown or any point is malformed.
    """
    if isinstance(raw, dict):
        if raw.get("type") != "LineString":
            return None
        raw = raw.get("coordinates")

    if not isinstance(raw, (list, tuple)):
        return None

    coords = []
    for point in raw:
        coord = _to_coordinate(point)
        if coord is None:
            return None
        coords.append(coord)
    return tuple(coords)


def parse_road_segment(record, index, fallback_speed_limit=60.0) -> Optional[RoadSegment]:
    """
    Validate one raw dataset record and build a RoadSegment.

    :param record: Loosely typed record (dict) from the dataset.
    :param index: Position in the dataset, used for generated ids.
    :param fallback_speed_limit: Speed limit for records nothing else resolves.
    :return: RoadSegment, or None when the record is unusable.
    """
    if not isinstance(record, dict):
        logger.warning("Skipping record %d: expected an object, got %s", index, type(record).__name__)
        return None

    geometry = normalize_geometry(record.get("geometry"))
    if geometry is None or len(geometry) < 2:
        logger.warning("Skipping record %d (%s): geometry needs at least two valid points", index, record.get("id"))
        return None

    tags = record.get("tags") or {}
    if not isinstance(tags, dict):
        tags = {}

    record_type = record.get("type")
    if not isinstance(record_type, str) or record_type in OSM_ELEMENT_TYPES:
        record_type = None
    road_type = record_type or record.get("roadType") or tags.get("highway") or "unclassified"
    segment_id = record.get("id")
    if segment_id is None or segment_id == "":
        segment_id = f"segment-{index}"

    try:
        return RoadSegment(
            id=segment_id,
            name=record.get("name") or tags.get("name") or UNNAMED_ROAD,
            road_type=str(road_type),
            speed_limit=resolve_speed_limit(record, tags, road_type, fallback_speed_limit),
            geometry=geometry,
            tags=tags,
        )
    except ValidationError as e:
        logger.warning("Skipping record %d (%s): %s", index, segment_id, e)
        return None
