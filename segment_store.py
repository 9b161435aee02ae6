import json
import logging
from typing import Iterator, List, Sequence, Tuple

from road_segment import RoadSegment, parse_road_segment

logger = logging.getLogger(__name__)


class SegmentStore:
    """
    Read-only, ordered collection of road segments.

    Built once from the bundled dataset; iteration order is load order,
    which the matcher relies on to break ties.
    """

    def __init__(self, segments: Sequence[RoadSegment], from_fallback: bool = False):
        self._segments: Tuple[RoadSegment, ...] = tuple(segments)
        self.from_fallback = from_fallback

    @property
    def segments(self) -> Tuple[RoadSegment, ...]:
        return self._segments

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[RoadSegment]:
        return iter(self._segments)

    def __repr__(self):
        return f"SegmentStore({len(self._segments)} segments, fallback={self.from_fallback})"

    @classmethod
    def from_records(cls, records, fallback_speed_limit=60.0) -> "SegmentStore":
        segments = load_segments(records, fallback_speed_limit)
        if not segments:
            logger.warning("No valid segments in dataset, using built-in default segments")
            return cls(create_default_segments(), from_fallback=True)
        return cls(segments)

    @classmethod
    def from_file(cls, path, fallback_speed_limit=60.0) -> "SegmentStore":
        return cls.from_records(read_dataset(path), fallback_speed_limit)


def load_segments(records, fallback_speed_limit=60.0) -> List[RoadSegment]:
    """
    Parse and validate raw dataset records, dropping the unusable ones.

    :param records: Sequence of raw records.
    :param fallback_speed_limit: Speed limit (km/h) for records with no tag or known road type.
    :return: Valid segments in dataset order.
    """
    segments = []
    for i, record in enumerate(records):
        segment = parse_road_segment(record, i, fallback_speed_limit)
        if segment is not None:
            segments.append(segment)

    skipped = len(records) - len(segments)
    logger.info("Loaded %d valid segments (%d skipped)", len(segments), skipped)
    return segments


def read_dataset(path) -> list:
    """
    Read the bundled dataset. Any problem with the file yields an empty list
    so the store falls back to the default segments.
    """
    try:
        with open(path, "r") as file:
            data = json.load(file)
    except FileNotFoundError:
        logger.warning("Dataset %s not found", path)
        return []
    except (OSError, ValueError) as e:
        logger.error("Error reading dataset %s: %s", path, e)
        return []

    if isinstance(data, dict):
        # {"default": [...]} module export or a raw Overpass response
        data = data.get("default", data.get("elements", []))
    if not isinstance(data, list):
        logger.error("Dataset %s is not a list of segments", path)
        return []

    logger.info("Found %d segments in %s", len(data), path)
    return data


def create_default_segments() -> List[RoadSegment]:
    # N1 highway around Chidenguele, Mozambique
    return [
        RoadSegment(
            id="n1-chidenguele-zandamela",
            name="N1 - Chidenguele to Zandamela",
            road_type="trunk",
            speed_limit=100,
            tags={"highway": "trunk", "ref": "N1"},
            geometry=((34.267, -24.833), (34.277, -24.823)),
        ),
        RoadSegment(
            id="chidenguele-urban",
            name="Chidenguele Urban Area",
            road_type="residential",
            speed_limit=60,
            tags={"highway": "residential"},
            geometry=((34.19, -24.98), (34.20, -24.97)),
        ),
        RoadSegment(
            id="zandamela-urban",
            name="Zandamela Urban Area",
            road_type="residential",
            speed_limit=60,
            tags={"highway": "residential"},
            geometry=((34.35, -24.75), (34.36, -24.74)),
        ),
    ]
