import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional

from geopy.distance import geodesic

logger = logging.getLogger(__name__)

MPS_TO_KMH = 3.6


@dataclass(frozen=True)
class LocationSample:
    latitude: float
    longitude: float
    speed_over_ground: Optional[float] = None  # m/s, None when the device doesn't report it
    timestamp: Optional[int] = None

    @property
    def coordinates(self):
        return self.longitude, self.latitude

    @property
    def speed_kmh(self) -> Optional[int]:
        return speed_to_kmh(self.speed_over_ground)


def speed_to_kmh(speed_mps) -> Optional[int]:
    if speed_mps is None or not math.isfinite(speed_mps) or speed_mps < 0:
        return None
    return round(speed_mps * MPS_TO_KMH)


class LocationFeed:
    """
    Push-style stream of location samples.

    Subscribers are called synchronously, in subscription order, for every
    published sample.
    """

    def __init__(self):
        self._subscribers: List[Callable[[LocationSample], None]] = []

    def subscribe(self, callback: Callable[[LocationSample], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, sample: LocationSample):
        for callback in list(self._subscribers):
            callback(sample)

    def replay(self, samples) -> int:
        count = 0
        for sample in samples:
            self.publish(sample)
            count += 1
        return count


def parse_trip_file(input_file) -> List[LocationSample]:
    """
    Read a recorded trip: "|" separated entries of lat,lon,distracted,speed,timestamp
    with speed in m/s. Malformed entries are skipped.
    """
    with open(input_file, "r") as file:
        data = file.read().strip().split("|")

    samples = []
    for row in data:
        row = row.strip()
        if not row:
            continue
        p = row.split(",")
        try:
            lat, lon, _distracted, speed, timestamp = p[:5]
            samples.append(LocationSample(
                latitude=float(lat),
                longitude=float(lon),
                speed_over_ground=float(speed) if speed.strip() else None,
                timestamp=int(timestamp),
            ))
        except ValueError:
            logger.warning("Skipping malformed trip entry: %r", row)
    return samples


def calculate_distance_and_duration(samples):
    """
    Calculate total distance (km) and duration (seconds) of a trip.

    :param samples: List of LocationSample.
    :return: Total distance (km), total duration (seconds)
    """
    if len(samples) < 2:
        return 0, 0  # Not enough data points

    timed = [s for s in samples if s.timestamp is not None]
    timed.sort(key=lambda s: s.timestamp)
    ordered = timed if len(timed) == len(samples) else list(samples)

    total_distance = 0
    for i in range(1, len(ordered)):
        point1 = (ordered[i - 1].latitude, ordered[i - 1].longitude)
        point2 = (ordered[i].latitude, ordered[i].longitude)
        total_distance += geodesic(point1, point2).kilometers

    total_seconds = timed[-1].timestamp - timed[0].timestamp if len(timed) >= 2 else 0
    return total_distance, total_seconds
