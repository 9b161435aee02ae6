import argparse
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from location_updates import LocationFeed, LocationSample, calculate_distance_and_duration, parse_trip_file
from nearest_road_segment import MatchResult
from speed_limit_config import configure_logging, load_config
from speed_limit_service import SpeedLimitService


@dataclass(frozen=True)
class SpeedReading:
    sample: LocationSample
    match: MatchResult

    @property
    def speed_kmh(self) -> Optional[int]:
        return self.sample.speed_kmh

    @property
    def speed_difference(self) -> Optional[int]:
        if self.speed_kmh is None:
            return None
        return round(self.speed_kmh - self.match.speed_limit)

    @property
    def is_speeding(self) -> bool:
        return self.speed_kmh is not None and self.speed_kmh > self.match.speed_limit


def convert_timestamp(timestamp):
    timestamp = int(timestamp)
    return datetime.fromtimestamp(timestamp).strftime('%Y-%m-%d %H:%M:%S')


def format_speed(speed) -> str:
    return "--" if speed is None else str(round(speed))


def format_speed_difference(difference) -> str:
    if difference is None:
        return "--"
    if difference > 0:
        return f"+{difference} km/h Over Limit"
    return f"{difference} km/h Under Limit"


def print_reading(reading: SpeedReading):
    sample, match = reading.sample, reading.match
    segment = match.segment
    if sample.timestamp is not None:
        print(f"⏱️  Timestamp: {convert_timestamp(sample.timestamp)}")
    print(f"📍 Location: {sample.latitude}, {sample.longitude}")
    print(f"📏  Distance to Nearest Road: {match.distance_km * 1000:.2f} m")
    print(f"🛣️  Road Segment: {segment.name if segment else 'None'}")
    print(f"🚧  Road Type: {segment.road_type if segment else 'Unknown'}")
    print(f"🚦 Speed Limit: {format_speed(match.speed_limit)} km/h{'' if segment else ' (default)'}")
    print(f"🚗 Traveling Speed: {format_speed(reading.speed_kmh)} km/h")
    print(f"↕️  Difference: {format_speed_difference(reading.speed_difference)}")
    print(f"⚠️  Speeding: {'Yes' if reading.is_speeding else 'No'}\n")


class SpeedLimitMonitor:
    """Turns location samples from a feed into speed readings."""

    def __init__(self, service: SpeedLimitService, feed: LocationFeed, on_reading=print_reading):
        self.service = service
        self.on_reading = on_reading
        self.readings: List[SpeedReading] = []
        self._unsubscribe = feed.subscribe(self.handle_sample)

    def handle_sample(self, sample: LocationSample):
        reading = SpeedReading(sample=sample, match=self.service.lookup_sample(sample))
        self.readings.append(reading)
        if self.on_reading is not None:
            self.on_reading(reading)
        return reading

    def stop(self):
        self._unsubscribe()


def print_summary(readings: List[SpeedReading]):
    samples = [r.sample for r in readings]
    distance, duration = calculate_distance_and_duration(samples)
    matched = sum(1 for r in readings if r.match.matched)
    speeding = sum(1 for r in readings if r.is_speeding)

    print("======= TRIP SUMMARY =======")
    print(f"Total Distance: {distance:.2f} km, Total Duration: {duration // 60} minutes and {duration % 60} seconds")
    print(f"# of Location Samples: {len(readings)}")
    print(f"# of Samples Matched to a Road: {matched}")
    print(f"# of Samples Speeding: {speeding}")


def print_segments(store):
    print(f"Loaded {len(store)} segments{' (built-in defaults)' if store.from_fallback else ''}")
    for i, segment in enumerate(store, start=1):
        print(f"Segment {i}: {segment.id} | {segment.name} | {segment.road_type} | "
              f"{format_speed(segment.speed_limit)} km/h | {len(segment.geometry)} points")


def build_parser():
    parser = argparse.ArgumentParser(description="Look up the speed limit for GPS locations.")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--dataset", help="Segment dataset, overrides the configured one")
    parser.add_argument("--trip", help="Trip file to replay (lat,lon,distracted,speed,timestamp|...)")
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lon", type=float)
    parser.add_argument("--speed", type=float, help="Speed over ground in m/s")
    parser.add_argument("--list-segments", action="store_true", help="Print the loaded road segments")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    if not args.list_segments and args.trip is None and (args.lat is None or args.lon is None):
        build_parser().error("either --trip or both --lat and --lon are required")

    config = load_config(args.config)
    if args.dataset:
        config = config.model_copy(update={"dataset_path": args.dataset})
    configure_logging(config.log_level)

    service = SpeedLimitService(config)
    store = service.initialize()

    if args.list_segments:
        print_segments(store)
        if args.trip is None and (args.lat is None or args.lon is None):
            return 0

    feed = LocationFeed()
    monitor = SpeedLimitMonitor(service, feed)

    if args.trip:
        feed.replay(parse_trip_file(args.trip))
    else:
        feed.publish(LocationSample(latitude=args.lat, longitude=args.lon, speed_over_ground=args.speed))

    monitor.stop()
    print_summary(monitor.readings)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
