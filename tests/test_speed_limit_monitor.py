import json

import speed_limit_monitor
from location_updates import LocationFeed, LocationSample, parse_trip_file
from nearest_road_segment import MatchResult
from segment_store import SegmentStore, create_default_segments
from speed_limit_config import SpeedLimitConfig
from speed_limit_monitor import SpeedLimitMonitor, SpeedReading, format_speed, format_speed_difference, main
from speed_limit_service import SpeedLimitService


def make_service():
    return SpeedLimitService(SpeedLimitConfig(), store=SegmentStore(create_default_segments()))


def test_reading_flags_speeding():
    sample = LocationSample(latitude=-24.833, longitude=34.267, speed_over_ground=30)  # 108 km/h
    reading = SpeedReading(sample=sample, match=MatchResult(speed_limit=100, segment=None, distance_km=0))

    assert reading.speed_kmh == 108
    assert reading.is_speeding


def test_reading_without_speed_is_not_speeding():
    sample = LocationSample(latitude=0, longitude=0)
    reading = SpeedReading(sample=sample, match=MatchResult(speed_limit=10, segment=None, distance_km=0))

    assert not reading.is_speeding


def test_monitor_consumes_feed():
    feed = LocationFeed()
    received = []
    monitor = SpeedLimitMonitor(make_service(), feed, on_reading=received.append)

    feed.publish(LocationSample(latitude=-24.833, longitude=34.267, speed_over_ground=25))
    feed.publish(LocationSample(latitude=10.0, longitude=10.0, speed_over_ground=5))
    monitor.stop()
    feed.publish(LocationSample(latitude=-24.833, longitude=34.267))

    assert len(received) == 2
    assert received[0].match.segment.id == "n1-chidenguele-zandamela"
    assert received[0].speed_kmh == 90
    assert not received[0].is_speeding
    assert received[1].match.segment is None
    assert received[1].match.speed_limit == 10
    assert received[1].is_speeding  # 18 km/h over the 10 km/h default
    assert monitor.readings == received


def test_format_speed():
    assert format_speed(None) == "--"
    assert format_speed(99.6) == "100"


def test_main_single_location(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(speed_limit_monitor, "configure_logging", lambda level: None)
    dataset = tmp_path / "speed_limits.json"
    dataset.write_text(json.dumps([
        {"id": 9, "name": "EN1", "speedLimit": 80, "geometry": [[34.19, -24.92], [34.20, -24.91]]},
    ]))
    monkeypatch.delenv("SPEED_LIMIT_DATASET_PATH", raising=False)

    code = main(["--dataset", str(dataset), "--lat", "-24.92", "--lon", "34.19", "--speed", "25"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Road Segment: EN1" in out
    assert "Speed Limit: 80 km/h" in out
    assert "Traveling Speed: 90 km/h" in out
    assert "Speeding: Yes" in out
    assert "# of Location Samples: 1" in out


def test_main_replays_trip(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(speed_limit_monitor, "configure_logging", lambda level: None)
    trip = tmp_path / "trip.txt"
    trip.write_text("-24.833,34.267,0,20,1700000000|-24.828,34.272,0,20,1700000030|")

    main(["--dataset", str(tmp_path / "missing.json"), "--trip", str(trip)])

    out = capsys.readouterr().out
    assert out.count("N1 - Chidenguele to Zandamela") == 2
    assert "# of Location Samples: 2" in out
    assert "0 minutes and 30 seconds" in out


def test_reading_with_unusable_speed_is_not_speeding():
    match = MatchResult(speed_limit=10, segment=None, distance_km=float("inf"))

    for speed in (float("nan"), float("inf")):
        reading = SpeedReading(sample=LocationSample(latitude=0, longitude=0, speed_over_ground=speed), match=match)
        assert reading.speed_kmh is None
        assert not reading.is_speeding


def test_monitor_survives_nan_speed_in_trip(tmp_path):
    trip = tmp_path / "trip.txt"
    trip.write_text("-24.833,34.267,0,nan,1700000000|")
    feed = LocationFeed()
    received = []
    SpeedLimitMonitor(make_service(), feed, on_reading=received.append)

    feed.replay(parse_trip_file(trip))

    assert len(received) == 1
    assert received[0].speed_kmh is None
    assert received[0].match.segment.id == "n1-chidenguele-zandamela"


def test_speed_difference():
    match = MatchResult(speed_limit=100, segment=None, distance_km=0)

    over = SpeedReading(sample=LocationSample(latitude=0, longitude=0, speed_over_ground=30), match=match)
    under = SpeedReading(sample=LocationSample(latitude=0, longitude=0, speed_over_ground=25), match=match)
    unknown = SpeedReading(sample=LocationSample(latitude=0, longitude=0), match=match)

    assert over.speed_difference == 8
    assert under.speed_difference == -10
    assert unknown.speed_difference is None
    assert format_speed_difference(over.speed_difference) == "+8 km/h Over Limit"
    assert format_speed_difference(under.speed_difference) == "-10 km/h Under Limit"
    assert format_speed_difference(0) == "0 km/h Under Limit"
    assert format_speed_difference(None) == "--"


def test_main_prints_difference(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(speed_limit_monitor, "configure_logging", lambda level: None)

    main(["--dataset", str(tmp_path / "missing.json"), "--lat", "-24.833", "--lon", "34.267", "--speed", "30"])

    assert "Difference: +8 km/h Over Limit" in capsys.readouterr().out


def test_main_lists_segments(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(speed_limit_monitor, "configure_logging", lambda level: None)

    code = main(["--dataset", str(tmp_path / "missing.json"), "--list-segments"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Loaded 3 segments (built-in defaults)" in out
    assert "Segment 1: n1-chidenguele-zandamela | N1 - Chidenguele to Zandamela | trunk | 100 km/h | 2 points" in out
    assert "TRIP SUMMARY" not in out
