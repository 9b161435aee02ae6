import json

import pytest

from road_segment import RoadSegment
from segment_store import SegmentStore


@pytest.fixture
def make_segment():
    def _make(segment_id, geometry, speed_limit=50, name="Test Road", road_type="residential"):
        return RoadSegment(
            id=segment_id,
            name=name,
            road_type=road_type,
            speed_limit=speed_limit,
            geometry=tuple(tuple(p) for p in geometry),
        )

    return _make


@pytest.fixture
def make_store(make_segment):
    def _make(*segments):
        return SegmentStore([make_segment(*s) if isinstance(s, tuple) else s for s in segments])

    return _make


@pytest.fixture
def write_dataset_file(tmp_path):
    def _write(payload, name="speed_limits.json"):
        path = tmp_path / name
        path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
        return path

    return _write
