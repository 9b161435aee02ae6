import argparse
import json
from pathlib import Path

import requests

from road_segment import UNNAMED_ROAD, normalize_geometry, resolve_speed_limit
from speed_limit_config import DEFAULT_DATASET_PATH

OVERPASS_URL = "https://overpass-api.de/api/interpreter"

# N1 route through Mozambique, southern border to the Rovuma river
N1_BOUNDING_BOX = (-26.9, 30.0, -10.5, 35.0)  # lat_min, lon_min, lat_max, lon_max


def build_query(lat_min, lon_min, lat_max, lon_max):
    return f"""
    [out:json][timeout:180];
    (
      way[highway][maxspeed]({lat_min},{lon_min},{lat_max},{lon_max});
      way[highway=trunk][!maxspeed]({lat_min},{lon_min},{lat_max},{lon_max});
    );
    out geom;
    """


# Function to query Overpass API for road segments within bounding box
def get_road_segments(lat_min, lon_min, lat_max, lon_max, url=OVERPASS_URL):
    query = build_query(lat_min, lon_min, lat_max, lon_max)
    try:
        response = requests.get(url, params={"data": query}, timeout=300)
    except requests.RequestException as e:
        print(f"Overpass API Request Failed: {e}")
        return []

    if response.status_code == 200:
        if not response.text.strip():
            print("Error: Received empty response from Overpass API")
            return []
        try:
            return response.json().get("elements", [])
        except ValueError:
            print(f"Error decoding JSON: {response.text[:200]}")
            return []
    else:
        print(f"Error fetching data: {response.status_code}, {response.text[:200]}")
        return []


def build_dataset_record(element, fallback_speed_limit=60.0):
    """
    Convert an Overpass way into a dataset record, or None if it has no usable geometry.
    """
    if element.get("type") != "way":
        return None
    geometry = normalize_geometry(element.get("geometry", []))
    if not geometry or len(geometry) < 2:
        return None

    tags = element.get("tags", {})
    road_type = tags.get("highway", "unclassified")
    return {
        "id": element["id"],
        "name": tags.get("name", UNNAMED_ROAD),
        "type": road_type,
        "speedLimit": resolve_speed_limit({}, tags, road_type, fallback_speed_limit),
        "geometry": [list(coord) for coord in geometry],
        "tags": tags,
    }


def build_dataset(elements, fallback_speed_limit=60.0):
    records = []
    for element in elements:
        record = build_dataset_record(element, fallback_speed_limit)
        if record is not None:
            records.append(record)
    return records


def write_dataset(records, output_file=DEFAULT_DATASET_PATH):
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w") as json_file:
        json.dump(records, json_file, indent=2)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build the speed limit dataset from OpenStreetMap.")
    parser.add_argument("--bbox", type=float, nargs=4, metavar=("LAT_MIN", "LON_MIN", "LAT_MAX", "LON_MAX"),
                        default=N1_BOUNDING_BOX)
    parser.add_argument("--output", default=str(DEFAULT_DATASET_PATH))
    parser.add_argument("--url", default=OVERPASS_URL)
    args = parser.parse_args(argv)

    lat_min, lon_min, lat_max, lon_max = args.bbox
    print(f"Bounding Box (lat_min, lon_min, lat_max, lon_max): {lat_min}, {lon_min}, {lat_max}, {lon_max}")
    elements = get_road_segments(lat_min, lon_min, lat_max, lon_max, url=args.url)
    print(f"# of OSM Road Segments: {len(elements)}")

    records = build_dataset(elements)
    write_dataset(records, args.output)
    print(f"Saved {len(records)} road segments with speed limits to {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
