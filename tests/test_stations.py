"""Tests for station parsing and nearest-station lookup."""

import math

import pytest
from rail_isochrone.graph import GraphFormatError
from rail_isochrone.stations import (
    EARTH_RADIUS_M,
    Station,
    find_nearest_station,
    find_nearest_stations,
    find_station,
    find_stations_by_line,
    haversine_m,
    parse_stations,
)

ORIGIN = (0.0, 0.0)


def north_of_origin(meters):
    """Latitude that lies ``meters`` due north of the origin."""
    return math.degrees(meters / EARTH_RADIUS_M)


@pytest.fixture
def spaced_stations():
    """Five stations at 50, 10, 30, 10 and 200 metres from the origin."""
    return {
        1: Station(1, "Fifty", 0.0, north_of_origin(50)),
        2: Station(2, "Ten North", 0.0, north_of_origin(10)),
        3: Station(3, "Thirty", 0.0, north_of_origin(30)),
        4: Station(4, "Ten South", 0.0, -north_of_origin(10)),
        5: Station(5, "Two Hundred", 0.0, north_of_origin(200)),
    }


def test_haversine_known_distance():
    """Test one degree of latitude is about 111.2 km."""
    assert haversine_m(0, 0, 0, 1) == pytest.approx(111195, rel=1e-4)
    assert haversine_m(141.35, 43.06, 141.35, 43.06) == 0


def test_haversine_accounts_for_curvature():
    """Test a degree of longitude shrinks away from the equator."""
    assert haversine_m(0, 60, 1, 60) == pytest.approx(haversine_m(0, 0, 1, 0) / 2, rel=1e-3)


def test_nearest_order_and_truncation(spaced_stations):
    """Test the closest stations come back sorted and truncated."""
    nearest = find_nearest_stations(ORIGIN, spaced_stations, 3)
    assert [n.node_id for n in nearest] == [2, 4, 3]
    assert [round(n.distance_m) for n in nearest] == [10, 10, 30]


def test_nearest_distance_bound(spaced_stations):
    """Test the distance bound applies before truncation."""
    all_within = find_nearest_stations(ORIGIN, spaced_stations, 10, max_distance_m=250)
    assert [n.node_id for n in all_within] == [2, 4, 3, 1, 5]

    bounded = find_nearest_stations(ORIGIN, spaced_stations, 10, max_distance_m=100)
    assert 5 not in [n.node_id for n in bounded]
    assert len(bounded) == 4


def test_station_without_coordinates_never_nearest(spaced_stations):
    """Test null-coordinate stations are never candidates."""
    spaced_stations[6] = Station(6, "Nowhere", None, 0.0)
    spaced_stations[7] = Station(7, "Half", 0.0, None)
    nearest = find_nearest_stations(ORIGIN, spaced_stations, 10)
    ids = [n.node_id for n in nearest]
    assert 6 not in ids
    assert 7 not in ids

    only_missing = {6: spaced_stations[6]}
    assert find_nearest_stations(ORIGIN, only_missing, 10) == []
    assert find_nearest_station(ORIGIN, only_missing) is None


def test_isolated_origin_returns_empty(spaced_stations):
    """Test an origin far from every station yields no candidates."""
    assert find_nearest_stations((10.0, 10.0), spaced_stations, 3, max_distance_m=1000) == []


def test_find_nearest_station(spaced_stations):
    """Test the single nearest station."""
    assert find_nearest_station(ORIGIN, spaced_stations).node_id == 2


def test_parse_mapping_form():
    """Test the id -> record mapping with null coordinates."""
    stations = parse_stations({
        "10": {"lon": 141.35, "lat": 43.06, "name": "Sapporo", "line": "Hakodate", "company": "JR", "typeCode": 2},
        "11": {"lon": None, "lat": 43.0, "name": "Ghost"},
    })
    assert set(stations) == {10, 11}
    assert stations[10].name == "Sapporo"
    assert stations[10].type_code == "2"
    assert stations[10].has_coordinates
    assert not stations[11].has_coordinates


def test_parse_feature_collection():
    """Test a GeoJSON collection with short property names."""
    doc = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [141.35, 43.06]},
                "properties": {"id": 1, "s": "Sapporo", "n": "Hakodate Line", "o": "JR Hokkaido", "t": 1},
            },
            {
                "type": "Feature",
                "geometry": None,
                "properties": {"id": "2", "name": "Missing"},
            },
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [0, 0]},
                "properties": {"name": "No id"},
            },
        ],
    }
    stations = parse_stations(doc)
    assert set(stations) == {1, 2}
    assert stations[1].line == "Hakodate Line"
    assert stations[1].company == "JR Hokkaido"
    assert (stations[1].lon, stations[1].lat) == (141.35, 43.06)
    assert not stations[2].has_coordinates


def test_parse_web_mercator_collection():
    """Test EPSG:3857 coordinates are converted to lon/lat."""
    lon, lat = 141.35, 43.06
    x = 6378137 * math.radians(lon)
    y = 6378137 * math.log(math.tan(math.pi / 4 + math.radians(lat) / 2))
    doc = {
        "type": "FeatureCollection",
        "crs": {"type": "name", "properties": {"name": "urn:ogc:def:crs:EPSG::3857"}},
        "features": [
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [x, y]}, "properties": {"id": 1}},
        ],
    }
    station = parse_stations(doc)[1]
    assert station.lon == pytest.approx(lon, abs=1e-6)
    assert station.lat == pytest.approx(lat, abs=1e-6)


def test_parse_rejects_non_mapping():
    """Test station documents must be mappings."""
    with pytest.raises(GraphFormatError):
        parse_stations([1, 2])


def test_find_station_by_name(spaced_stations):
    """Test exact and partial name lookup."""
    assert find_station("ten north", spaced_stations).id == 2
    assert find_station("thir", spaced_stations).id == 3
    assert find_station("nonexistent", spaced_stations) is None


def test_find_stations_by_line():
    """Test line filtering."""
    stations = {
        1: Station(1, "A", 0, 0, line="Namboku Line"),
        2: Station(2, "B", 0, 0, line="Tozai Line"),
    }
    assert [s.id for s in find_stations_by_line("namboku", stations)] == [1]


def test_parse_mapping_skips_bad_records():
    """Test unusable keys and null records are skipped, not raised."""
    stations = parse_stations({
        "1": {"lon": 141.35, "lat": 43.06, "name": "Sapporo"},
        "abc": {"lon": 141.0, "lat": 43.0, "name": "Bad key"},
        "2": None,
    })
    assert list(stations) == [1]
    assert stations[1].name == "Sapporo"
