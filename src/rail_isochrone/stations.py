"""Station records and nearest-station lookup."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

from pyproj import Transformer

from .graph import GraphFormatError, normalize_node_id

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371008.8  # mean Earth radius


@dataclass(frozen=True)
class Station:
    """A graph node with a location and display metadata."""
    id: int
    name: str = ""
    lon: Optional[float] = None
    lat: Optional[float] = None
    line: str = ""
    company: str = ""
    type_code: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return (
            self.lon is not None and self.lat is not None
            and math.isfinite(self.lon) and math.isfinite(self.lat)
        )


class NearestStation(NamedTuple):
    """A station near the origin and its straight-line distance."""
    node_id: int
    distance_m: float


def haversine_m(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Great-circle distance in metres between two lon/lat points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def find_nearest_stations(
    origin: tuple[float, float],
    stations: Mapping[int, Station],
    max_count: int,
    max_distance_m: Optional[float] = None,
    debug: bool = False,
) -> list[NearestStation]:
    """Up to ``max_count`` stations closest to ``origin`` (lon, lat), nearest first.

    Stations without coordinates are never candidates. Candidates farther
    than ``max_distance_m`` are dropped before sorting. An empty list means
    the origin is not connected to the network.
    """
    origin_lon, origin_lat = origin
    candidates = []
    for station_id, station in stations.items():
        if not station.has_coordinates:
            if debug:
                logger.warning(f"Station {station_id} has invalid coordinates "
                               f"(lon: {station.lon}, lat: {station.lat})")
            continue
        d = haversine_m(origin_lon, origin_lat, station.lon, station.lat)
        if max_distance_m is not None and d > max_distance_m:
            continue
        candidates.append(NearestStation(station_id, d))

    candidates.sort(key=lambda c: c.distance_m)
    return candidates[:max(0, max_count)]


def find_nearest_station(origin: tuple[float, float],
                         stations: Mapping[int, Station]) -> Optional[NearestStation]:
    """The single closest station, or None if no station has coordinates."""
    nearest = find_nearest_stations(origin, stations, 1)
    return nearest[0] if nearest else None


def find_station(query: str, stations: Mapping[int, Station]) -> Optional[Station]:
    """Find a station by name (exact, then shortest partial match)."""
    query_lower = query.lower().strip()
    if not query_lower:
        return None

    matches = []
    for station in stations.values():
        name = station.name.lower()
        if not name:
            continue
        if name == query_lower:
            return station
        if query_lower in name:
            matches.append((len(name), station.id, station))

    if matches:
        matches.sort(key=lambda x: (x[0], x[1]))
        return matches[0][2]
    return None


def find_stations_by_line(line: str, stations: Mapping[int, Station]) -> list[Station]:
    """All stations whose line name contains ``line``."""
    line = line.lower()
    return [s for s in stations.values() if line in s.line.lower()]


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _station_from_properties(station_id: int, props: Mapping, lon, lat) -> Station:
    type_code = props.get("t", props.get("typeCode", props.get("type_code")))
    return Station(
        id=station_id,
        name=_text(props.get("s") or props.get("name")),
        lon=_to_float(lon),
        lat=_to_float(lat),
        line=_text(props.get("n") or props.get("line") or props.get("route")),
        company=_text(props.get("o") or props.get("company")),
        type_code=None if type_code is None else str(type_code),
    )


def _is_web_mercator(collection: Mapping) -> bool:
    crs = collection.get("crs") or {}
    name = (crs.get("properties") or {}).get("name") or ""
    return "3857" in name


def _parse_feature_collection(collection: Mapping) -> dict[int, Station]:
    transformer = None
    if _is_web_mercator(collection):
        transformer = Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True)

    stations: dict[int, Station] = {}
    skipped = 0
    for feature in collection.get("features") or []:
        props = feature.get("properties") or {}
        raw_id = props.get("id")
        if raw_id is None:
            raw_id = feature.get("id")
        try:
            station_id = normalize_node_id(raw_id)
        except GraphFormatError:
            skipped += 1
            continue

        geometry = feature.get("geometry") or {}
        coords = geometry.get("coordinates") or [None, None]
        lon, lat = (coords + [None, None])[:2] if isinstance(coords, list) else (None, None)
        lon, lat = _to_float(lon), _to_float(lat)
        if transformer is not None and lon is not None and lat is not None:
            lon, lat = transformer.transform(lon, lat)
        stations[station_id] = _station_from_properties(station_id, props, lon, lat)

    if skipped:
        logger.warning(f"Skipped {skipped} station feature(s) without a usable id")
    return stations


def parse_stations(doc: Any) -> dict[int, Station]:
    """Station records keyed by integer id.

    Accepts a GeoJSON FeatureCollection of points or a mapping
    ``id -> {lon, lat, name, line, company, typeCode}``. Coordinates that are
    missing stay None; such stations are kept but never used for distances.
    """
    if isinstance(doc, Mapping) and doc.get("type") == "FeatureCollection":
        stations = _parse_feature_collection(doc)
    elif isinstance(doc, Mapping):
        stations = {}
        skipped = 0
        for key, record in doc.items():
            try:
                station_id = normalize_node_id(key)
            except GraphFormatError:
                skipped += 1
                continue
            if isinstance(record, Station):
                stations[station_id] = record
            elif isinstance(record, Mapping):
                stations[station_id] = _station_from_properties(
                    station_id, record, record.get("lon"), record.get("lat"))
            else:
                skipped += 1
        if skipped:
            logger.warning(f"Skipped {skipped} station record(s) without a usable id or body")
    else:
        raise GraphFormatError("Station document must be a FeatureCollection or a mapping")

    missing = sum(1 for s in stations.values() if not s.has_coordinates)
    logger.info(f"Loaded {len(stations)} stations ({missing} without coordinates)")
    return stations
