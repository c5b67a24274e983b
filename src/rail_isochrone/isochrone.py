"""Reachability records and the isochrone computation pipeline."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

from .config import IsochroneSettings
from .graph import RailGraph
from .routing import Seed, solve_multi_source
from .stations import NearestStation, Station, find_nearest_stations, haversine_m

logger = logging.getLogger(__name__)

ORIGIN_NAME = "Origin"
ORIGIN_COLOR = "rgb(255,0,0)"

RAMP_START = (0, 200, 0)  # green
RAMP_END = (200, 0, 0)  # red


@dataclass(frozen=True)
class ReachabilityRecord:
    """A station reached within the time budget."""
    station_id: Optional[int]
    lon: float
    lat: float
    cost_seconds: float
    time_minutes: float
    time_step: int
    remaining_seconds: float
    max_seconds: float
    color: Optional[str] = None
    station_name: str = ""
    line: str = ""
    company: str = ""

    def to_feature(self) -> dict:
        """GeoJSON Point feature for the rendering layer."""
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [self.lon, self.lat]},
            "properties": {
                "station_id": self.station_id,
                "station_name": self.station_name,
                "line": self.line,
                "company": self.company,
                "time_minutes": self.time_minutes,
                "time_step": self.time_step,
                "color": self.color,
                "cost_seconds": self.cost_seconds,
                "remaining_cost_seconds": self.remaining_seconds,
                "max_seconds": self.max_seconds,
            },
        }


def records_to_feature_collection(records: list[ReachabilityRecord]) -> dict:
    return {"type": "FeatureCollection", "features": [r.to_feature() for r in records]}


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def interpolate_color(a: tuple[int, int, int], b: tuple[int, int, int], t: float) -> str:
    r = _round_half_up(a[0] + (b[0] - a[0]) * t)
    g = _round_half_up(a[1] + (b[1] - a[1]) * t)
    bl = _round_half_up(a[2] + (b[2] - a[2]) * t)
    return f"rgb({r},{g},{bl})"


def color_ramp(n: int) -> list[str]:
    """``n`` colors evenly interpolated from green to red."""
    return [interpolate_color(RAMP_START, RAMP_END, i / max(1, n - 1)) for i in range(max(0, n))]


def step_for_cost(cost_seconds: float, step_minutes: float) -> int:
    """1-based time bucket of a cost; zero cost lands in bucket 1."""
    return max(1, math.ceil((cost_seconds / 60) / step_minutes))


def bucket_count(max_minutes: float, step_minutes: float) -> int:
    return math.ceil(max_minutes / step_minutes)


def walk_speed_mps(walk_kmh: float) -> float:
    return walk_kmh * 1000 / 3600


def aggregate(
    cost_map: Mapping[int, float],
    stations: Mapping[int, Station],
    step_minutes: float,
    max_minutes: float,
    debug: bool = False,
) -> list[ReachabilityRecord]:
    """Turn raw node costs into time-bucketed records within ``max_minutes``.

    This is the only place the time budget is enforced. Nodes without a
    station, or whose station has no coordinates, are skipped. Records come
    back ordered by cost.
    """
    if not step_minutes > 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")

    max_seconds = max_minutes * 60
    colors = color_ramp(bucket_count(max_minutes, step_minutes))
    records = []

    for node_id, cost in cost_map.items():
        if cost > max_seconds:
            continue

        station = stations.get(node_id)
        if station is None:
            if debug:
                logger.warning(f"Station not found for node {node_id}")
            continue
        if not station.has_coordinates:
            if debug:
                logger.warning(f"Station {node_id} has invalid coordinates "
                               f"(lon: {station.lon}, lat: {station.lat})")
            continue

        time_step = step_for_cost(cost, step_minutes)
        color = colors[min(time_step - 1, len(colors) - 1)] if colors else None
        records.append(ReachabilityRecord(
            station_id=node_id,
            lon=station.lon,
            lat=station.lat,
            cost_seconds=cost,
            time_minutes=cost / 60,
            time_step=time_step,
            remaining_seconds=max_seconds - cost,
            max_seconds=max_seconds,
            color=color,
            station_name=station.name,
            line=station.line,
            company=station.company,
        ))

    records.sort(key=lambda r: (r.cost_seconds, r.station_id))
    return records


def origin_record(origin: tuple[float, float], max_minutes: float) -> ReachabilityRecord:
    """Stand-in record for an origin with no station in reach."""
    max_seconds = max_minutes * 60
    return ReachabilityRecord(
        station_id=None,
        lon=origin[0],
        lat=origin[1],
        cost_seconds=0.0,
        time_minutes=0.0,
        time_step=1,
        remaining_seconds=max_seconds,
        max_seconds=max_seconds,
        color=ORIGIN_COLOR,
        station_name=ORIGIN_NAME,
    )


def cost_table(cost_map: Mapping[int, float], stations: Mapping[int, Station]) -> list[tuple]:
    """Rows of (id, name, lon, lat, seconds, minutes) sorted by seconds."""
    rows = []
    for node_id, seconds in cost_map.items():
        station = stations.get(node_id)
        rows.append((
            node_id,
            (station.name if station else "") or "(unknown)",
            station.lon if station else None,
            station.lat if station else None,
            seconds,
            round(seconds / 60, 2),
        ))
    rows.sort(key=lambda row: row[4])
    return rows


@dataclass
class IsochroneResult:
    """Everything computed for one origin."""
    origin: tuple[float, float]
    nearest: list[NearestStation]
    cost_map: dict[int, float]
    records: list[ReachabilityRecord]
    colors: list[str]
    settings: IsochroneSettings
    isolated: bool = False

    @property
    def origin_only(self) -> bool:
        """True when no station made it into the result and only the origin is shown."""
        return len(self.records) == 1 and self.records[0].station_id is None

    def to_feature_collection(self) -> dict:
        return records_to_feature_collection(self.records)


@dataclass
class _SolveMemo:
    origin: tuple[float, float]
    key: tuple
    nearest: list[NearestStation]
    cost_map: dict[int, float] = field(default_factory=dict)


class IsochroneService:
    """Computes isochrones from an origin over a loaded rail network.

    The graph and stations are read-only. The service remembers the last
    solve so that a repeated request for the same origin (or one within
    ``origin_tolerance_m``) with a different step or budget only re-runs the
    aggregation.
    """

    def __init__(self, graph: RailGraph, stations: Mapping[int, Station],
                 settings: Optional[IsochroneSettings] = None):
        self.graph = graph
        self.stations = stations
        self.settings = (settings or IsochroneSettings()).validate()
        self._memo: Optional[_SolveMemo] = None

    def nearest_stations(self, origin: tuple[float, float], settings: IsochroneSettings) -> list[NearestStation]:
        return find_nearest_stations(
            origin, self.stations, settings.max_candidates,
            settings.max_walk_distance_m, debug=settings.debug,
        )

    def solve(self, nearest: list[NearestStation], walk_kmh: float) -> dict[int, float]:
        """Network costs with each nearby station seeded by its walking time."""
        speed = walk_speed_mps(walk_kmh)
        seeds = [Seed(n.node_id, n.distance_m / speed) for n in nearest]
        return solve_multi_source(self.graph, seeds)

    def _reusable_memo(self, origin: tuple[float, float], key: tuple,
                       tolerance_m: float) -> Optional[_SolveMemo]:
        memo = self._memo
        if memo is None or memo.key != key:
            return None
        if memo.origin == origin:
            return memo
        if haversine_m(memo.origin[0], memo.origin[1], origin[0], origin[1]) <= tolerance_m:
            return memo
        return None

    def compute(self, origin: tuple[float, float], **overrides) -> IsochroneResult:
        """Isochrone from ``origin`` (lon, lat).

        Keyword overrides (``step_minutes``, ``max_minutes``, ``walk_kmh``,
        ``max_candidates``, ``max_walk_distance_m``) apply to this call only.
        """
        settings = self.settings.with_overrides(**overrides)
        origin = (float(origin[0]), float(origin[1]))
        key = (settings.walk_kmh, settings.max_candidates, settings.max_walk_distance_m)

        memo = self._reusable_memo(origin, key, settings.origin_tolerance_m)
        if memo is not None:
            logger.debug(f"Reusing solve for origin {memo.origin}")
        else:
            nearest = self.nearest_stations(origin, settings)
            cost_map = self.solve(nearest, settings.walk_kmh) if nearest else {}
            memo = _SolveMemo(origin, key, nearest, cost_map)
            self._memo = memo

        if not memo.cost_map:
            logger.info(f"Origin {origin} is not connected to the network")
            return IsochroneResult(
                origin=origin,
                nearest=list(memo.nearest),
                cost_map={},
                records=[origin_record(origin, settings.max_minutes)],
                colors=[ORIGIN_COLOR],
                settings=settings,
                isolated=True,
            )

        if settings.debug:
            self.log_cost_table(memo.cost_map)

        records = aggregate(memo.cost_map, self.stations, settings.step_minutes,
                            settings.max_minutes, debug=settings.debug)
        if settings.debug:
            logger.debug(f"Generated {len(records)} isochrone records from {len(memo.nearest)} nodes")
        if not records:
            logger.info(f"No station reachable from {origin} within {settings.max_minutes:g} minutes")
            records = [origin_record(origin, settings.max_minutes)]

        return IsochroneResult(
            origin=origin,
            nearest=list(memo.nearest),
            cost_map=dict(memo.cost_map),
            records=records,
            colors=color_ramp(bucket_count(settings.max_minutes, settings.step_minutes)),
            settings=settings,
        )

    def log_cost_table(self, cost_map: Mapping[int, float]) -> None:
        rows = cost_table(cost_map, self.stations)
        lines = [f"{node_id:>10} {name:<30} {seconds:>10.1f}s {minutes:>8.2f}min"
                 for node_id, name, _, _, seconds, minutes in rows]
        logger.debug("Computed costs to stations:\n" + "\n".join(lines))
