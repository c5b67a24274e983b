"""Configuration settings for the isochrone engine."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# Network data (local path or http(s) URL)
GRAPH_SOURCE = os.getenv("ISOCHRONE_GRAPH_SOURCE", str(DATA_DIR / "railway_graph.json"))
STATIONS_SOURCE = os.getenv("ISOCHRONE_STATIONS_SOURCE", str(DATA_DIR / "stations.geojson"))
HTTP_TIMEOUT_SECONDS = _env_float("ISOCHRONE_HTTP_TIMEOUT", 60.0)

# Isochrone parameters
WALK_KMH = _env_float("ISOCHRONE_WALK_KMH", 4.8 / math.sqrt(2))  # straight-line walking speed
STEP_MINUTES = _env_float("ISOCHRONE_STEP_MINUTES", 5.0)
MAX_MINUTES = _env_float("ISOCHRONE_MAX_MINUTES", 120.0)
NEAREST_STATIONS_MAX = int(os.getenv("ISOCHRONE_NEAREST_MAX", "10"))
MAX_WALK_DISTANCE_M = _env_float("ISOCHRONE_MAX_WALK_M", None)
ORIGIN_TOLERANCE_M = _env_float("ISOCHRONE_ORIGIN_TOLERANCE_M", 0.0)

DEBUG = _env_bool("ISOCHRONE_DEBUG")

# Named origins for the CLI: key -> (display name, lon, lat)
CITIES = {
    "sapporo": ("Sapporo", 141.3469, 43.0642),
    "sendai": ("Sendai", 140.8694, 38.2688),
    "tokyo": ("Tokyo", 139.6917, 35.6895),
    "yokohama": ("Yokohama", 139.6380, 35.4437),
    "nagoya": ("Nagoya", 136.9066, 35.1815),
    "osaka": ("Osaka", 135.5023, 34.6937),
    "kobe": ("Kobe", 135.1955, 34.6901),
    "kyoto": ("Kyoto", 135.7681, 35.0116),
    "fukuoka": ("Fukuoka", 130.4017, 33.5904),
}


@dataclass(frozen=True)
class IsochroneSettings:
    """Parameters for one isochrone computation."""
    walk_kmh: float = WALK_KMH
    step_minutes: float = STEP_MINUTES
    max_minutes: float = MAX_MINUTES
    max_candidates: int = NEAREST_STATIONS_MAX
    max_walk_distance_m: Optional[float] = MAX_WALK_DISTANCE_M
    origin_tolerance_m: float = ORIGIN_TOLERANCE_M
    debug: bool = DEBUG

    def validate(self) -> "IsochroneSettings":
        """Raise ValueError for parameters the computation cannot use."""
        if not self.walk_kmh > 0:
            raise ValueError(f"walk_kmh must be positive, got {self.walk_kmh}")
        if not self.step_minutes > 0:
            raise ValueError(f"step_minutes must be positive, got {self.step_minutes}")
        if self.max_minutes < 0:
            raise ValueError(f"max_minutes must not be negative, got {self.max_minutes}")
        if self.max_candidates < 1:
            raise ValueError(f"max_candidates must be at least 1, got {self.max_candidates}")
        if self.max_walk_distance_m is not None and self.max_walk_distance_m < 0:
            raise ValueError(f"max_walk_distance_m must not be negative, got {self.max_walk_distance_m}")
        if self.origin_tolerance_m < 0:
            raise ValueError(f"origin_tolerance_m must not be negative, got {self.origin_tolerance_m}")
        return self

    def with_overrides(self, **overrides) -> "IsochroneSettings":
        """Copy with every non-None override applied, validated."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes).validate()


def load_settings() -> IsochroneSettings:
    """Settings built from the environment."""
    return IsochroneSettings().validate()
