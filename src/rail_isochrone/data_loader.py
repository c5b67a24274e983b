"""Loading of the precomputed graph and station documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import requests

from .config import GRAPH_SOURCE, HTTP_TIMEOUT_SECONDS, STATIONS_SOURCE
from .graph import RailGraph
from .stations import Station, parse_stations

logger = logging.getLogger(__name__)


class DataLoadError(RuntimeError):
    """A network document could not be fetched or decoded."""


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_json(url: str, timeout: Optional[float] = None) -> Any:
    """Download and decode a JSON document."""
    logger.info(f"Fetching {url}")
    try:
        response = requests.get(url, timeout=timeout or HTTP_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.Timeout as e:
        raise DataLoadError(f"Request for {url} timed out") from e
    except requests.exceptions.ConnectionError as e:
        raise DataLoadError(f"Connection failed for {url}: {e}") from e
    except requests.exceptions.HTTPError as e:
        raise DataLoadError(f"Fetch failed for {url}: {e}") from e
    except ValueError as e:
        raise DataLoadError(f"Response from {url} is not valid JSON") from e


def read_json(path: Union[str, Path]) -> Any:
    """Read and decode a local JSON document."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise DataLoadError(f"File not found: {path}") from e
    except json.JSONDecodeError as e:
        raise DataLoadError(f"{path} is not valid JSON: {e}") from e


def load_json(source: Union[str, Path]) -> Any:
    """Decode a JSON document from an http(s) URL or a local path."""
    if isinstance(source, str) and _is_url(source):
        return fetch_json(source)
    return read_json(source)


def load_graph(source: Union[str, Path] = GRAPH_SOURCE) -> RailGraph:
    return RailGraph.from_document(load_json(source))


def load_stations(source: Union[str, Path] = STATIONS_SOURCE) -> dict[int, Station]:
    return parse_stations(load_json(source))


def load_network(
    graph_source: Union[str, Path] = GRAPH_SOURCE,
    stations_source: Union[str, Path] = STATIONS_SOURCE,
) -> tuple[RailGraph, dict[int, Station]]:
    """Graph and stations, ready for an IsochroneService."""
    graph = load_graph(graph_source)
    stations = load_stations(stations_source)
    unknown = sum(1 for station_id in stations if not graph.has_node(station_id))
    if unknown:
        logger.warning(f"{unknown} station(s) are not nodes of the graph")
    return graph, stations
