"""FastAPI web interface for the isochrone engine."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import GRAPH_SOURCE, STATIONS_SOURCE, load_settings
from .data_loader import DataLoadError, load_network
from .graph import GraphFormatError, NegativeCostError
from .isochrone import IsochroneService, color_ramp
from .stations import find_nearest_stations, find_stations_by_line

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Rail Isochrone",
    description="Travel-time reachability over a rail network",
    version="0.1.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_service: Optional[IsochroneService] = None


def get_service() -> IsochroneService:
    """Get or create the service singleton from the configured data sources."""
    global _service
    if _service is None:
        try:
            graph, stations = load_network(GRAPH_SOURCE, STATIONS_SOURCE)
        except (DataLoadError, GraphFormatError, NegativeCostError) as e:
            logger.error(f"Could not load network data: {e}")
            raise HTTPException(status_code=503, detail=f"Network data unavailable: {e}")
        _service = IsochroneService(graph, stations, load_settings())
    return _service


def set_service(service: Optional[IsochroneService]) -> None:
    """Install a prebuilt service (or None to reload lazily)."""
    global _service
    _service = service


class IsochroneRequest(BaseModel):
    lon: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)
    step_minutes: Optional[float] = None
    max_minutes: Optional[float] = None
    walk_kmh: Optional[float] = None
    max_candidates: Optional[int] = None
    max_walk_distance_m: Optional[float] = None


class NearestRequest(BaseModel):
    lon: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)
    max_count: int = Field(10, ge=1)
    max_distance_m: Optional[float] = Field(None, ge=0)


@app.get("/")
async def root():
    """Service info."""
    return {"status": "ok", "service": "Rail Isochrone"}


@app.get("/health")
def health():
    """Health check with network size."""
    service = get_service()
    return {
        "status": "ok",
        "nodes": len(service.graph),
        "edges": service.graph.edge_count,
        "stations": len(service.stations),
    }


@app.post("/isochrone")
def isochrone_endpoint(request: IsochroneRequest):
    """Reachable stations from an origin as a GeoJSON FeatureCollection."""
    service = get_service()
    try:
        result = service.compute(
            (request.lon, request.lat),
            step_minutes=request.step_minutes,
            max_minutes=request.max_minutes,
            walk_kmh=request.walk_kmh,
            max_candidates=request.max_candidates,
            max_walk_distance_m=request.max_walk_distance_m,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    collection = result.to_feature_collection()
    collection.update({
        "colors": result.colors,
        "isolated": result.isolated,
        "origin_only": result.origin_only,
        "step_minutes": result.settings.step_minutes,
        "max_minutes": result.settings.max_minutes,
        "nearest": [
            {"station_id": n.node_id, "distance_m": n.distance_m}
            for n in result.nearest
        ],
    })
    return collection


@app.post("/nearest")
def nearest_endpoint(request: NearestRequest):
    """Stations closest to a point, nearest first."""
    service = get_service()
    nearest = find_nearest_stations(
        (request.lon, request.lat), service.stations,
        request.max_count, request.max_distance_m,
    )
    return {
        "count": len(nearest),
        "stations": [
            {
                "station_id": n.node_id,
                "name": service.stations[n.node_id].name,
                "distance_m": n.distance_m,
            }
            for n in nearest
        ]
    }


@app.get("/stations")
def list_stations(line: Optional[str] = None):
    """List all stations, optionally filtered by line."""
    service = get_service()
    stations = list(service.stations.values())
    if line:
        stations = find_stations_by_line(line, service.stations)

    return {
        "count": len(stations),
        "stations": [
            {
                "id": s.id,
                "name": s.name,
                "line": s.line,
                "company": s.company,
                "lon": s.lon,
                "lat": s.lat,
            }
            for s in stations
        ]
    }


@app.get("/colors/{n}")
async def colors_endpoint(n: int):
    """Green-to-red color ramp with n entries."""
    if n < 0 or n > 1000:
        raise HTTPException(status_code=400, detail="n must be between 0 and 1000")
    return {"colors": color_ramp(n)}


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the FastAPI server."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
