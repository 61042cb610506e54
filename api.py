"""
FastAPI server for the City Water Lookup Engine.

Serves the dashboard's city list and per-city water-usage models. Every city
request resolves to a model: unknown cities and backend outages fall back to
the default dataset.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from city_engine.config import Config
from city_engine.engine import CityEngine

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("api")

# ---------------------------------------------------------------------------
# Global engine (built once at startup)
# ---------------------------------------------------------------------------
engine: Optional[CityEngine] = None


def _load_env_file(env_path: Path):
    """Load KEY=VALUE lines from a .env file without overriding the environment."""
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, val = line.split("=", 1)
            os.environ.setdefault(key.strip(), val.strip())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine on startup, release the backend on shutdown."""
    global engine
    _load_env_file(Path(__file__).parent / ".env")
    engine = CityEngine(Config.from_env())
    logger.info("Engine ready")

    yield

    if engine:
        engine.close()
        engine = None
    logger.info("Shutdown complete.")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="City Water Usage API",
    description="Per-capita consumption, recycling and sustainability data for cities.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------
class CitySummaryResponse(BaseModel):
    id: str
    name: str
    country: str


class HealthResponse(BaseModel):
    status: str
    engine_loaded: bool
    uptime_seconds: float


_start_time = time.time()


def _require_engine() -> CityEngine:
    if not engine:
        raise HTTPException(status_code=503, detail="Engine is still loading. Try again shortly.")
    return engine


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="ok" if engine else "loading",
        engine_loaded=engine is not None,
        uptime_seconds=round(time.time() - _start_time, 1),
    )


@app.get("/cities", response_model=List[CitySummaryResponse])
async def list_cities():
    """All selectable cities: backend rows plus the default set."""
    cities = await _require_engine().list_cities()
    return JSONResponse(content=[c.to_dict() for c in cities])


@app.get("/cities/{city_id}")
async def get_city(city_id: str):
    """Water-usage model for one city. Unknown ids resolve to generic defaults."""
    model = await _require_engine().get_city_by_id(city_id)
    return JSONResponse(content=model.to_dict())


@app.get("/compare")
async def compare(
    ids: str = Query(..., description="Comma-separated city ids", min_length=1),
):
    """Side-by-side models for several cities."""
    identifiers = [i.strip() for i in ids.split(",") if i.strip()]
    if not identifiers:
        raise HTTPException(status_code=400, detail="No city ids provided.")
    models = await _require_engine().compare_cities(identifiers)
    return JSONResponse(content=[m.to_dict() for m in models])
