import newrelic.agent
from pathlib import Path
newrelic.agent.initialize(str(Path(__file__).resolve().parent.parent / "newrelic.ini"))
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time
import logging

from app.core import connections
from app.core.config import get_settings
from app.core.errors import FareServiceError
from app.core.pricing_config import build_pricing_config
from app.core.randomness import SystemClock, make_random_source
from app.routers import fares
from app.services.aggregator import build_fare_aggregator
from app.services.routing import RouteResolver

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up, opening HTTP and Redis clients...")
    await connections.connect()
    settings = get_settings()
    config = build_pricing_config(settings)
    rng = make_random_source(settings.random_seed)

    app.state.pricing_config = config
    app.state.fare_aggregator = build_fare_aggregator(
        settings, config, connections.http_client, rng, SystemClock(settings.timezone)
    )
    app.state.route_resolver = RouteResolver(
        rng, connections.http_client, settings.google_maps_api_key, config.average_speed_kmh
    )
    logger.info(f"Ready: {len(config.providers)} providers, {len(config.cities)} cities ({settings.app_env})")
    yield
    logger.info("Shutting down...")
    await connections.disconnect()


app = FastAPI(
    title="FareWise Fare Comparison API",
    description="Normalized ride fare estimates across Uber, Ola and Rapido with fallback pricing.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Latency tracking middleware ──────────────────────────────────────────────
@app.middleware("http")
async def add_latency_header(request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Response-Time-Ms"] = f"{latency_ms:.2f}"
    if latency_ms > 500:
        logger.warning(f"SLOW REQUEST: {request.method} {request.url.path} took {latency_ms:.0f}ms")
    return response


# ─── Error handling ───────────────────────────────────────────────────────────
@app.exception_handler(FareServiceError)
async def fare_service_error(request: Request, exc: FareServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Error calculating fares: {exc}")
    return JSONResponse(status_code=500, content={"error": "Failed to calculate fares"})


# ─── Routers ──────────────────────────────────────────────────────────────────
app.include_router(fares.router)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "FareWise Fare Comparison"}
