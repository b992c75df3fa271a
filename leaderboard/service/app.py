"""FastAPI HTTP boundary for the node reputation leaderboard."""

import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..core import CacheStoreError, NodeNotFoundError, utcnow
from .config import LeaderboardConfig
from .engine import LeaderboardEngine
from .facade import QueryFacade
from .scheduler import Scheduler

# Configure logging
log_level = os.getenv("LB_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


# ============================================================================
# Response Models
# ============================================================================

class LeaderboardMetadata(BaseModel):
    total_nodes: int
    last_updated: datetime | None = None
    timestamp: datetime | None = None
    field_metadata: dict[str, Any] = Field(default_factory=dict)
    message: str | None = None


class LeaderboardResponse(BaseModel):
    """Top of the leaderboard."""
    success: bool = True
    data: list[dict[str, Any]]
    metadata: LeaderboardMetadata


class NodeMetadata(BaseModel):
    total_nodes: int
    last_updated: datetime | None = None


class NodeResponse(BaseModel):
    """A single node's ranking entry."""
    success: bool = True
    data: dict[str, Any]
    metadata: NodeMetadata


class TopNodesMetadata(BaseModel):
    requested_count: int
    returned_count: int
    total_nodes: int
    last_updated: datetime | None = None


class TopNodesResponse(BaseModel):
    """First N entries of the leaderboard."""
    success: bool = True
    data: list[dict[str, Any]]
    metadata: TopNodesMetadata


class LeaderboardStats(BaseModel):
    total_nodes: int
    average_score: float
    top_score: float
    tier_distribution: dict[str, int]
    last_updated: datetime | None = None


class StatsResponse(BaseModel):
    """Aggregate stats over every ranked node."""
    success: bool = True
    data: LeaderboardStats


class RefreshResponse(BaseModel):
    """Acknowledgement of a refresh request."""
    success: bool = True
    accepted: bool
    message: str


# ============================================================================
# Application
# ============================================================================

def create_app(config: LeaderboardConfig | None = None, engine: LeaderboardEngine | None = None) -> FastAPI:
    """
    Build the HTTP app.

    Without arguments the config comes from LB_* variables and the engine
    from the JSON files it names, both resolved at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage the engine and scheduler lifecycle."""
        logger.info("Starting Leaderboard HTTP Server...")

        cfg = config or LeaderboardConfig.from_env()
        eng = engine or LeaderboardEngine.from_config(cfg)
        eng.initialize()

        scheduler = Scheduler(eng.refresh, interval=cfg.update_interval, drain_timeout=cfg.drain_timeout)
        app.state.engine = eng
        app.state.scheduler = scheduler
        app.state.facade = QueryFacade(eng.cache, scheduler)
        app.state.started_at = time.monotonic()

        scheduler.start()
        logger.info("Server ready")

        yield

        # Shutdown
        scheduler.stop()
        logger.info("Server stopped")

    app = FastAPI(
        title="Node Reputation Leaderboard",
        description="Ranked node reputation scores served from a refreshed cache",
        version=__version__,
        lifespan=lifespan,
    )
    register_routes(app)
    return app


def _facade(request: Request) -> QueryFacade:
    facade = getattr(request.app.state, "facade", None)
    if facade is None:
        raise HTTPException(status_code=500, detail="Leaderboard service not initialized")
    return facade


# ============================================================================
# API Endpoints
# ============================================================================

def register_routes(app: FastAPI):

    @app.get("/")
    async def index():
        """Service name and endpoint index."""
        return {
            "name": "Node Reputation Leaderboard API",
            "version": __version__,
            "status": "running",
            "endpoints": {
                "health": "GET /health",
                "metrics": "GET /metrics",
                "leaderboard": "GET /leaderboard",
                "node_ranking": "GET /leaderboard/node/{node_id}",
                "top_nodes": "GET /leaderboard/top/{count}",
                "stats": "GET /leaderboard/stats",
                "refresh": "POST /leaderboard/refresh",
            },
        }

    @app.get("/health")
    async def health(request: Request):
        """Cache availability and scheduler state."""
        engine = getattr(request.app.state, "engine", None)
        scheduler = getattr(request.app.state, "scheduler", None)
        cache_ready = bool(engine and engine.cache.ready)

        try:
            has_snapshot = bool(_facade(request).get_leaderboard()["data"])
        except (CacheStoreError, HTTPException) as e:
            logger.warning(f"Health check could not read leaderboard: {e}")
            has_snapshot = False

        return JSONResponse(
            status_code=status.HTTP_200_OK if cache_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "healthy" if cache_ready else "unhealthy",
                "timestamp": utcnow().isoformat(),
                "services": {
                    "cache": "connected" if cache_ready else "unavailable",
                    "leaderboard": "healthy" if has_snapshot else "no data",
                    "scheduler": scheduler.state if scheduler else "stopped",
                },
                "version": __version__,
            },
        )

    @app.get("/metrics")
    async def metrics(request: Request):
        """Process uptime and scheduler counters."""
        scheduler = getattr(request.app.state, "scheduler", None)
        started_at = getattr(request.app.state, "started_at", time.monotonic())
        return {
            "uptime": time.monotonic() - started_at,
            "scheduler": {
                "state": scheduler.state if scheduler else "stopped",
                "completed": scheduler.completed if scheduler else 0,
                "failed": scheduler.failed if scheduler else 0,
                "skipped": scheduler.skipped if scheduler else 0,
            },
            "timestamp": utcnow().isoformat(),
        }

    @app.get("/leaderboard", response_model=LeaderboardResponse)
    async def get_leaderboard(request: Request):
        """Current rankings (top 100)."""
        facade = _facade(request)
        try:
            leaderboard = facade.get_leaderboard()
        except Exception as e:
            logger.error(f"Error fetching leaderboard: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch leaderboard")

        return {
            "data": leaderboard["data"],
            "metadata": {
                "total_nodes": leaderboard["total_nodes"],
                "last_updated": leaderboard["last_updated"],
                "timestamp": leaderboard["timestamp"],
                "field_metadata": leaderboard["field_metadata"],
                "message": leaderboard.get("message"),
            },
        }

    @app.get("/leaderboard/stats", response_model=StatsResponse)
    async def get_stats(request: Request):
        """Aggregate stats over the whole network."""
        facade = _facade(request)
        try:
            return {"data": facade.get_stats()}
        except Exception as e:
            logger.error(f"Error fetching leaderboard stats: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch leaderboard stats")

    @app.get("/leaderboard/node/{node_id}", response_model=NodeResponse)
    async def get_node(node_id: str, request: Request):
        """A specific node's ranking, searched across all nodes."""
        facade = _facade(request)
        try:
            result = facade.get_node(node_id)
        except NodeNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            logger.error(f"Error fetching node ranking: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch node ranking")

        return {
            "data": result["data"],
            "metadata": {
                "total_nodes": result["total_nodes"],
                "last_updated": result["last_updated"],
            },
        }

    @app.get("/leaderboard/top/{count}", response_model=TopNodesResponse)
    async def get_top_nodes(count: str, request: Request):
        """First `count` nodes; count is clamped to 1..100."""
        facade = _facade(request)
        try:
            result = facade.get_top(count)
        except Exception as e:
            logger.error(f"Error fetching top nodes: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch top nodes")

        return {
            "data": result["data"],
            "metadata": {
                "requested_count": result["requested_count"],
                "returned_count": result["returned_count"],
                "total_nodes": result["total_nodes"],
                "last_updated": result["last_updated"],
            },
        }

    @app.post("/leaderboard/refresh", response_model=RefreshResponse, status_code=status.HTTP_202_ACCEPTED)
    async def refresh_leaderboard(request: Request):
        """Trigger a recompute; does not wait for it to finish."""
        accepted = _facade(request).force_refresh()
        if accepted:
            message = "Leaderboard refresh initiated"
        else:
            message = "Leaderboard refresh skipped (update in progress or service stopping)"
        return {"accepted": accepted, "message": message}


app = create_app()
