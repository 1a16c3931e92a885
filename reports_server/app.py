"""
HTTP surface of the reports archiver.

Hosts the archiver's background loop and exposes its operational probes:
- GET /health: archiver health (503 when it disabled itself)
- GET /info: bounded history of the last archive cycles
- GET /executions: executions archived into local storage

Run with:
    uvicorn reports_server.app:app
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse

from reports_archiver.archiver import ReportsArchiver
from reports_common.config import ArchiverConfig
from reports_common.persistency import MetadataPersistency
from reports_persistence.sqlite_persistency import SQLiteMetadataPersistency

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Global instances (initialized at startup)
persistency: MetadataPersistency | None = None
archiver: ReportsArchiver | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI app.

    Handles startup and shutdown events:
    - Startup: Read configuration, open local persistency, start the archive loop
    - Shutdown: Stop the archive loop, close database connections
    """
    global persistency, archiver

    config = ArchiverConfig.from_env()
    persistency = SQLiteMetadataPersistency(config.db_path)
    await persistency.initialize()

    archiver = ReportsArchiver(config, persistency)
    await archiver.start()

    yield

    await archiver.stop()
    await persistency.close()


app = FastAPI(lifespan=lifespan)


def get_archiver() -> ReportsArchiver:
    """
    Get the global archiver instance.

    Raises:
        RuntimeError: If archiver is not initialized
    """
    if archiver is None:
        raise RuntimeError("Archiver not initialized")
    return archiver


def get_persistency() -> MetadataPersistency:
    """
    Get the global persistency instance.

    Raises:
        RuntimeError: If persistency is not initialized
    """
    if persistency is None:
        raise RuntimeError("Persistency not initialized")
    return persistency


@app.get("/health")
async def health_check(arch: ReportsArchiver = Depends(get_archiver)) -> JSONResponse:
    """
    Health check endpoint.

    Returns:
        200 with status="UP", or 503 with status="DOWN" and a detail when the
        archiver disabled itself after a runtime failure
    """
    health = arch.health()
    status_code = 200 if health["status"] == "UP" else 503
    return JSONResponse(content=health, status_code=status_code)


@app.get("/info")
async def info(arch: ReportsArchiver = Depends(get_archiver)) -> dict[str, Any]:
    """
    Archive history of the last cycles (empty when the archiver is disabled).
    """
    return arch.info()


@app.get("/executions")
async def list_executions(
    store: MetadataPersistency = Depends(get_persistency),
) -> list[dict[str, Any]]:
    """List all executions archived into local storage."""
    executions = await store.get_all()
    return [execution.to_dict() for execution in executions]


@app.get("/executions/{execution_id}")
async def get_execution(
    execution_id: int,
    store: MetadataPersistency = Depends(get_persistency),
) -> dict[str, Any]:
    """
    Get one archived execution.

    Raises:
        HTTPException: 404 if the execution is not archived locally
    """
    execution = await store.get(execution_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    return execution.to_dict()
