"""
Health check endpoints: process status and storage mode.
"""
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict

import psutil
import structlog
from fastapi import APIRouter

from core.config import settings
from db_config import db_manager
from storage.selector import storage_mode, volatile_store

router = APIRouter(prefix="/health", tags=["Health"])
logger = structlog.get_logger("health")

_started_at = time.time()


class HealthChecker:
    """Collects process and storage health details."""

    def check_process(self) -> Dict[str, Any]:
        process = psutil.Process(os.getpid())
        memory = process.memory_info()
        return {
            "pid": process.pid,
            "uptime_seconds": round(time.time() - _started_at, 1),
            "memory_rss_mb": round(memory.rss / (1024 ** 2), 2),
            "cpu_percent": process.cpu_percent(interval=None),
        }

    async def check_storage(self, probe: bool = False) -> Dict[str, Any]:
        reachable = None
        if probe and db_manager.enabled:
            started = time.perf_counter()
            reachable = await db_manager.probe()
            logger.info(
                "Storage probe completed",
                reachable=reachable,
                response_time_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        return {
            "mode": storage_mode(),
            "database": {
                "enabled": db_manager.enabled,
                "state": db_manager.state.value,
                "dialect": db_manager.dialect_name,
                "reachable": reachable,
            },
            "volatile": {
                "accounts": len(volatile_store.accounts),
                "resources": len(volatile_store.resources),
                "generations": len(volatile_store.generations),
            },
        }


@router.get("", summary="Basic health check")
async def health_check():
    """Verify the API is running and report which storage backend serves requests."""
    checker = HealthChecker()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.app_name,
        "version": settings.app_version,
        "storage": storage_mode(),
        "process": checker.check_process(),
    }


@router.get("/storage", summary="Storage backend health check")
async def storage_health_check():
    """Probe the database and report the storage mode and in-memory record counts."""
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "storage": await HealthChecker().check_storage(probe=True),
    }


@router.get("/liveness", summary="Liveness probe")
async def liveness_check():
    return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}
