"""Health endpoint for SecureCoda.

Implements:
  GET /health — 503 before ready, 200 with scan status after

Shares the ``app.state.ready`` gate set by the lifespan once the initial scan
has finished. Polled by container probes and the dashboard status indicator.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from securecoda.config import Config
from securecoda.models.document import format_timestamp
from securecoda.scanner.orchestrator import ScanOrchestrator

router = APIRouter(tags=["health"])


# ─── /health ──────────────────────────────────────────────────────────────────


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Primary health check endpoint.

    Response body (200):
        {
          "status": "ok",
          "mode": "demo" | "live",
          "scheduler": "running" | "stopped",
          "scan_in_progress": false,
          "last_scan": "2026-01-01T00:05:00Z" | null,
          "last_scan_errors": 0,
          "alerts": 12
        }

    Response body (503):
        {"status": "starting", "message": "SecureCoda is starting up. Initial scan running..."}
    """
    if not getattr(request.app.state, "ready", False):
        raise HTTPException(
            status_code=503,
            detail={
                "status": "starting",
                "message": "SecureCoda is starting up. Initial scan running...",
            },
        )

    config: Config = request.app.state.config
    orchestrator: ScanOrchestrator = request.app.state.orchestrator
    scheduler = getattr(request.app.state, "scheduler", None)
    last_result = orchestrator.last_result

    return {
        "status": "ok",
        "mode": "demo" if config.demo_mode else "live",
        "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
        "scan_in_progress": orchestrator.in_progress,
        "last_scan": format_timestamp(orchestrator.last_scan_at),
        "last_scan_errors": len(last_result.errors) if last_result else 0,
        "alerts": len(request.app.state.store),
    }
