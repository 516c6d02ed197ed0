"""Alert, document and scan API endpoints for SecureCoda.

All endpoints are unauthenticated (localhost binding is the security boundary).
Shared state is read from ``request.app.state`` (populated by the lifespan):
    store        — AlertStore
    orchestrator — ScanOrchestrator
    remediation  — RemediationDispatcher
    config       — Config

Routes (prefixed with /api in main.py):
    POST  /scan                     — run a scan now
    GET   /alerts                   — paginated alerts (severity desc, newest first)
    GET   /alerts/stats             — counts by status / type / severity
    GET   /alerts/{id}              — single alert
    PATCH /alerts/{id}/status       — set status directly
    POST  /alerts/{id}/remediate    — delete | acknowledge | ignore
    GET   /documents                — paginated document snapshot from the last scan
    GET   /documents/{docId}        — single document
    GET   /data                     — everything the dashboard needs in one response
"""

from __future__ import annotations

import math
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from securecoda.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from securecoda.errors import (
    AlertNotFoundError,
    DocumentNotFoundError,
    FatalScanError,
    InvalidStatusError,
    InvalidTransitionError,
    ScanInProgressError,
)
from securecoda.models.document import format_timestamp
from securecoda.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["api"])


# ─── Request Models ───────────────────────────────────────────────────────────


class StatusUpdateRequest(BaseModel):
    """Request body for PATCH /api/alerts/{id}/status."""

    status: Optional[str] = None


class RemediateRequest(BaseModel):
    """Request body for POST /api/alerts/{id}/remediate.

    An absent or unknown action yields ``{success: false}``, not a 422.
    """

    action: str = ""


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _require_ready(request: Request) -> None:
    """Raise HTTP 503 until the initial scan has completed."""
    if not getattr(request.app.state, "ready", False):
        raise HTTPException(
            status_code=503,
            detail={"status": "starting", "message": "SecureCoda is starting up"},
        )


def _paginate(items: list[Any], page: int, limit: int) -> dict:
    """Slice ``items`` for ``page`` (1-based) and build the pagination envelope."""
    total = len(items)
    start = (page - 1) * limit
    return {
        "items": items[start:start + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


def _get_alert_or_404(request: Request, alert_id: int):
    try:
        return request.app.state.store.get(alert_id)
    except AlertNotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found") from None


# ─── POST /scan ───────────────────────────────────────────────────────────────


@router.post("/scan")
async def trigger_scan(request: Request) -> Any:
    """Run a scan on demand and return its summary.

    Responses:
        200 {success: true, results: {documentsScanned, alertsCreated, errors}}
        409 a scheduled or manual scan is already running
        500 {error: "Scan failed", message} when the document listing fails
    """
    _require_ready(request)
    orchestrator = request.app.state.orchestrator

    logger.info("Manual scan triggered")
    try:
        result = await orchestrator.run(trigger="manual")
    except ScanInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except FatalScanError as exc:
        logger.error("Scan failed", error=str(exc))
        return JSONResponse(
            status_code=500,
            content={"error": "Scan failed", "message": str(exc)},
        )
    return {"success": True, "results": result.to_dict()}


# ─── Alerts ───────────────────────────────────────────────────────────────────


@router.get("/alerts")
async def list_alerts(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
) -> dict:
    """Paginated alerts, critical first, newest first within a severity."""
    _require_ready(request)
    alerts = [a.to_dict() for a in request.app.state.store.list()]
    return _paginate(alerts, page, limit)


@router.get("/alerts/stats")
async def alert_stats(request: Request) -> dict:
    """Response: {total, byStatus, byType, bySeverity}."""
    _require_ready(request)
    return request.app.state.store.stats()


@router.get("/alerts/{alert_id}")
async def get_alert(request: Request, alert_id: int) -> dict:
    _require_ready(request)
    return _get_alert_or_404(request, alert_id).to_dict()


@router.patch("/alerts/{alert_id}/status")
async def update_alert_status(
    request: Request,
    alert_id: int,
    body: StatusUpdateRequest,
) -> dict:
    """Set an alert's status directly.

    Responses:
        200 updated alert
        400 status is not open | acknowledged | remediated | ignored
        404 unknown alert
        409 alert already left ``open`` (statuses only move forward)
    """
    _require_ready(request)
    try:
        alert = request.app.state.store.set_status(alert_id, body.status)
    except AlertNotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found") from None
    except InvalidStatusError:
        raise HTTPException(status_code=400, detail="Invalid status") from None
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return alert.to_dict()


@router.post("/alerts/{alert_id}/remediate")
async def remediate_alert(
    request: Request,
    alert_id: int,
    body: RemediateRequest,
) -> dict:
    """Apply a remediation action. Always 200 with {success, message} unless the alert is unknown."""
    _require_ready(request)
    try:
        result = await request.app.state.remediation.remediate(alert_id, body.action)
    except AlertNotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found") from None
    return result.to_dict()


# ─── Documents ────────────────────────────────────────────────────────────────


@router.get("/documents")
async def list_documents(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
) -> dict:
    """Paginated document snapshot retained from the most recent scan."""
    _require_ready(request)
    documents = [d.to_dict() for d in request.app.state.store.documents()]
    return _paginate(documents, page, limit)


@router.get("/documents/{doc_id}")
async def get_document(request: Request, doc_id: str) -> dict:
    _require_ready(request)
    try:
        return request.app.state.store.get_document(doc_id).to_dict()
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Document not found") from None


# ─── GET /data ────────────────────────────────────────────────────────────────


@router.get("/data")
async def get_data(request: Request) -> dict:
    """Full dashboard snapshot in one response.

    Response:
        documents: all documents from the last scan
        alerts:    all alerts in list order
        stats:     same shape as /alerts/stats
        lastScan:  ISO timestamp of the last successful scan, or null
        mode:      "demo" | "live"
    """
    _require_ready(request)
    store = request.app.state.store
    orchestrator = request.app.state.orchestrator
    config = request.app.state.config
    return {
        "documents": [d.to_dict() for d in store.documents()],
        "alerts": [a.to_dict() for a in store.list()],
        "stats": store.stats(),
        "lastScan": format_timestamp(orchestrator.last_scan_at),
        "mode": "demo" if config.demo_mode else "live",
    }
