from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse, Response

from hostwatch.config import settings
from hostwatch.db import database as db
from hostwatch.models import DeviceClass

logger = logging.getLogger(__name__)

router = APIRouter()


def _since_ms(range_seconds: int | None) -> int | None:
    if range_seconds is None or range_seconds <= 0:
        return None
    return int(time.time() * 1000) - range_seconds * 1000


# ── current stats ─────────────────────────────────────


@router.get("/api/stats")
async def get_stats(request: Request) -> dict:
    snapshot = await request.app.state.collector.collect()
    return snapshot.model_dump(mode="json")


@router.get("/api/status")
async def get_status(request: Request) -> dict:
    state = request.app.state
    recorder = state.recorder
    return {
        "status": "running",
        "recorder_running": recorder.running,
        "record_interval": recorder.interval,
        "ticks": recorder.ticks,
        "failed_ticks": recorder.failed_ticks,
        "transmission_enabled": state.collector.transmission.enabled,
    }


# ── history ───────────────────────────────────────────


@router.get("/api/history")
async def get_history(
    limit: int = Query(default=settings.history_limit, ge=1),
    range_seconds: int | None = None,
) -> list[dict]:
    return await db.get_samples(limit=limit, since_ms=_since_ms(range_seconds))


@router.get("/api/history/storage")
async def get_storage_history(
    device_type: DeviceClass | None = None,
    device_fs: str | None = None,
    limit: int = Query(default=settings.history_limit, ge=1),
    range_seconds: int | None = None,
) -> list[dict]:
    return await db.get_storage_samples(
        device_type=device_type.value if device_type else None,
        device_fs=device_fs,
        since_ms=_since_ms(range_seconds),
        limit=limit,
    )


@router.get("/api/history.csv", response_class=PlainTextResponse)
async def export_history(
    limit: int = Query(default=settings.history_limit, ge=1),
    range_seconds: int | None = None,
) -> PlainTextResponse:
    text = await db.export_samples(limit=limit, since_ms=_since_ms(range_seconds))
    return PlainTextResponse(text, media_type="text/csv")


@router.get("/api/history/storage.csv", response_class=PlainTextResponse)
async def export_storage_history(
    device_type: DeviceClass | None = None,
    device_fs: str | None = None,
    limit: int = Query(default=settings.history_limit, ge=1),
    range_seconds: int | None = None,
) -> PlainTextResponse:
    text = await db.export_storage_samples(
        device_type=device_type.value if device_type else None,
        device_fs=device_fs,
        since_ms=_since_ms(range_seconds),
        limit=limit,
    )
    return PlainTextResponse(text, media_type="text/csv")


# ── prometheus ────────────────────────────────────────


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    exporter = request.app.state.exporter
    return Response(exporter.render(), media_type=exporter.content_type)
