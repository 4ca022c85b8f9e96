from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hostwatch.api.routes import router
from hostwatch.collectors import StatsCollector
from hostwatch.config import settings
from hostwatch.db import database as db
from hostwatch.engine import MetricsRecorder, PrometheusExporter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── startup ───────────────────────────────────────
    await db.init_db()

    collector = StatsCollector(settings)
    exporter = PrometheusExporter(prefix=settings.metrics_prefix)
    recorder = MetricsRecorder(collector, interval=settings.record_interval, exporter=exporter)
    await recorder.start()

    # Single collector per process: the recorder and the routes share it
    app.state.collector = collector
    app.state.exporter = exporter
    app.state.recorder = recorder

    logger.info(
        "Host monitor started (db=%s, transmission=%s)",
        settings.db_path,
        "on" if collector.transmission.enabled else "off",
    )

    yield

    # ── shutdown ──────────────────────────────────────
    await recorder.stop()
    await collector.aclose()
    logger.info("Host monitor shut down")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
