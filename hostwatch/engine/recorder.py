from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from hostwatch.collectors.stats_collector import StatsCollector
from hostwatch.config import settings
from hostwatch.db import database as db
from hostwatch.engine.exporter import PrometheusExporter
from hostwatch.models import AlertLevel, AlertThreshold, Sample, Snapshot, StorageSample

logger = logging.getLogger(__name__)


def build_sample(snapshot: Snapshot, ts_ms: int) -> Sample:
    """Flatten a Snapshot into one persisted row."""
    mem = snapshot.memory
    tx = snapshot.transmission
    tx_live = tx.enabled and not tx.error
    return Sample(
        ts_ms=ts_ms,
        cpu_load1=snapshot.cpu.load_1,
        cpu_load5=snapshot.cpu.load_5,
        cpu_load15=snapshot.cpu.load_15,
        mem_used_mb=mem.used_mb,
        mem_total_mb=mem.total_mb,
        mem_swap_used_mb=mem.swap_used_mb,
        mem_swap_total_mb=mem.swap_total_mb,
        mem_free_mb=mem.free_mb,
        mem_available_mb=mem.available_mb,
        mem_shared_mb=mem.shared_mb,
        mem_buffers_mb=mem.buffers_mb,
        mem_cached_mb=mem.cached_mb,
        mem_buffcache_mb=mem.buff_cache_mb,
        mem_used_pct=mem.used_percent,
        disk_used_percent=snapshot.disk.used_percent,
        disk_size_bytes=snapshot.disk.size_bytes,
        net_rx_bps=snapshot.network.rx_bps,
        net_tx_bps=snapshot.network.tx_bps,
        tx_download_bps=tx.session.download_bps if tx_live else 0.0,
        tx_upload_bps=tx.session.upload_bps if tx_live else 0.0,
        tx_active_torrents=tx.session.active_torrents if tx_live else 0,
    )


def build_storage_samples(snapshot: Snapshot, ts_ms: int) -> list[StorageSample]:
    return [
        StorageSample(
            ts_ms=ts_ms,
            device_fs=dev.fs,
            mount=dev.mount,
            device_type=dev.device_type,
            total_bytes=dev.total_bytes,
            used_bytes=dev.used_bytes,
            use_percent=dev.use_percent,
        )
        for dev in snapshot.storage
    ]


class MetricsRecorder:
    """Persists a Sample (plus storage rows) on a fixed cadence.

    States are stopped/running. ``start`` schedules an immediate tick and then
    one every ``interval`` seconds measured from the loop clock; ``stop``
    cancels the pending tick. A failed tick is logged and skipped.
    """

    name: str = "metrics_recorder"

    def __init__(
        self,
        collector: StatsCollector,
        interval: float | None = None,
        memory_threshold: AlertThreshold | None = None,
        storage_threshold: AlertThreshold | None = None,
        exporter: PrometheusExporter | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._collector = collector
        self.interval = interval if interval is not None else settings.record_interval
        self.memory_threshold = memory_threshold or AlertThreshold(
            warn_percent=settings.memory_warn_percent,
            crit_percent=settings.memory_crit_percent,
        )
        self.storage_threshold = storage_threshold or AlertThreshold(
            warn_percent=settings.storage_warn_percent,
            crit_percent=settings.storage_crit_percent,
        )
        self._exporter = exporter
        self._clock = clock
        self._running = False
        self._task: asyncio.Task | None = None
        self.ticks = 0
        self.failed_ticks = 0

    # ── lifecycle ────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Recorder started (interval=%.1fs)", self.interval)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Recorder stopped")

    @property
    def running(self) -> bool:
        return self._running

    # ── ticking ──────────────────────────────────────────

    async def tick(self) -> list[tuple[str, AlertLevel]] | None:
        """Record one sample. Returns non-ok alerts, or None if the tick was abandoned."""
        try:
            snapshot = await self._collector.collect()
            ts_ms = int(self._clock() * 1000)
            sample = build_sample(snapshot, ts_ms)
            storage_rows = build_storage_samples(snapshot, ts_ms)

            await db.insert_sample(sample)
            await db.insert_storage_samples(storage_rows)

            if self._exporter is not None:
                self._exporter.update_from_sample(sample)
            alerts = self._check_alerts(sample, storage_rows)
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failed_ticks += 1
            logger.exception("Recorder tick abandoned")
            return None

        self.ticks += 1
        return alerts

    def _check_alerts(
        self,
        sample: Sample,
        storage_rows: list[StorageSample],
    ) -> list[tuple[str, AlertLevel]]:
        alerts: list[tuple[str, AlertLevel]] = []

        level = self.memory_threshold.classify(sample.mem_used_pct)
        if level is not AlertLevel.OK:
            alerts.append(("memory", level))
        if level is AlertLevel.CRIT:
            logger.warning("Critical memory usage: %.1f%%", sample.mem_used_pct)

        for row in storage_rows:
            level = self.storage_threshold.classify(row.use_percent)
            if level is not AlertLevel.OK:
                alerts.append((row.device_fs, level))
            if level is AlertLevel.CRIT:
                logger.warning(
                    "Critical storage usage on %s %s: %.1f%%",
                    row.device_type.value,
                    row.mount or row.device_fs,
                    row.use_percent,
                )
        return alerts

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_run = loop.time()
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Recorder [%s] error during tick()", self.name)
            next_run += self.interval
            now = loop.time()
            if next_run < now:
                # Slow tick: drop the missed slots instead of bunching them
                skipped = int((now - next_run) // self.interval) + 1
                next_run += skipped * self.interval
            await asyncio.sleep(next_run - now)
