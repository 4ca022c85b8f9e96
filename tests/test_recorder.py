"""Tests for hostwatch.engine.recorder — periodic persistence and alerting."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hostwatch.engine.exporter import PrometheusExporter
from hostwatch.engine.recorder import MetricsRecorder, build_sample, build_storage_samples
from hostwatch.models import (
    AlertLevel,
    AlertThreshold,
    DeviceClass,
    Snapshot,
    StorageDevice,
    TransmissionSession,
    TransmissionStatus,
)
from hostwatch.models.snapshot import CpuLoad, Disk, Memory, Network


# ── helpers ────────────────────────────────────────────

def _snapshot(mem_pct: float = 40.0, storage_pct: float = 50.0, **overrides) -> Snapshot:
    values = dict(
        cpu=CpuLoad(load_1=0.5, load_5=0.4, load_15=0.3),
        memory=Memory(total_mb=1000, used_mb=int(mem_pct * 10), used_percent=mem_pct,
                      swap_total_mb=512, swap_used_mb=64, buff_cache_mb=200),
        disk=Disk(used="42%", size="29.1 GB", used_percent=42.0, size_bytes=31_245_000_000),
        network=Network(rx_bps=8_000.0, tx_bps=4_000.0),
        storage=[
            StorageDevice(fs="/dev/sda1", mount="/mnt/hdd", device_type=DeviceClass.HDD,
                          total_bytes=1000, used_bytes=int(storage_pct * 10), use_percent=storage_pct),
        ],
    )
    values.update(overrides)
    return Snapshot(**values)


def _collector(snapshot: Snapshot | None = None) -> MagicMock:
    collector = MagicMock()
    collector.collect = AsyncMock(return_value=snapshot or _snapshot())
    return collector


def _recorder(collector, **kwargs) -> MetricsRecorder:
    kwargs.setdefault("interval", 0.05)
    kwargs.setdefault("clock", lambda: 1_700_000_000.5)
    return MetricsRecorder(collector, **kwargs)


@pytest.fixture()
async def db(tmp_path):
    path = str(tmp_path / "test_metrics.db")
    with patch("hostwatch.db.database.settings") as mock_settings:
        mock_settings.db_path = path
        from hostwatch.db.database import init_db
        await init_db()
        yield path


# ── sample building ───────────────────────────────────


def test_build_sample_flattens_snapshot():
    sample = build_sample(_snapshot(mem_pct=61.5), 1234)

    assert sample.ts_ms == 1234
    assert sample.cpu_load1 == 0.5
    assert sample.mem_used_pct == 61.5
    assert sample.mem_swap_used_mb == 64
    assert sample.mem_buffcache_mb == 200
    assert sample.disk_size_bytes == 31_245_000_000
    assert sample.net_rx_bps == 8_000.0


def test_build_sample_transmission_fields():
    session = TransmissionSession(download_bps=1_000_000, upload_bps=8_000, active_torrents=2)

    live = _snapshot(transmission=TransmissionStatus(enabled=True, session=session))
    sample = build_sample(live, 1)
    assert sample.tx_download_bps == 1_000_000
    assert sample.tx_upload_bps == 8_000
    assert sample.tx_active_torrents == 2

    failed = _snapshot(transmission=TransmissionStatus(enabled=True, error="Timed out", session=session))
    assert build_sample(failed, 1).tx_download_bps == 0.0

    disabled = _snapshot(transmission=TransmissionStatus(enabled=False, session=session))
    assert build_sample(disabled, 1).tx_active_torrents == 0


def test_build_storage_samples():
    rows = build_storage_samples(_snapshot(storage_pct=70.0), 99)
    assert len(rows) == 1
    assert rows[0].ts_ms == 99
    assert rows[0].device_fs == "/dev/sda1"
    assert rows[0].device_type is DeviceClass.HDD
    assert rows[0].use_percent == 70.0


# ── tick ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_tick_persists_sample_and_storage(db):
    from hostwatch.db.database import get_samples, get_storage_samples

    recorder = _recorder(_collector())
    assert await recorder.tick() == []

    samples = await get_samples()
    assert len(samples) == 1
    assert samples[0]["ts_ms"] == 1_700_000_000_500
    storage = await get_storage_samples(device_type="HDD")
    assert storage[0]["mount"] == "/mnt/hdd"
    assert recorder.ticks == 1


@pytest.mark.asyncio
async def test_failed_tick_is_abandoned(db, caplog):
    from hostwatch.db.database import get_samples

    collector = _collector()
    collector.collect.side_effect = RuntimeError("collector broke")
    recorder = _recorder(collector)

    with caplog.at_level(logging.ERROR, logger="hostwatch.engine.recorder"):
        assert await recorder.tick() is None

    assert recorder.failed_ticks == 1
    assert recorder.ticks == 0
    assert await get_samples() == []
    assert "tick abandoned" in caplog.text


@pytest.mark.asyncio
async def test_storage_write_failure_abandons_tick(db):
    recorder = _recorder(_collector())
    with patch("hostwatch.db.database.insert_storage_samples", AsyncMock(side_effect=OSError("disk full"))):
        assert await recorder.tick() is None
    assert recorder.failed_ticks == 1


@pytest.mark.asyncio
async def test_tick_updates_exporter(db):
    exporter = PrometheusExporter(prefix="t_")
    recorder = _recorder(_collector(_snapshot(mem_pct=55.0)), exporter=exporter)

    await recorder.tick()

    assert exporter.registry.get_sample_value("t_mem_used_pct") == 55.0


# ── alerts ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_alert_levels(db):
    recorder = _recorder(
        _collector(_snapshot(mem_pct=85.0, storage_pct=95.0)),
        memory_threshold=AlertThreshold(warn_percent=80, crit_percent=90),
        storage_threshold=AlertThreshold(warn_percent=80, crit_percent=90),
    )
    alerts = await recorder.tick()
    assert alerts == [("memory", AlertLevel.WARN), ("/dev/sda1", AlertLevel.CRIT)]


@pytest.mark.asyncio
async def test_critical_usage_logged_every_tick(db, caplog):
    recorder = _recorder(_collector(_snapshot(mem_pct=93.0, storage_pct=97.5)))

    with caplog.at_level(logging.WARNING, logger="hostwatch.engine.recorder"):
        await recorder.tick()
        await recorder.tick()

    storage_warnings = [r for r in caplog.records if "Critical storage usage" in r.getMessage()]
    memory_warnings = [r for r in caplog.records if "Critical memory usage" in r.getMessage()]
    assert len(storage_warnings) == 2
    assert len(memory_warnings) == 2
    assert "HDD /mnt/hdd: 97.5%" in storage_warnings[0].getMessage()


@pytest.mark.asyncio
async def test_warn_level_is_not_logged(db, caplog):
    recorder = _recorder(_collector(_snapshot(mem_pct=85.0, storage_pct=85.0)))
    with caplog.at_level(logging.WARNING, logger="hostwatch.engine.recorder"):
        await recorder.tick()
    assert "Critical" not in caplog.text


# ── lifecycle ─────────────────────────────────────────


@pytest.fixture()
def fake_writes():
    """Replace the store writes so cadence tests don't depend on disk speed."""
    with patch("hostwatch.db.database.insert_sample", AsyncMock()) as insert_sample, \
            patch("hostwatch.db.database.insert_storage_samples", AsyncMock()):
        yield insert_sample


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_start_ticks_immediately(fake_writes):
    recorder = _recorder(_collector(), interval=10)

    await recorder.start()
    await _wait_until(lambda: recorder.ticks == 1)
    await recorder.stop()

    fake_writes.assert_awaited_once()


@pytest.mark.asyncio
async def test_ticks_repeat_on_cadence(fake_writes):
    recorder = _recorder(_collector(), interval=0.02)

    await recorder.start()
    await _wait_until(lambda: recorder.ticks >= 3)
    await recorder.stop()


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent(fake_writes):
    recorder = _recorder(_collector(), interval=10)

    await recorder.start()
    first_task = recorder._task
    await recorder.start()
    assert recorder._task is first_task
    assert recorder.running is True

    await recorder.stop()
    await recorder.stop()
    assert recorder.running is False


@pytest.mark.asyncio
async def test_stop_before_start_is_noop():
    recorder = _recorder(_collector())
    await recorder.stop()
    assert recorder.running is False


@pytest.mark.asyncio
async def test_no_ticks_after_stop(fake_writes):
    recorder = _recorder(_collector(), interval=0.01)

    await recorder.start()
    await _wait_until(lambda: recorder.ticks >= 2)
    await recorder.stop()
    count = recorder.ticks

    await asyncio.sleep(0.05)
    assert recorder.ticks == count


@pytest.mark.asyncio
async def test_loop_survives_failing_ticks(fake_writes):
    calls = 0

    async def flaky():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        return _snapshot()

    collector = MagicMock()
    collector.collect = flaky
    recorder = _recorder(collector, interval=0.01)

    await recorder.start()
    await _wait_until(lambda: recorder.ticks >= 2)
    await recorder.stop()

    assert recorder.failed_ticks == 1


@pytest.mark.asyncio
async def test_restart_after_stop(fake_writes):
    recorder = _recorder(_collector(), interval=10)

    await recorder.start()
    await _wait_until(lambda: recorder.ticks == 1)
    await recorder.stop()

    await recorder.start()
    await _wait_until(lambda: recorder.ticks == 2)
    await recorder.stop()

    assert fake_writes.await_count == 2


@pytest.mark.asyncio
async def test_exporter_failure_abandons_tick(fake_writes):
    exporter = MagicMock()
    exporter.update_from_sample.side_effect = ValueError("bad gauge")
    recorder = _recorder(_collector(), exporter=exporter)

    assert await recorder.tick() is None
    assert recorder.failed_ticks == 1
    assert recorder.ticks == 0


@pytest.mark.asyncio
async def test_loop_survives_errors_escaping_tick(fake_writes, caplog):
    recorder = _recorder(_collector(), interval=0.01)
    real_tick = recorder.tick
    calls = 0

    async def exploding_tick():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("unexpected")
        return await real_tick()

    recorder.tick = exploding_tick

    with caplog.at_level(logging.ERROR, logger="hostwatch.engine.recorder"):
        await recorder.start()
        await _wait_until(lambda: recorder.ticks >= 1)
        await recorder.stop()

    assert recorder.running is False
    assert "error during tick()" in caplog.text
