from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from hostwatch.models.snapshot import DeviceClass


class Sample(BaseModel):
    """Flat numeric projection of one Snapshot, one row of ``samples``."""

    model_config = ConfigDict(frozen=True)

    ts_ms: int
    cpu_load1: float = 0.0
    cpu_load5: float = 0.0
    cpu_load15: float = 0.0
    mem_used_mb: int = 0
    mem_total_mb: int = 0
    mem_swap_used_mb: int = 0
    mem_swap_total_mb: int = 0
    mem_free_mb: int = 0
    mem_available_mb: int = 0
    mem_shared_mb: int = 0
    mem_buffers_mb: int = 0
    mem_cached_mb: int = 0
    mem_buffcache_mb: int = 0
    mem_used_pct: float = 0.0
    disk_used_percent: float = 0.0
    disk_size_bytes: int = 0
    net_rx_bps: float = 0.0
    net_tx_bps: float = 0.0
    tx_download_bps: float = 0.0
    tx_upload_bps: float = 0.0
    tx_active_torrents: int = 0


class StorageSample(BaseModel):
    """One monitored filesystem at one tick, one row of ``storage_samples``."""

    model_config = ConfigDict(frozen=True)

    ts_ms: int
    device_fs: str
    mount: str = ""
    device_type: DeviceClass
    total_bytes: int = 0
    used_bytes: int = 0
    use_percent: float = 0.0
