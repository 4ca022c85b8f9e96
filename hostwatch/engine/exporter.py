from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from hostwatch.models import Sample

# Sample field -> (metric suffix, help text)
_GAUGES: dict[str, tuple[str, str]] = {
    "cpu_load1": ("cpu_load1", "1 minute load average"),
    "cpu_load5": ("cpu_load5", "5 minute load average"),
    "cpu_load15": ("cpu_load15", "15 minute load average"),
    "mem_total_mb": ("mem_total_mb", "Total memory in MB"),
    "mem_used_mb": ("mem_used_mb", "Used memory in MB"),
    "mem_free_mb": ("mem_free_mb", "Free memory in MB"),
    "mem_available_mb": ("mem_available_mb", "Available memory in MB"),
    "mem_used_pct": ("mem_used_pct", "Used memory percent"),
    "mem_swap_total_mb": ("swap_total_mb", "Total swap in MB"),
    "mem_swap_used_mb": ("swap_used_mb", "Used swap in MB"),
    "disk_used_percent": ("disk_used_pct", "Root filesystem used percent"),
    "disk_size_bytes": ("disk_size_bytes", "Root filesystem size in bytes"),
    "net_rx_bps": ("net_rx_bps", "Aggregate network receive bits per second"),
    "net_tx_bps": ("net_tx_bps", "Aggregate network transmit bits per second"),
    "tx_active_torrents": ("tx_active_torrents", "Active Transmission torrents"),
    "tx_download_bps": ("tx_download_bps", "Transmission download bits per second"),
    "tx_upload_bps": ("tx_upload_bps", "Transmission upload bits per second"),
}


class PrometheusExporter:
    """Gauges mirroring the last recorded Sample, rendered on scrape."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, prefix: str = "system_monitor_", registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._gauges = {
            field: Gauge(f"{prefix}{suffix}", help_text, registry=self.registry)
            for field, (suffix, help_text) in _GAUGES.items()
        }

    def update_from_sample(self, sample: Sample) -> None:
        for field, gauge in self._gauges.items():
            gauge.set(float(getattr(sample, field)))

    def render(self) -> bytes:
        return generate_latest(self.registry)
