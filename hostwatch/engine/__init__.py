from .exporter import PrometheusExporter
from .recorder import MetricsRecorder, build_sample, build_storage_samples

__all__ = [
    "MetricsRecorder",
    "PrometheusExporter",
    "build_sample",
    "build_storage_samples",
]
