from .alert import AlertLevel, AlertThreshold
from .sample import Sample, StorageSample
from .snapshot import (
    DeviceClass,
    Snapshot,
    StorageDevice,
    Torrent,
    TorrentState,
    TransmissionSession,
    TransmissionStatus,
)

__all__ = [
    "AlertLevel",
    "AlertThreshold",
    "DeviceClass",
    "Sample",
    "Snapshot",
    "StorageDevice",
    "StorageSample",
    "Torrent",
    "TorrentState",
    "TransmissionSession",
    "TransmissionStatus",
]
