from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, NamedTuple

import psutil

from hostwatch.collectors.base import run_command
from hostwatch.format import format_bytes
from hostwatch.models.snapshot import DeviceClass, Disk, StorageDevice

logger = logging.getLogger(__name__)

_SD_PATTERN = re.compile(r"^/dev/mmcblk\d+")
_HDD_PATTERN = re.compile(r"^/dev/(sd[a-z]+|nvme\d+n\d+|hd[a-z]+)")


class DiskUsage(NamedTuple):
    total_bytes: int
    used_bytes: int
    percent: float


async def _usage_from_psutil(path: str) -> DiskUsage | None:
    usage = await asyncio.to_thread(psutil.disk_usage, path)
    return DiskUsage(usage.total, usage.used, usage.percent)


async def _usage_from_df(path: str) -> DiskUsage | None:
    out = await run_command("df", "-P", "-k", path)
    if not out:
        return None
    parts = out.splitlines()[-1].split()
    if len(parts) < 5:
        return None
    total = int(parts[1]) * 1024
    used = int(parts[2]) * 1024
    percent = float(parts[4].rstrip("%"))
    return DiskUsage(total, used, percent)


USAGE_STRATEGIES: tuple[Callable[[str], Awaitable[DiskUsage | None]], ...] = (
    _usage_from_psutil,
    _usage_from_df,
)


async def read_disk_usage(path: str = "/") -> Disk:
    """Usage of the filesystem holding ``path``, trying psutil then ``df``."""
    for strategy in USAGE_STRATEGIES:
        try:
            usage = await strategy(path)
        except asyncio.CancelledError:
            raise
        except (OSError, ValueError, psutil.Error):
            logger.debug("Disk usage via %s failed", strategy.__name__, exc_info=True)
            continue
        if usage is not None:
            return Disk(
                used=f"{usage.percent:.0f}%",
                size=format_bytes(usage.total_bytes),
                used_percent=round(usage.percent, 1),
                size_bytes=usage.total_bytes,
            )
    return Disk()


def classify_device(device: str) -> DeviceClass | None:
    if _SD_PATTERN.match(device):
        return DeviceClass.SD
    if _HDD_PATTERN.match(device):
        return DeviceClass.HDD
    return None


def _scan_storage_devices() -> list[StorageDevice]:
    devices: list[StorageDevice] = []
    seen: set[str] = set()
    for part in psutil.disk_partitions(all=False):
        device_type = classify_device(part.device)
        if device_type is None or part.device in seen:
            continue
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except (OSError, psutil.Error):
            logger.debug("Cannot stat %s", part.mountpoint, exc_info=True)
            continue
        seen.add(part.device)
        devices.append(
            StorageDevice(
                fs=part.device,
                mount=part.mountpoint,
                device_type=device_type,
                total_bytes=usage.total,
                used_bytes=usage.used,
                use_percent=round(usage.percent, 1),
            )
        )
    return devices


async def read_storage_devices() -> list[StorageDevice]:
    """Mounted HDD/SD block devices with their usage."""
    try:
        return await asyncio.to_thread(_scan_storage_devices)
    except (OSError, psutil.Error):
        logger.debug("Storage device scan failed", exc_info=True)
        return []
