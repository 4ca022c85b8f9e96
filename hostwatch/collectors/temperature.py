"""CPU/GPU temperature and firmware throttling state.

CPU temperature strategies, in order:

1. sysfs ``thermal_zone0/temp`` (millidegrees Celsius)
2. ``psutil.sensors_temperatures()`` (first reading of the first sensor)
3. ``vcgencmd measure_temp`` (Raspberry Pi firmware)

GPU temperature only has the ``vcgencmd`` strategy.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

import psutil

from hostwatch.collectors.base import first_value, run_command
from hostwatch.format import parse_throttling_status
from hostwatch.models.snapshot import ThrottlingStatus

logger = logging.getLogger(__name__)

THERMAL_ZONE = Path("/sys/class/thermal/thermal_zone0/temp")

_VCGENCMD_TEMP = re.compile(r"temp=([-\d.]+)")


def format_celsius(value: float | None) -> str:
    return f"{(value or 0.0):.1f}°C"


async def _cpu_temp_from_sysfs() -> float | None:
    raw = await asyncio.to_thread(THERMAL_ZONE.read_text)
    return int(raw.strip()) / 1000


async def _cpu_temp_from_psutil() -> float | None:
    sensors = getattr(psutil, "sensors_temperatures", None)
    if sensors is None:
        return None
    readings = await asyncio.to_thread(sensors)
    for entries in readings.values():
        if entries:
            return float(entries[0].current)
    return None


async def _temp_from_vcgencmd() -> float | None:
    out = await run_command("vcgencmd", "measure_temp")
    if not out:
        return None
    match = _VCGENCMD_TEMP.search(out)
    return float(match.group(1)) if match else None


CPU_TEMP_STRATEGIES = (_cpu_temp_from_sysfs, _cpu_temp_from_psutil, _temp_from_vcgencmd)
GPU_TEMP_STRATEGIES = (_temp_from_vcgencmd,)


async def read_cpu_temp() -> str:
    return format_celsius(await first_value(CPU_TEMP_STRATEGIES, name="cpu_temp"))


async def read_gpu_temp() -> str:
    return format_celsius(await first_value(GPU_TEMP_STRATEGIES, name="gpu_temp"))


async def read_throttling() -> ThrottlingStatus:
    out = await run_command("vcgencmd", "get_throttled")
    return parse_throttling_status(out or "0x0")
