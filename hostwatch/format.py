"""Pure helpers turning raw readings into human units."""

from __future__ import annotations

import math

from hostwatch.models.snapshot import ThrottlingFlags, ThrottlingStatus

_BANDWIDTH_UNITS = (
    (1_000_000_000, "Gbps"),
    (1_000_000, "Mbps"),
    (1_000, "Kbps"),
)

_BYTE_UNITS = ("KB", "MB", "GB", "TB", "PB")

# (bit, flag attribute, label shown while the condition is active)
_THROTTLE_BITS = (
    (0x1, "under_voltage", "Undervoltage"),
    (0x2, "frequency_capped", "Frequency Capped"),
    (0x4, "throttled", "Throttled"),
    (0x8, "soft_temp_limit", "Soft Temp Limit"),
)
_OCCURRED_SHIFT = 16


def format_uptime(seconds: float) -> str:
    seconds = max(float(seconds), 0.0)
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_bandwidth(bps: float) -> str:
    if not math.isfinite(bps) or bps < 0:
        return "0.00 bps"
    for threshold, unit in _BANDWIDTH_UNITS:
        if bps >= threshold:
            return f"{bps / threshold:.2f} {unit}"
    return f"{bps:.2f} bps"


def format_bytes(num_bytes: float) -> str:
    """Binary byte-size label, e.g. ``29.1 GB``."""
    if not math.isfinite(num_bytes) or num_bytes < 0:
        return "0 B"
    if num_bytes < 1024:
        return f"{int(num_bytes)} B"
    value = float(num_bytes)
    unit = "B"
    for unit in _BYTE_UNITS:
        value /= 1024
        if value < 1024:
            break
    return f"{value:.1f} {unit}"


def parse_throttling_status(raw: str | int | None) -> ThrottlingStatus:
    """Decode the firmware throttling bitmask (``vcgencmd get_throttled``)."""
    if isinstance(raw, int):
        mask = raw
    else:
        text = str(raw or "0").strip().replace("throttled=", "")
        try:
            mask = int(text, 16)
        except ValueError:
            mask = 0

    flags: dict[str, bool] = {}
    active: list[str] = []
    for bit, name, label in _THROTTLE_BITS:
        flags[name] = bool(mask & bit)
        flags[f"{name}_occurred"] = bool(mask & (bit << _OCCURRED_SHIFT))
        if flags[name]:
            active.append(label)

    return ThrottlingStatus(
        status=", ".join(active) if active else "Normal",
        flags=ThrottlingFlags(**flags),
    )
