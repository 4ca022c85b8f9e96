from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import psutil

logger = logging.getLogger(__name__)

PROC_NET_DEV = Path("/proc/net/dev")


@dataclass(frozen=True)
class InterfaceCounters:
    rx_bytes: int = 0
    tx_bytes: int = 0


@dataclass(frozen=True)
class NetworkCounterState:
    """Counters and wall-clock time (seconds) of one collection."""

    counters: dict[str, InterfaceCounters] = field(default_factory=dict)
    timestamp: float = 0.0


def parse_proc_net_dev(text: str) -> dict[str, InterfaceCounters]:
    stats: dict[str, InterfaceCounters] = {}
    for line in text.splitlines()[2:]:
        if ":" not in line:
            continue
        iface, _, rest = line.partition(":")
        parts = rest.split()
        if len(parts) < 9:
            continue
        try:
            rx, tx = int(parts[0]), int(parts[8])
        except ValueError:
            continue
        stats[iface.strip()] = InterfaceCounters(rx_bytes=rx, tx_bytes=tx)
    return stats


def _counters_from_proc() -> dict[str, InterfaceCounters]:
    return parse_proc_net_dev(PROC_NET_DEV.read_text())


def _counters_from_psutil() -> dict[str, InterfaceCounters]:
    return {
        iface: InterfaceCounters(rx_bytes=c.bytes_recv, tx_bytes=c.bytes_sent)
        for iface, c in psutil.net_io_counters(pernic=True).items()
    }


COUNTER_STRATEGIES = (_counters_from_proc, _counters_from_psutil)


def read_network_counters() -> dict[str, InterfaceCounters]:
    """Per-interface byte counters; empty when no strategy works."""
    for strategy in COUNTER_STRATEGIES:
        try:
            stats = strategy()
        except (OSError, psutil.Error, RuntimeError):
            logger.debug("Network counters via %s failed", strategy.__name__, exc_info=True)
            continue
        if stats:
            return stats
    return {}


def compute_bandwidth(
    current: dict[str, InterfaceCounters],
    previous: dict[str, InterfaceCounters] | None,
    elapsed_seconds: float,
) -> dict[str, tuple[float, float]]:
    """Return ``{iface: (rx_bps, tx_bps)}`` for every interface in ``current``.

    Interfaces with no baseline, a non-positive interval, or a counter that
    went backwards report zero.
    """
    rates: dict[str, tuple[float, float]] = {}
    for iface, now in current.items():
        before = previous.get(iface) if previous else None
        if before is None or elapsed_seconds <= 0:
            rates[iface] = (0.0, 0.0)
            continue
        rx_delta = max(now.rx_bytes - before.rx_bytes, 0)
        tx_delta = max(now.tx_bytes - before.tx_bytes, 0)
        rates[iface] = (
            rx_delta / elapsed_seconds * 8,
            tx_delta / elapsed_seconds * 8,
        )
    return rates
