from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from hostwatch.collectors import disk, network, public_ip, system, temperature
from hostwatch.collectors.base import with_timeout
from hostwatch.collectors.network import InterfaceCounters, NetworkCounterState
from hostwatch.collectors.transmission import TransmissionClient
from hostwatch.config import Settings, settings as default_settings
from hostwatch.format import format_bandwidth
from hostwatch.models.alert import AlertThreshold
from hostwatch.models.snapshot import (
    Disk,
    InterfaceTraffic,
    IpAddresses,
    Network,
    Snapshot,
    Temperature,
    ThrottlingStatus,
    TransmissionStatus,
)

logger = logging.getLogger(__name__)


class StatsCollector:
    """Assembles a Snapshot from every source adapter.

    One instance per process: it owns the network counter baseline used to
    turn cumulative byte counters into bitrates, so every consumer (recorder,
    HTTP handlers) must share it.
    """

    def __init__(
        self,
        config: Settings | None = None,
        transmission: TransmissionClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or default_settings
        self.transmission = transmission or TransmissionClient(
            self.config.rpc_url,
            username=self.config.rpc_username,
            password=self.config.rpc_password,
            timeout=self.config.rpc_timeout,
        )
        self.storage_threshold = AlertThreshold(
            warn_percent=self.config.storage_warn_percent,
            crit_percent=self.config.storage_crit_percent,
        )
        self._clock = clock
        self._network_state: NetworkCounterState | None = None

    async def collect(self) -> Snapshot:
        cfg = self.config
        local_timeout = cfg.command_timeout

        counters, read_at = await with_timeout(
            asyncio.to_thread(self._read_counters), local_timeout, ({}, None), "network"
        )
        net = self._advance_network(counters, read_at if read_at is not None else self._clock())

        disk_usage, storage, throttling, gpu_temp, cpu_temp, public, transmission = await asyncio.gather(
            with_timeout(disk.read_disk_usage(), local_timeout, Disk(), "disk"),
            with_timeout(disk.read_storage_devices(), local_timeout, [], "storage"),
            with_timeout(temperature.read_throttling(), local_timeout, ThrottlingStatus(), "throttling"),
            with_timeout(temperature.read_gpu_temp(), local_timeout, Temperature().gpu, "gpu_temp"),
            with_timeout(temperature.read_cpu_temp(), local_timeout, Temperature().cpu, "cpu_temp"),
            with_timeout(
                public_ip.fetch_public_ip(cfg.public_ip_url, timeout=cfg.public_ip_timeout),
                cfg.public_ip_timeout,
                None,
                "public_ip",
            ),
            with_timeout(
                self.transmission.status(call_timeout=cfg.rpc_timeout),
                # session-stats and torrent-get run back to back, each within rpc_timeout
                2 * cfg.rpc_timeout + local_timeout,
                TransmissionStatus(enabled=self.transmission.enabled, error="Timed out"),
                "transmission",
            ),
        )

        return Snapshot(
            cpu=system.read_cpu_load(),
            uptime=system.read_uptime(),
            memory=system.read_memory(),
            disk=disk_usage,
            temperature=Temperature(cpu=cpu_temp, gpu=gpu_temp),
            network=net,
            ip_addresses=IpAddresses(
                public=public or "Unable to fetch",
                local=system.read_local_addresses(),
            ),
            throttling=throttling,
            storage=[
                dev.model_copy(update={"alert": self.storage_threshold.classify(dev.use_percent)})
                for dev in storage
            ],
            transmission=transmission,
        )

    def _read_counters(self) -> tuple[dict[str, InterfaceCounters], float]:
        # Stamped in the same worker step as the read
        return network.read_network_counters(), self._clock()

    def _advance_network(self, counters: dict[str, InterfaceCounters], now: float) -> Network:
        """Compute rates against the stored baseline, then replace it.

        No await happens between reading and replacing the baseline, so
        overlapping collections never observe a half-written state.
        """
        previous = self._network_state
        elapsed = now - previous.timestamp if previous else 0.0
        rates = network.compute_bandwidth(
            counters, previous.counters if previous else None, elapsed
        )
        self._network_state = NetworkCounterState(counters=dict(counters), timestamp=now)

        result = Network()
        for iface, c in counters.items():
            rx_bps, tx_bps = rates.get(iface, (0.0, 0.0))
            result.interfaces[iface] = InterfaceTraffic(
                rx=format_bandwidth(rx_bps),
                tx=format_bandwidth(tx_bps),
                rx_bps=rx_bps,
                tx_bps=tx_bps,
                rx_bytes=c.rx_bytes,
                tx_bytes=c.tx_bytes,
            )
            result.rx_bps += rx_bps
            result.tx_bps += tx_bps
            result.rx_bytes += c.rx_bytes
            result.tx_bytes += c.tx_bytes
        return result

    async def aclose(self) -> None:
        await self.transmission.aclose()
