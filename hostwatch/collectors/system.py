from __future__ import annotations

import logging
import socket
import time

import psutil

from hostwatch.format import format_uptime
from hostwatch.models.snapshot import CpuLoad, InterfaceAddress, LocalAddresses, Memory, Uptime

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


def read_cpu_load() -> CpuLoad:
    try:
        load1, load5, load15 = psutil.getloadavg()
    except (OSError, AttributeError):
        logger.debug("Load average unavailable", exc_info=True)
        return CpuLoad()
    return CpuLoad(
        load_1=round(max(load1, 0.0), 2),
        load_5=round(max(load5, 0.0), 2),
        load_15=round(max(load15, 0.0), 2),
    )


def read_uptime() -> Uptime:
    try:
        seconds = max(time.time() - psutil.boot_time(), 0.0)
    except (OSError, psutil.Error):
        logger.debug("Boot time unavailable", exc_info=True)
        return Uptime()
    return Uptime(seconds=round(seconds, 1), formatted=format_uptime(seconds))


def read_memory() -> Memory:
    try:
        vm = psutil.virtual_memory()
    except (OSError, psutil.Error):
        logger.debug("Memory stats unavailable", exc_info=True)
        return Memory()

    # Not every platform reports buffers/cached/shared
    buffers = getattr(vm, "buffers", 0)
    cached = getattr(vm, "cached", 0)
    shared = getattr(vm, "shared", 0)
    used = vm.total - vm.available

    try:
        swap = psutil.swap_memory()
        swap_total, swap_used = swap.total, swap.used
    except (OSError, psutil.Error):
        swap_total = swap_used = 0

    return Memory(
        total_mb=round(vm.total / _MB),
        used_mb=round(used / _MB),
        free_mb=round(vm.free / _MB),
        available_mb=round(vm.available / _MB),
        shared_mb=round(shared / _MB),
        buffers_mb=round(buffers / _MB),
        cached_mb=round(cached / _MB),
        buff_cache_mb=round((buffers + cached) / _MB),
        used_percent=round(used / vm.total * 100, 1) if vm.total else 0.0,
        swap_total_mb=round(swap_total / _MB),
        swap_used_mb=round(swap_used / _MB),
    )


def read_local_addresses() -> LocalAddresses:
    addresses = LocalAddresses()
    try:
        interfaces = psutil.net_if_addrs()
    except (OSError, psutil.Error):
        logger.debug("Interface addresses unavailable", exc_info=True)
        return addresses

    for name, addrs in interfaces.items():
        for addr in addrs:
            if addr.family == socket.AF_INET and not addr.address.startswith("127."):
                addresses.ipv4.append(InterfaceAddress(interface=name, address=addr.address))
            elif addr.family == socket.AF_INET6 and addr.address != "::1":
                addresses.ipv6.append(InterfaceAddress(interface=name, address=addr.address))
    return addresses
