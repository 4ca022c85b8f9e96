from .network import InterfaceCounters, NetworkCounterState, compute_bandwidth
from .stats_collector import StatsCollector
from .transmission import TransmissionClient

__all__ = [
    "InterfaceCounters",
    "NetworkCounterState",
    "StatsCollector",
    "TransmissionClient",
    "compute_bandwidth",
]
