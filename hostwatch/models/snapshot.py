from __future__ import annotations

from datetime import datetime, timezone
from enum import IntEnum, StrEnum

from pydantic import BaseModel, Field

from hostwatch.models.alert import AlertLevel


class DeviceClass(StrEnum):
    HDD = "HDD"
    SD = "SD"


class TorrentState(IntEnum):
    """Transmission ``status`` codes."""

    STOPPED = 0
    CHECK_WAIT = 1
    CHECKING = 2
    DOWNLOAD_WAIT = 3
    DOWNLOADING = 4
    SEED_WAIT = 5
    SEEDING = 6


class CpuLoad(BaseModel):
    load_1: float = 0.0
    load_5: float = 0.0
    load_15: float = 0.0


class Uptime(BaseModel):
    seconds: float = 0.0
    formatted: str = "0s"


class Memory(BaseModel):
    total_mb: int = 0
    used_mb: int = 0
    free_mb: int = 0
    available_mb: int = 0
    shared_mb: int = 0
    buffers_mb: int = 0
    cached_mb: int = 0
    buff_cache_mb: int = 0
    used_percent: float = 0.0
    swap_total_mb: int = 0
    swap_used_mb: int = 0


class Disk(BaseModel):
    """Root filesystem usage."""

    used: str = "N/A"
    size: str = "N/A"
    used_percent: float = 0.0
    size_bytes: int = 0


class Temperature(BaseModel):
    cpu: str = "0.0°C"
    gpu: str = "0.0°C"


class InterfaceTraffic(BaseModel):
    rx: str = "0.00 bps"
    tx: str = "0.00 bps"
    rx_bps: float = 0.0
    tx_bps: float = 0.0
    rx_bytes: int = 0
    tx_bytes: int = 0


class Network(BaseModel):
    interfaces: dict[str, InterfaceTraffic] = Field(default_factory=dict)
    rx_bps: float = 0.0
    tx_bps: float = 0.0
    rx_bytes: int = 0
    tx_bytes: int = 0


class InterfaceAddress(BaseModel):
    interface: str
    address: str


class LocalAddresses(BaseModel):
    ipv4: list[InterfaceAddress] = Field(default_factory=list)
    ipv6: list[InterfaceAddress] = Field(default_factory=list)


class IpAddresses(BaseModel):
    public: str = "Unable to fetch"
    local: LocalAddresses = Field(default_factory=LocalAddresses)


class ThrottlingFlags(BaseModel):
    under_voltage: bool = False
    frequency_capped: bool = False
    throttled: bool = False
    soft_temp_limit: bool = False
    under_voltage_occurred: bool = False
    frequency_capped_occurred: bool = False
    throttled_occurred: bool = False
    soft_temp_limit_occurred: bool = False


class ThrottlingStatus(BaseModel):
    status: str = "Normal"
    flags: ThrottlingFlags = Field(default_factory=ThrottlingFlags)


class StorageDevice(BaseModel):
    fs: str
    mount: str
    device_type: DeviceClass
    total_bytes: int = 0
    used_bytes: int = 0
    use_percent: float = 0.0
    alert: AlertLevel = AlertLevel.OK


class TransmissionSession(BaseModel):
    download_bps: float = 0.0
    upload_bps: float = 0.0
    download: str = "0.00 bps"
    upload: str = "0.00 bps"
    active_torrents: int = 0
    paused_torrents: int = 0
    torrent_count: int = 0


class Torrent(BaseModel):
    id: int = 0
    name: str = ""
    state: TorrentState = TorrentState.STOPPED
    download_bps: float = 0.0
    upload_bps: float = 0.0
    download: str = "0.00 bps"
    upload: str = "0.00 bps"
    percent_done: float = 0.0
    eta: int = -1
    error: str = ""


class TransmissionStatus(BaseModel):
    enabled: bool = False
    error: str | None = None
    session: TransmissionSession = Field(default_factory=TransmissionSession)
    torrents: list[Torrent] = Field(default_factory=list)


class Snapshot(BaseModel):
    """Point-in-time view of host health. Every field has a safe default."""

    cpu: CpuLoad = Field(default_factory=CpuLoad)
    uptime: Uptime = Field(default_factory=Uptime)
    memory: Memory = Field(default_factory=Memory)
    disk: Disk = Field(default_factory=Disk)
    temperature: Temperature = Field(default_factory=Temperature)
    network: Network = Field(default_factory=Network)
    ip_addresses: IpAddresses = Field(default_factory=IpAddresses)
    throttling: ThrottlingStatus = Field(default_factory=ThrottlingStatus)
    storage: list[StorageDevice] = Field(default_factory=list)
    transmission: TransmissionStatus = Field(default_factory=TransmissionStatus)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
