from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent
DATA_DIR = BASE_DIR.parent / "data"


class Settings(BaseSettings):
    # --- app ---
    app_name: str = "Host Monitor"
    debug: bool = False

    # --- database ---
    db_path: str = str(DATA_DIR / "metrics.db")

    # --- recorder ---
    record_interval: float = 10.0  # seconds between recorded samples
    history_limit: int = 360

    # --- sources ---
    command_timeout: float = 2.0
    public_ip_timeout: float = 3.0
    public_ip_url: str = "https://api.ipify.org/?format=json"

    # --- transmission rpc ---
    rpc_url: str | None = None
    rpc_username: str | None = None
    rpc_password: str | None = None
    rpc_timeout: float = 3.0

    # --- alert thresholds (percent used) ---
    memory_warn_percent: float = 80.0
    memory_crit_percent: float = 90.0
    storage_warn_percent: float = 80.0
    storage_crit_percent: float = 90.0

    # --- prometheus ---
    metrics_prefix: str = "system_monitor_"

    # --- server ---
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_prefix": "HOSTWATCH_"}


settings = Settings()
