from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

from .utils import as_bool

CONFIG_PATH = Path(__file__).resolve().parent / "config" / "config.yaml"


@dataclass(frozen=True)
class Settings:
    database_path: Path
    database_timeout: float

    event_log_enabled: bool
    event_log_stream_prefix: str
    event_log_endpoint_url: Optional[str]
    event_log_region: Optional[str]
    event_log_partition_key: str

    fanout_max_workers: int

    host: str
    port: int
    log_level: str

    broadcast: Dict[str, bool]


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Default config not found at {CONFIG_PATH}")
    return OmegaConf.load(CONFIG_PATH)


def make_runtime_config(overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    base_container = OmegaConf.to_container(_load_default_config(), resolve=False)
    base = OmegaConf.create(base_container)
    OmegaConf.set_struct(base, True)

    override_config = OmegaConf.create(overrides or {})
    merged = DictConfig(OmegaConf.merge(base, override_config))
    return merged


def _optional_str(value: Any) -> Optional[str]:
    text = "" if value is None else str(value).strip()
    return text or None


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Build typed settings from config.yaml, the process environment and overrides.

    Environment variables (and a local .env file) feed the ``${oc.env:...}``
    interpolations in config.yaml; ``overrides`` take precedence over both and
    must only use keys that exist in config.yaml.
    """
    load_dotenv(override=False)
    config = make_runtime_config(overrides)
    resolved: Dict[str, Any] = OmegaConf.to_container(config, resolve=True)  # type: ignore[assignment]

    database = resolved["database"]
    event_log = resolved["event_log"]
    server = resolved["server"]

    return Settings(
        database_path=Path(str(database["path"])),
        database_timeout=float(database["timeout"]),
        event_log_enabled=as_bool(event_log["enabled"], default=True),
        event_log_stream_prefix=str(event_log["stream_prefix"] or ""),
        event_log_endpoint_url=_optional_str(event_log["endpoint_url"]),
        event_log_region=_optional_str(event_log["region"]),
        event_log_partition_key=str(event_log["partition_key"]),
        fanout_max_workers=max(1, int(resolved["fanout"]["max_workers"])),
        host=str(server["host"]),
        port=int(server["port"]),
        log_level=str(server["log_level"]).upper(),
        broadcast={name: as_bool(flag, default=True) for name, flag in resolved["broadcast"].items()},
    )
