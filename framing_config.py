# framing_config.py
"""
Load framing and client settings from YAML, with RRI_* environment overrides.
"""
from __future__ import annotations

import codecs
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml


ENV_PREFIX = "RRI_"
DEFAULT_ORDER_SEPARATOR = "=-=\n"


@dataclass(frozen=True)
class FramingConfig:
    max_frame_size: Optional[int] = None
    encoding: str = "utf-8"


@dataclass(frozen=True)
class ClientConfig:
    host: str = "localhost"
    port: int = 51131
    timeout_seconds: Optional[float] = 30.0
    ca_file: str = ""
    verify: bool = True
    order_separator: str = DEFAULT_ORDER_SEPARATOR


@dataclass(frozen=True)
class Config:
    framing: FramingConfig = field(default_factory=FramingConfig)
    client: ClientConfig = field(default_factory=ClientConfig)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def _optional_int(value: Any) -> Optional[int]:
    if value is None or str(value).strip().lower() in ("", "none", "null"):
        return None
    size = int(value)
    return size if size >= 0 else None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or str(value).strip().lower() in ("", "none", "null"):
        return None
    return float(value)


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"config section '{name}' must be a mapping")
    return section


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Config:
    raw: Dict[str, Any] = {}
    if path is not None:
        if not os.path.isfile(path):
            raise FileNotFoundError(f"config file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"config file must contain a mapping: {path}")

    env = os.environ if env is None else env
    framing = dict(_section(raw, "framing"))
    client = dict(_section(raw, "client"))

    for key in ("max_frame_size", "encoding"):
        if ENV_PREFIX + key.upper() in env:
            framing[key] = env[ENV_PREFIX + key.upper()]
    for key in ("host", "port", "timeout_seconds", "ca_file", "verify"):
        if ENV_PREFIX + key.upper() in env:
            client[key] = env[ENV_PREFIX + key.upper()]

    encoding = str(framing.get("encoding", FramingConfig.encoding))
    try:
        codecs.lookup(encoding)
    except LookupError:
        raise ValueError(f"unknown order encoding: {encoding}")

    framing_cfg = FramingConfig(
        max_frame_size=_optional_int(framing.get("max_frame_size", FramingConfig.max_frame_size)),
        encoding=encoding,
    )
    client_cfg = ClientConfig(
        host=str(client.get("host", ClientConfig.host)),
        port=int(client.get("port", ClientConfig.port)),
        timeout_seconds=_optional_float(client.get("timeout_seconds", ClientConfig.timeout_seconds)),
        ca_file=str(client.get("ca_file") or ""),
        verify=_parse_bool(client.get("verify", ClientConfig.verify)),
        order_separator=str(client.get("order_separator", ClientConfig.order_separator)),
    )
    return Config(framing=framing_cfg, client=client_cfg)
