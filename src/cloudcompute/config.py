"""Configuration management for cloudcompute.

Reads and writes TOML config at ~/.config/cloudcompute/config.toml.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w

from cloudcompute.api.client import USER_AGENT

CONFIG_DIR = Path.home() / ".config" / "cloudcompute"
CONFIG_PATH = CONFIG_DIR / "config.toml"


@dataclass
class ServiceConfig:
    endpoint: str = ""
    token: str = ""
    region: str = ""


@dataclass
class ClientConfig:
    timeout: float = 30.0
    user_agent: str = USER_AGENT


@dataclass
class CloudComputeConfig:
    service: ServiceConfig = field(default_factory=ServiceConfig)
    client: ClientConfig = field(default_factory=ClientConfig)


def load_config() -> CloudComputeConfig:
    """Load config from TOML file, returning defaults if missing or corrupt."""
    if not CONFIG_PATH.exists():
        return CloudComputeConfig()
    try:
        with open(CONFIG_PATH, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return CloudComputeConfig()

    service_data = data.get("service", {})
    client_data = data.get("client", {})

    return CloudComputeConfig(
        service=ServiceConfig(
            endpoint=service_data.get("endpoint", ""),
            token=service_data.get("token", ""),
            region=service_data.get("region", ""),
        ),
        client=ClientConfig(
            timeout=float(client_data.get("timeout", 30.0)),
            user_agent=client_data.get("user_agent", USER_AGENT),
        ),
    )


def save_config(config: CloudComputeConfig) -> None:
    """Write config to TOML file."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)

    data = {
        "service": {
            "endpoint": config.service.endpoint,
            "token": config.service.token,
            "region": config.service.region,
        },
        "client": {
            "timeout": config.client.timeout,
            "user_agent": config.client.user_agent,
        },
    }

    with open(CONFIG_PATH, "wb") as f:
        tomli_w.dump(data, f)
    os.chmod(CONFIG_PATH, 0o600)


def has_credentials() -> bool:
    """Quick check if an endpoint and token are configured."""
    config = load_config()
    return bool(config.service.endpoint and config.service.token)
