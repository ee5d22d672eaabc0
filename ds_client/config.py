"""
Configuration handling for ds-client.

Loads configuration from YAML files with sensible defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from ds_client.errors import ConfigError
from ds_client.session import DEFAULT_HOST, DEFAULT_PORT
from ds_client.topology import DEFAULT_TOPOLOGY


@dataclass
class Config:
    """Configuration for a ds-client session."""

    # Server connection
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: Optional[float] = None  # Read timeout in seconds, None blocks

    # Client
    username: Optional[str] = None  # AUTH name, defaults to $USER
    algorithm: str = "cf"  # Placement policy code
    topology: Optional[str] = DEFAULT_TOPOLOGY

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


def load_config(path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Searches for config in order:
    1. Explicit path argument
    2. ./ds-client.yaml
    3. ~/.ds-client.yaml
    4. ~/.config/ds-client/config.yaml

    If no file found, returns default configuration.

    Args:
        path: Explicit path to config file

    Returns:
        Config object
    """
    search_paths = []

    if path:
        search_paths.append(Path(path))
    else:
        search_paths.extend(
            [
                Path("ds-client.yaml"),
                Path.home() / ".ds-client.yaml",
                Path.home() / ".config" / "ds-client" / "config.yaml",
            ]
        )

    for config_path in search_paths:
        if config_path.exists():
            return _load_yaml_config(config_path)

    return Config()


def _load_yaml_config(path: Path) -> Config:
    """Load config from a YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(str(path), f"invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(str(path), "top level must be a mapping")

    # Flatten nested structure
    server = data.get("server") or {}
    client = data.get("client") or {}
    logging = data.get("logging") or {}

    for name, section in (("server", server), ("client", client), ("logging", logging)):
        if not isinstance(section, dict):
            raise ConfigError(str(path), f"{name} section must be a mapping")

    timeout = server.get("timeout")

    return Config(
        # Server
        host=server.get("host", DEFAULT_HOST),
        port=int(server.get("port", DEFAULT_PORT)),
        timeout=float(timeout) if timeout is not None else None,
        # Client
        username=client.get("username"),
        algorithm=client.get("algorithm", "cf"),
        topology=client.get("topology", DEFAULT_TOPOLOGY),
        # Logging
        log_level=logging.get("level", "INFO"),
        log_file=logging.get("file"),
    )


def get_effective_username(config: Config) -> str:
    """Get the name to authenticate with."""
    if config.username:
        return config.username
    return os.environ.get("USER", os.environ.get("USERNAME", "unknown"))
