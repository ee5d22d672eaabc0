"""
Static topology description (ds-system.xml).

ds-server writes the server types of a simulation to ds-system.xml. The
client only reads it for reporting; placement always uses live GETS data.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from xml.etree import ElementTree

from ds_client.errors import ConfigError

DEFAULT_TOPOLOGY = "ds-system.xml"


@dataclass(frozen=True)
class ServerType:
    """One <server> entry of the topology file."""

    type: str
    limit: int = 1
    bootup_time: int = 0
    hourly_rate: float = 0.0
    core: int = 0
    memory: int = 0
    disk: int = 0

    def __str__(self) -> str:
        return f"{self.limit} x {self.type} ({self.core}c/{self.memory}m/{self.disk}d)"


def load_topology(path: Optional[str] = None) -> list[ServerType]:
    """
    Load server types from a ds-system.xml file.

    Args:
        path: File to read (defaults to ./ds-system.xml)

    Returns:
        Server types in file order, or an empty list if the file is missing

    Raises:
        ConfigError: If the file exists but is not valid topology XML
    """
    topology_path = Path(path or DEFAULT_TOPOLOGY)
    if not topology_path.exists():
        return []

    try:
        root = ElementTree.parse(topology_path).getroot()
        return [_parse_server(element.attrib) for element in root.iter("server")]
    except ElementTree.ParseError as e:
        raise ConfigError(str(topology_path), f"invalid XML: {e}") from e
    except (KeyError, ValueError) as e:
        raise ConfigError(str(topology_path), f"bad server entry: {e}") from e


def _parse_server(attrib: dict[str, str]) -> ServerType:
    return ServerType(
        type=attrib["type"],
        limit=int(attrib.get("limit", 1)),
        bootup_time=int(attrib.get("bootupTime", 0)),
        hourly_rate=float(attrib.get("hourlyRate", 0.0)),
        core=int(attrib.get("coreCount", attrib.get("cores", 0))),
        memory=int(attrib.get("memory", 0)),
        disk=int(attrib.get("disk", 0)),
    )
