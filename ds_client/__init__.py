"""
ds-client: Client-side job placement for the ds-server simulator.

Connects to ds-server, receives job arrivals and completions, and answers
each arrival with a placement decision from a pluggable policy.
"""

__version__ = "0.1.0"

from ds_client.config import Config, load_config
from ds_client.errors import DsClientError, ProtocolError, TransportError
from ds_client.inventory import Inventory, QueryMode
from ds_client.loop import EventLoop
from ds_client.policy import Algorithm, Policy, make_policy
from ds_client.records import Job, Resource
from ds_client.session import Session

__all__ = [
    "Config",
    "load_config",
    "DsClientError",
    "ProtocolError",
    "TransportError",
    "Inventory",
    "QueryMode",
    "EventLoop",
    "Algorithm",
    "Policy",
    "make_policy",
    "Job",
    "Resource",
    "Session",
]
