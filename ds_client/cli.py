"""
Command-line interface for ds-client.

Provides a Click-based CLI that connects to ds-server and schedules jobs
with the selected placement policy.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click

from ds_client import __version__
from ds_client.config import Config, get_effective_username, load_config
from ds_client.errors import DsClientError
from ds_client.loop import EventLoop
from ds_client.policy import Algorithm, make_policy
from ds_client.session import Session
from ds_client.topology import load_topology

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def echo_status(message: str, level: str = "info") -> None:
    """Print a status message with appropriate styling."""
    prefix = {
        "info": click.style("[*]", fg="blue"),
        "success": click.style("[+]", fg="green"),
        "warning": click.style("[!]", fg="yellow"),
        "error": click.style("[-]", fg="red"),
    }.get(level, "[*]")
    click.echo(f"{prefix} {message}", err=level == "error")


def configure_logging(config: Config, verbose: bool = False) -> None:
    """Route log records to stderr and, if configured, a log file."""
    level = logging.DEBUG if verbose else getattr(
        logging, config.log_level.upper(), logging.INFO
    )
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def run_client(config: Config) -> int:
    """
    Run one scheduling session against ds-server.

    Args:
        config: Effective configuration

    Returns:
        Exit status from closing the connection

    Raises:
        DsClientError: On any fatal failure
    """
    algorithm = Algorithm.from_code(config.algorithm)
    user = get_effective_username(config)

    for server_type in load_topology(config.topology):
        logger.info("Topology: %s", server_type)

    with Session(config.host, config.port, timeout=config.timeout) as session:
        loop = EventLoop(session, make_policy(algorithm), user)
        return loop.run()


@click.command()
@click.option(
    "--algorithm",
    "-a",
    default=None,
    help="Placement policy code: fc, cf, bf, ff, wf, ft, atl (default: cf)",
)
@click.option(
    "--host",
    "-H",
    help="ds-server host (default: localhost)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    help="ds-server port (default: 50000)",
)
@click.option(
    "--user",
    "-u",
    help="Name sent with AUTH (default: $USER)",
)
@click.option(
    "--timeout",
    "-t",
    type=float,
    help="Read timeout in seconds (default: wait forever)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    help="Path to config file",
)
@click.option(
    "--topology",
    type=click.Path(),
    help="Path to ds-system.xml (default: ./ds-system.xml)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Log every protocol line",
)
@click.version_option(version=__version__)
def main(
    algorithm: Optional[str],
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    timeout: Optional[float],
    config_path: Optional[str],
    topology: Optional[str],
    verbose: bool,
) -> None:
    """
    Schedule ds-server jobs with a client-side placement policy.

    Connects to ds-server, authenticates, and answers every job arrival
    with a SCHD decision until the server reports there is no more work.

    \b
    Examples:
        ds-client
        ds-client -a ft
        ds-client -a atl --port 50000 -v
    """
    try:
        config = load_config(config_path)
    except DsClientError as e:
        echo_status(str(e), "error")
        sys.exit(1)

    # Apply CLI overrides
    if algorithm is not None:
        config.algorithm = algorithm
    if host is not None:
        config.host = host
    if port is not None:
        config.port = port
    if user is not None:
        config.username = user
    if timeout is not None:
        config.timeout = timeout
    if topology is not None:
        config.topology = topology

    configure_logging(config, verbose)

    try:
        status = run_client(config)
    except DsClientError as e:
        echo_status(str(e), "error")
        sys.exit(1)

    echo_status("No more jobs, session closed", "success")
    sys.exit(status)


if __name__ == "__main__":
    main()
