"""
Top-level event loop for ds-client.

Drives the session through HANDSHAKING -> READY -> TERMINATED, handing
every job arrival to the configured placement policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ds_client.errors import ProtocolError
from ds_client.inventory import Inventory
from ds_client.protocol import JOB_EVENTS, Command, Message, ServerCommand, decode
from ds_client.records import parse_job

if TYPE_CHECKING:
    from ds_client.policy import Policy
    from ds_client.records import Job
    from ds_client.session import Session

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """Lifecycle of one scheduling session."""

    HANDSHAKING = "handshaking"
    READY = "ready"
    TERMINATED = "terminated"


@dataclass
class LoopStats:
    """Counters reported when the session ends."""

    jobs_seen: int = 0
    jobs_scheduled: int = 0
    jobs_unplaced: int = 0
    completions: int = 0

    def __str__(self) -> str:
        return (
            f"{self.jobs_scheduled}/{self.jobs_seen} jobs scheduled, "
            f"{self.jobs_unplaced} unplaced, {self.completions} completed"
        )


class EventLoop:
    """
    Lock-step scheduling loop.

    Attributes:
        state: Current LoopState
        stats: Counters for the session so far
    """

    def __init__(self, session: Session, policy: Policy, user: str):
        self.session = session
        self.policy = policy
        self.user = user
        self.inventory = Inventory(session)
        self.state = LoopState.HANDSHAKING
        self.stats = LoopStats()

    def run(self) -> int:
        """
        Run the session to completion.

        Returns:
            Exit status from closing the connection

        Raises:
            DsClientError: On any fatal transport or protocol failure
        """
        self.session.handshake(self.user)
        self.state = LoopState.READY
        logger.info("Scheduling with %s", self.policy)

        while self.state is LoopState.READY:
            self.step()

        self.session.request(Command.QUIT)
        logger.info("Session finished: %s", self.stats)
        return self.session.close()

    def step(self) -> None:
        """Ask for the next event and handle it."""
        message = decode(self.session.request(Command.REDY))

        if not isinstance(message, Message):
            logger.debug("Ignoring unknown command %r", message.token)
            return

        if message.command in JOB_EVENTS:
            self.session.advance_clock(message.int_field(0))
            self.handle_job(parse_job(message))
        elif message.command is ServerCommand.JCPL:
            self.session.advance_clock(message.int_field(0))
            self.stats.completions += 1
        elif message.command is ServerCommand.NONE:
            self.state = LoopState.TERMINATED
        else:
            logger.debug("No action for %s", message.command.value)

    def handle_job(self, job: Job) -> None:
        """Place `job` if the policy finds a resource for it."""
        self.stats.jobs_seen += 1
        resource = self.policy.select(job, self.inventory)
        if resource is None:
            self.stats.jobs_unplaced += 1
            logger.warning("No resource for job %d, not scheduling it", job.job_id)
            return

        reply = self.session.request(
            Command.SCHD, job.job_id, resource.resource_type, resource.resource_id
        )
        message = decode(reply)
        if getattr(message, "command", None) is not ServerCommand.OK:
            raise ProtocolError(f"SCHD of job {job.job_id} was rejected", line=reply)

        self.stats.jobs_scheduled += 1
        logger.debug("Scheduled %s on %s", job, resource)
