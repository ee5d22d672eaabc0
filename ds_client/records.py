"""
Job and resource snapshots exchanged with ds-server.

Both records are transient: a Job lives for one placement decision and a
list of Resources is only valid for the decision it was fetched for.
"""

from __future__ import annotations

from dataclasses import dataclass

from ds_client.errors import ProtocolError
from ds_client.protocol import JOB_EVENTS, Message

RESOURCE_FIELDS = 9


@dataclass(frozen=True)
class Job:
    """Resource demand of one submitted job."""

    job_id: int
    req_core: int
    req_memory: int
    req_disk: int
    submit_time: int
    est_runtime: int = 0

    @property
    def demand(self) -> tuple[int, int, int]:
        """(core, memory, disk) as sent in GETS queries."""
        return self.req_core, self.req_memory, self.req_disk

    def __str__(self) -> str:
        return (
            f"Job({self.job_id}: {self.req_core}c/{self.req_memory}m/"
            f"{self.req_disk}d @ {self.submit_time})"
        )


@dataclass(frozen=True)
class Resource:
    """Capacity and load of one server as reported by GETS."""

    resource_type: str
    resource_id: int
    state: str
    start_time: int
    core: int
    memory: int
    disk: int
    waiting_jobs: int = 0
    running_jobs: int = 0

    def core_fitness(self, job: Job) -> int:
        """Spare cores left after placing `job` here."""
        return self.core - job.req_core

    def memory_fitness(self, job: Job) -> int:
        """Spare memory left after placing `job` here."""
        return self.memory - job.req_memory

    def __str__(self) -> str:
        return (
            f"{self.resource_type} {self.resource_id} ({self.state}, "
            f"{self.core}c/{self.memory}m/{self.disk}d, "
            f"{self.waiting_jobs}W/{self.running_jobs}R)"
        )


def parse_job(message: Message) -> Job:
    """
    Build a Job from a JOBN or JOBP event.

    Expected fields: submitTime jobID estRuntime core memory disk

    Raises:
        ProtocolError: If the message is not a job event or a field is
            not an integer
    """
    if message.command not in JOB_EVENTS:
        raise ProtocolError(
            f"Expected a job event, got {message.command.value}", line=message.raw
        )
    return Job(
        submit_time=message.int_field(0),
        job_id=message.int_field(1),
        est_runtime=message.int_field(2),
        req_core=message.int_field(3),
        req_memory=message.int_field(4),
        req_disk=message.int_field(5),
    )


def parse_resource(line: str) -> Resource:
    """
    Parse one GETS record line.

    Expected format:
        <type> <id> <state> <startTime> <core> <mem> <disk> <waiting> <running>

    Raises:
        ProtocolError: On a short record or a non-numeric counter
    """
    parts = line.split()
    if len(parts) < RESOURCE_FIELDS:
        raise ProtocolError(
            f"Resource record needs {RESOURCE_FIELDS} fields, got {len(parts)}",
            line=line,
        )
    try:
        return Resource(
            resource_type=parts[0],
            resource_id=int(parts[1]),
            state=parts[2],
            start_time=int(parts[3]),
            core=int(parts[4]),
            memory=int(parts[5]),
            disk=int(parts[6]),
            waiting_jobs=int(parts[7]),
            running_jobs=int(parts[8]),
        )
    except ValueError:
        raise ProtocolError(
            "Resource record has a non-numeric field", line=line
        ) from None
