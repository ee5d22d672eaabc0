"""
Placement policies for ds-client.

Each policy picks the resource a job should run on, or None when nothing
qualifies. Policies query the inventory themselves so that every decision is
made against a fresh snapshot.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ds_client.inventory import QueryMode, first_or_none

if TYPE_CHECKING:
    from ds_client.inventory import Inventory
    from ds_client.records import Job, Resource

logger = logging.getLogger(__name__)


class Algorithm(Enum):
    """Short policy codes accepted on the command line."""

    FIRST_CAPABLE = "fc"
    CLOSEST_FIT = "cf"
    BEST_FIT = "bf"
    FIRST_FIT = "ff"
    WORST_FIT = "wf"
    FASTEST_TURNAROUND = "ft"
    LARGEST_ROUND_ROBIN = "atl"

    @classmethod
    def from_code(cls, code: Optional[str]) -> Algorithm:
        """Map a policy code to an Algorithm, defaulting to closest fit."""
        if code:
            try:
                return cls(code.strip().lower())
            except ValueError:
                logger.warning(
                    "Unknown algorithm %r, using %s", code, DEFAULT_ALGORITHM.value
                )
        return DEFAULT_ALGORITHM


DEFAULT_ALGORITHM = Algorithm.CLOSEST_FIT


class Policy(ABC):
    """Base class for placement policies."""

    name = "policy"

    @abstractmethod
    def select(self, job: Job, inventory: Inventory) -> Optional[Resource]:
        """
        Choose a resource for `job`.

        Args:
            job: The job awaiting placement
            inventory: Source of fresh resource snapshots

        Returns:
            The chosen resource, or None if nothing qualifies
        """

    def __str__(self) -> str:
        return self.name


def available_or_capable(job: Job, inventory: Inventory) -> list[Resource]:
    """Resources that fit `job` now, falling back to those that ever could."""
    candidates = inventory.query(QueryMode.AVAILABLE, *job.demand)
    if not candidates:
        logger.debug("No available resources for job %d, trying capable", job.job_id)
        candidates = inventory.query(QueryMode.CAPABLE, *job.demand)
    return candidates


def closest_fit(candidates: list[Resource], job: Job) -> Optional[Resource]:
    """
    Pick the candidate whose capacity most closely fits the demand.

    Selection, in order:
    1. Smallest non-negative core fitness
    2. Among equal core fitness, smallest non-negative memory fitness
       (first seen when no tied candidate has non-negative memory fitness)
    3. If no candidate has enough cores, the least-negative core fitness

    Ties that survive every rule go to the first candidate seen.
    """
    fitting = [r for r in candidates if r.core_fitness(job) >= 0]
    if fitting:

        def key(resource: Resource) -> tuple[int, int, int]:
            mem = resource.memory_fitness(job)
            if mem >= 0:
                return resource.core_fitness(job), 0, mem
            return resource.core_fitness(job), 1, 0

        return min(fitting, key=key)

    if candidates:
        return max(candidates, key=lambda r: r.core_fitness(job))
    return None


class FirstCapable(Policy):
    """First resource that could ever run the job."""

    name = "first-capable"

    def select(self, job: Job, inventory: Inventory) -> Optional[Resource]:
        return first_or_none(inventory.query(QueryMode.CAPABLE, *job.demand))


class ClosestFit(Policy):
    """
    Tightest core fit among available (else capable) resources.

    Best-fit, first-fit and worst-fit codes all use this policy.
    """

    name = "closest-fit"

    def select(self, job: Job, inventory: Inventory) -> Optional[Resource]:
        return closest_fit(available_or_capable(job, inventory), job)


class FastestTurnaround(Policy):
    """Resource with the smallest estimated wait for the job."""

    name = "fastest-turnaround"

    def select(self, job: Job, inventory: Inventory) -> Optional[Resource]:
        chosen = None
        min_wait = None
        for resource in available_or_capable(job, inventory):
            wait = inventory.estimated_wait(resource)
            if min_wait is None or wait < min_wait:
                chosen, min_wait = resource, wait
        if chosen is not None:
            logger.debug("Estimated wait on %s is %d", chosen, min_wait)
        return chosen


class LargestRoundRobin(Policy):
    """
    Round-robin over every server of the largest type.

    The largest type is the first one seen with the highest core count in a
    GETS All listing taken on the first job; the set is then fixed for the
    rest of the session.

    Attributes:
        servers: The fixed round-robin set
        index: Position of the next server to use
        first_pass: True until the server set has been fetched
    """

    name = "largest-round-robin"

    def __init__(self):
        self.servers: list[Resource] = []
        self.index = 0
        self.first_pass = True

    def select(self, job: Job, inventory: Inventory) -> Optional[Resource]:
        if self.first_pass:
            self.servers = largest_type(inventory.query(QueryMode.ALL))
            self.first_pass = not self.servers
            if self.servers:
                logger.info(
                    "Round-robin over %d x %s",
                    len(self.servers),
                    self.servers[0].resource_type,
                )

        if not self.servers:
            return None

        chosen = self.servers[self.index]
        self.index += 1
        if self.index >= len(self.servers):
            self.index = 0
        return chosen


def largest_type(resources: list[Resource]) -> list[Resource]:
    """All resources of the first-seen type with the most cores."""
    if not resources:
        return []
    largest = max(resources, key=lambda r: r.core)
    return [r for r in resources if r.resource_type == largest.resource_type]


POLICIES: dict[Algorithm, type[Policy]] = {
    Algorithm.FIRST_CAPABLE: FirstCapable,
    Algorithm.CLOSEST_FIT: ClosestFit,
    Algorithm.BEST_FIT: ClosestFit,
    Algorithm.FIRST_FIT: ClosestFit,
    Algorithm.WORST_FIT: ClosestFit,
    Algorithm.FASTEST_TURNAROUND: FastestTurnaround,
    Algorithm.LARGEST_ROUND_ROBIN: LargestRoundRobin,
}


def make_policy(algorithm: Algorithm) -> Policy:
    """Create a fresh policy instance for one session."""
    return POLICIES[algorithm]()
