"""
Resource inventory queries against ds-server.

Implements the paginated GETS exchange and the EJWT estimated-wait query.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ds_client.errors import ProtocolError
from ds_client.protocol import Command, ServerCommand, decode
from ds_client.records import Resource, parse_resource

if TYPE_CHECKING:
    from ds_client.session import Session

logger = logging.getLogger(__name__)

END_OF_DATA = "."


class QueryMode(Enum):
    """GETS filter modes."""

    ALL = "All"  # every known resource
    CAPABLE = "Capable"  # total capacity could ever fit the demand
    AVAILABLE = "Avail"  # can fit the demand right now


class Inventory:
    """Fetches fresh resource snapshots through a Session."""

    def __init__(self, session: Session):
        self.session = session

    def query(
        self,
        mode: QueryMode,
        core: int = 0,
        memory: int = 0,
        disk: int = 0,
    ) -> list[Resource]:
        """
        Fetch resources matching `mode` for the given demand.

        The exchange is:
            GETS <mode> [core mem disk] -> DATA nRecs recLen
            OK -> nRecs record lines            (skipped when nRecs is 0)
            OK -> "."

        Args:
            mode: Filter mode
            core: Required cores (ignored for ALL)
            memory: Required memory (ignored for ALL)
            disk: Required disk (ignored for ALL)

        Returns:
            Resources in the order the server sent them (possibly empty)

        Raises:
            ProtocolError: On an unexpected reply or malformed record
        """
        if mode is QueryMode.ALL:
            header = self.session.request(Command.GETS, mode.value)
        else:
            header = self.session.request(Command.GETS, mode.value, core, memory, disk)

        count = self._record_count(header)
        resources = []
        if count > 0:
            lines = self.session.request_lines(count, Command.OK)
            resources = [parse_resource(line) for line in lines]

        trailer = self.session.request(Command.OK)
        if trailer.strip() not in (END_OF_DATA, ""):
            raise ProtocolError("Expected end of GETS data", line=trailer)

        logger.debug("GETS %s returned %d resources", mode.value, len(resources))
        return resources

    def estimated_wait(self, resource: Resource) -> int:
        """
        Ask the server how long a new job would wait on `resource`.

        Raises:
            ProtocolError: If the reply is not an integer
        """
        reply = self.session.request(
            Command.EJWT, resource.resource_type, resource.resource_id
        )
        try:
            return int(reply.strip())
        except ValueError:
            raise ProtocolError("EJWT reply is not an integer", line=reply) from None

    @staticmethod
    def _record_count(header: str) -> int:
        message = decode(header)
        if getattr(message, "command", None) is not ServerCommand.DATA:
            raise ProtocolError("Expected DATA header", line=header)
        count = message.int_field(0)
        if count < 0:
            raise ProtocolError("Negative record count", line=header)
        return count


def first_or_none(resources: list[Resource]) -> Optional[Resource]:
    """Return the first resource, or None for an empty list."""
    return resources[0] if resources else None
