"""
Wire codec for the ds-server protocol.

Lines are ASCII, newline-terminated, with fields separated by runs of
whitespace. The first token of every line names the command.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ds_client.errors import ProtocolError


class Command(Enum):
    """Commands the client sends to ds-server."""

    HELO = "HELO"
    AUTH = "AUTH"
    REDY = "REDY"
    GETS = "GETS"
    OK = "OK"
    SCHD = "SCHD"
    EJWT = "EJWT"
    QUIT = "QUIT"
    # Administrative commands, passed through unchanged
    ENQJ = "ENQJ"
    DEQJ = "DEQJ"
    LSTQ = "LSTQ"
    CNTJ = "CNTJ"
    LSTJ = "LSTJ"
    MIGJ = "MIGJ"
    KILJ = "KILJ"
    TERM = "TERM"


class ServerCommand(Enum):
    """Commands ds-server sends to the client."""

    DATA = "DATA"
    JOBN = "JOBN"
    JOBP = "JOBP"
    JCPL = "JCPL"
    RESF = "RESF"
    RESR = "RESR"
    CHKQ = "CHKQ"
    NONE = "NONE"
    ERR = "ERR"
    OK = "OK"
    QUIT = "QUIT"


# Minimum number of fields after the command token
REQUIRED_FIELDS: dict[ServerCommand, int] = {
    ServerCommand.JOBN: 6,  # submitTime jobID estRuntime core memory disk
    ServerCommand.JOBP: 6,
    ServerCommand.JCPL: 4,  # endTime jobID serverType serverID
    ServerCommand.DATA: 2,  # nRecs recLen
    ServerCommand.RESF: 3,  # serverType serverID time
    ServerCommand.RESR: 3,
}

JOB_EVENTS = (ServerCommand.JOBN, ServerCommand.JOBP)


@dataclass(frozen=True)
class Message:
    """A decoded line with a recognised command."""

    command: ServerCommand
    fields: tuple[str, ...] = ()
    raw: str = ""

    def int_field(self, index: int) -> int:
        """Return field `index` as an int, failing on non-numeric values."""
        try:
            return int(self.fields[index])
        except IndexError:
            raise ProtocolError(
                f"{self.command.value} has no field {index}", line=self.raw
            ) from None
        except ValueError:
            raise ProtocolError(
                f"{self.command.value} field {index} is not an integer",
                line=self.raw,
            ) from None


@dataclass(frozen=True)
class UnknownMessage:
    """A line whose first token is not part of the known vocabulary."""

    token: str
    fields: tuple[str, ...] = ()
    raw: str = ""


Decoded = Union[Message, UnknownMessage]


def encode(command: Command, *args: object) -> str:
    """
    Serialize a command and its arguments as one wire line.

    Args:
        command: The command to send
        *args: Positional arguments, joined with single spaces

    Returns:
        The line, including its trailing newline
    """
    if args:
        return f"{command.value} {' '.join(str(a) for a in args)}\n"
    return f"{command.value}\n"


def decode(line: str) -> Decoded:
    """
    Split a received line into a typed message.

    Unrecognised command tokens are returned as UnknownMessage rather than
    raising, so new server commands do not break the client.

    Args:
        line: Raw line as received (terminator optional)

    Returns:
        Message or UnknownMessage

    Raises:
        ProtocolError: If a known command carries fewer fields than required
    """
    tokens = line.split()
    if not tokens:
        return UnknownMessage(token="", raw=line)

    head, fields = tokens[0], tuple(tokens[1:])
    try:
        command = ServerCommand(head)
    except ValueError:
        return UnknownMessage(token=head, fields=fields, raw=line)

    required = REQUIRED_FIELDS.get(command, 0)
    if len(fields) < required:
        raise ProtocolError(
            f"{command.value} needs {required} fields, got {len(fields)}",
            line=line,
        )
    return Message(command=command, fields=fields, raw=line)
