"""Shared fixtures: a scripted stand-in for the ds-server socket."""

import io

import pytest

from ds_client.session import Session


class FakeSocket:
    """Socket double that replays canned server lines and records sends."""

    def __init__(self, replies=(), raw=None):
        data = raw if raw is not None else "".join(f"{r}\n" for r in replies).encode()
        self._reader = io.BytesIO(data)
        self.sent = []
        self.closed = False

    def sendall(self, data):
        self.sent.append(data.decode("ascii"))

    def makefile(self, mode):
        return self._reader

    def close(self):
        self.closed = True

    @property
    def lines(self):
        """Sent lines without their terminators."""
        return [s.rstrip("\n") for s in self.sent]


@pytest.fixture
def make_socket():
    """Build a FakeSocket replaying the given server lines."""

    def _make(*replies, raw=None):
        return FakeSocket(replies, raw=raw)

    return _make


@pytest.fixture
def make_session(make_socket):
    """Build a Session wired to a FakeSocket replaying `replies`."""

    def _make(*replies):
        sock = make_socket(*replies)
        return Session(sock=sock), sock

    return _make
