"""Tests for the session module."""

import socket
from unittest.mock import MagicMock, patch

import pytest

from ds_client.errors import HandshakeError, LockstepError, TransportError
from ds_client.protocol import Command
from ds_client.session import DEFAULT_HOST, DEFAULT_PORT, Session


class TestSendReceive:
    def test_send_without_args(self, make_session):
        session, sock = make_session()
        session.send(Command.REDY)
        assert sock.sent == ["REDY\n"]

    def test_send_with_args(self, make_session):
        session, sock = make_session()
        session.send(Command.SCHD, 0, "small", 1)
        assert sock.sent == ["SCHD 0 small 1\n"]

    def test_receive_strips_terminator(self, make_session):
        session, _ = make_session("JOBN 37 0 653 2 4 10")
        session.send(Command.REDY)
        assert session.receive() == "JOBN 37 0 653 2 4 10"
        assert session.last_received == "JOBN 37 0 653 2 4 10"

    def test_receive_handles_crlf(self, make_socket):
        sock = make_socket(raw=b"OK\r\n")
        session = Session(sock=sock)
        assert session.request(Command.HELO) == "OK"

    def test_request(self, make_session):
        session, sock = make_session("OK")
        assert session.request(Command.OK) == "OK"
        assert sock.lines == ["OK"]


class TestLockstep:
    def test_two_sends_in_a_row(self, make_session):
        session, _ = make_session("OK")
        session.send(Command.HELO)
        with pytest.raises(LockstepError):
            session.send(Command.REDY)

    def test_receive_without_request(self, make_session):
        session, _ = make_session("OK")
        with pytest.raises(LockstepError):
            session.receive()

    def test_multi_line_reply_is_one_turn(self, make_session):
        session, sock = make_session(
            "a 0 idle 0 4 8 100 0 0", "b 1 idle 0 2 4 50 0 0", "."
        )
        lines = session.request_lines(2, Command.OK)

        assert lines == ["a 0 idle 0 4 8 100 0 0", "b 1 idle 0 2 4 50 0 0"]
        assert session.awaiting_reply is False
        assert session.last_received == "b 1 idle 0 2 4 50 0 0"
        assert session.request(Command.OK) == "."
        assert sock.lines == ["OK", "OK"]

    def test_multi_line_reply_keeps_turn_open_until_last_line(self, make_session):
        session, _ = make_session("a 0 idle 0 4 8 100 0 0")
        session.send(Command.OK)
        with pytest.raises(TransportError):
            session.receive_lines(2)
        assert session.awaiting_reply is True

    def test_receive_lines_without_request(self, make_session):
        session, _ = make_session("a 0 idle 0 4 8 100 0 0")
        with pytest.raises(LockstepError):
            session.receive_lines(1)

    def test_alternation_resets(self, make_session):
        session, sock = make_session("OK", "NONE")
        session.request(Command.HELO)
        assert session.request(Command.REDY) == "NONE"
        assert sock.lines == ["HELO", "REDY"]


class TestTransportErrors:
    def test_eof_before_line(self, make_session):
        session, _ = make_session()
        session.send(Command.REDY)
        with pytest.raises(TransportError):
            session.receive()

    def test_partial_line(self, make_socket):
        session = Session(sock=make_socket(raw=b"JOBN 37"))
        session.send(Command.REDY)
        with pytest.raises(TransportError) as exc_info:
            session.receive()
        assert "JOBN 37" in str(exc_info.value)

    def test_read_timeout(self):
        sock = MagicMock()
        sock.makefile.return_value.readline.side_effect = socket.timeout()
        session = Session(sock=sock)
        session.send(Command.REDY)
        with pytest.raises(TransportError) as exc_info:
            session.receive()
        assert "Timed out" in str(exc_info.value)

    def test_send_failure(self):
        sock = MagicMock()
        sock.sendall.side_effect = BrokenPipeError()
        session = Session(sock=sock)
        with pytest.raises(TransportError):
            session.send(Command.REDY)

    def test_send_when_not_connected(self):
        with pytest.raises(TransportError):
            Session().send(Command.HELO)


class TestHandshake:
    def test_successful(self, make_session):
        session, sock = make_session("OK", "OK")
        session.handshake("alice")
        assert sock.lines == ["HELO", "AUTH alice"]
        assert session.handshake_done is True

    def test_helo_rejected(self, make_session):
        session, sock = make_session("ERR bad greeting")
        with pytest.raises(HandshakeError):
            session.handshake("alice")
        assert sock.lines == ["HELO"]
        assert session.handshake_done is False

    def test_auth_rejected(self, make_session):
        session, _ = make_session("OK", "garbage")
        with pytest.raises(HandshakeError):
            session.handshake("alice")

    def test_connection_closed(self, make_session):
        session, _ = make_session("OK")
        with pytest.raises(TransportError):
            session.handshake("alice")


class TestClock:
    def test_starts_unset(self):
        assert Session().current_time == -1

    def test_advances(self):
        session = Session()
        session.advance_clock(37)
        session.advance_clock(100)
        assert session.current_time == 100

    def test_never_moves_backwards(self):
        session = Session()
        session.advance_clock(100)
        session.advance_clock(37)
        assert session.current_time == 100


class TestConnection:
    def test_defaults(self):
        session = Session()
        assert session.host == DEFAULT_HOST == "localhost"
        assert session.port == DEFAULT_PORT == 50000
        assert session.connected is False

    def test_connect(self, make_socket):
        sock = make_socket()
        with patch(
            "ds_client.session.socket.create_connection", return_value=sock
        ) as mock_connect:
            session = Session("simhost", 50001, timeout=5.0)
            session.connect()
            mock_connect.assert_called_once_with(("simhost", 50001), timeout=5.0)
            assert session.connected is True

    def test_connect_refused(self):
        with patch(
            "ds_client.session.socket.create_connection",
            side_effect=ConnectionRefusedError(),
        ):
            with pytest.raises(TransportError) as exc_info:
                Session().connect()
            assert "localhost:50000" in str(exc_info.value)

    def test_context_manager_connects_and_closes(self, make_socket):
        sock = make_socket()
        with patch("ds_client.session.socket.create_connection", return_value=sock):
            with Session() as session:
                assert session.connected is True
        assert sock.closed is True
        assert session.connected is False

    def test_close_returns_zero(self, make_session):
        session, sock = make_session()
        assert session.close() == 0
        assert sock.closed is True

    def test_close_twice(self, make_session):
        session, _ = make_session()
        session.close()
        assert session.close() == 0
