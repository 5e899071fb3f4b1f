"""Tests for the scp sink protocol channel."""

import threading

import pytest

from scp_transfer.errors import TransferError
from scp_transfer.ssh.scp import ScpChannel


class FakeTransport:
    def __init__(self) -> None:
        self._channels: dict = {}
        self.active = True

    def is_active(self) -> bool:
        return self.active


class FakeChannel:
    """Stand-in for paramiko.Channel with a scripted receive buffer.

    Like paramiko, a local ``close()`` sets ``status_event`` on its own; the
    channel only leaves the transport's channel map once the remote side
    answers the close.
    """

    def __init__(
        self,
        incoming: bytes = b"",
        exit_status: int = 0,
        sends_status: bool = True,
        remote_closes: bool = True,
    ) -> None:
        self._incoming = bytearray(incoming)
        self.sent = bytearray()
        self.commands: list[str] = []
        self.events: list[str] = []
        self.exit_status = -1
        self._final_status = exit_status
        self._sends_status = sends_status
        self._remote_closes = remote_closes
        self.status_event = threading.Event()
        self.transport = FakeTransport()
        self.chanid = 0
        self.transport._channels[self.chanid] = self

    def get_transport(self) -> FakeTransport:
        return self.transport

    def get_id(self) -> int:
        return self.chanid

    def exec_command(self, command: str) -> None:
        self.commands.append(command)

    def recv(self, size: int) -> bytes:
        chunk = bytes(self._incoming[:size])
        del self._incoming[:size]
        if not chunk and self._sends_status and not self.status_event.is_set():
            # 远端在 EOF 时发送 exit-status
            self.exit_status = self._final_status
            self.status_event.set()
        return chunk

    def sendall(self, data: bytes) -> None:
        self.sent += data

    def shutdown_write(self) -> None:
        self.events.append("shutdown_write")

    def close(self) -> None:
        self.events.append("close")
        self.status_event.set()
        if self._remote_closes:
            self.transport._channels.pop(self.chanid, None)


class TestOpen:
    def test_sends_command_and_header(self):
        fake = FakeChannel(b"\x00\x00")
        ScpChannel(fake).open("/home/alice/report.pdf", 0o644, 20000)

        assert fake.commands == ["scp -t /home/alice/report.pdf"]
        assert bytes(fake.sent) == b"C0644 20000 report.pdf\n"

    def test_quotes_remote_path(self):
        fake = FakeChannel(b"\x00\x00")
        ScpChannel(fake).open("/tmp/my file.txt", 0o600, 1)

        assert fake.commands == ["scp -t '/tmp/my file.txt'"]
        assert bytes(fake.sent) == b"C0600 1 my file.txt\n"

    def test_fatal_ack_carries_message(self):
        fake = FakeChannel(b"\x00\x02scp: /root/x: Permission denied\n")
        with pytest.raises(TransferError, match="Permission denied"):
            ScpChannel(fake).open("/root/x", 0o644, 5)

    def test_channel_closed_before_ack(self):
        with pytest.raises(TransferError, match="closed the channel"):
            ScpChannel(FakeChannel(b"")).open("/tmp/x", 0o644, 5)

    def test_garbage_response(self):
        fake = FakeChannel(b"bash: scp: command not found\n")
        with pytest.raises(TransferError, match="command not found"):
            ScpChannel(fake).open("/tmp/x", 0o644, 5)


class TestLifecycle:
    def _opened(self, trailer: bytes = b"\x00", **kwargs) -> tuple:
        fake = FakeChannel(b"\x00\x00" + trailer, **kwargs)
        channel = ScpChannel(fake, close_timeout=0.2).open("/tmp/data.bin", 0o644, 4)
        fake.sent.clear()
        return fake, channel

    def test_full_sequence(self):
        fake, channel = self._opened()

        assert channel.write(b"abcd") == 4
        channel.send_eof()
        channel.wait_eof()
        channel.close()
        channel.wait_close()

        assert bytes(fake.sent) == b"abcd\x00"
        assert fake.events == ["shutdown_write", "close"]

    def test_write_refused_after_eof(self):
        _, channel = self._opened()
        channel.send_eof()
        with pytest.raises(TransferError):
            channel.write(b"late")

    def test_steps_must_follow_order(self):
        _, channel = self._opened()
        with pytest.raises(TransferError, match="expected send_eof"):
            channel.close()

    def test_steps_run_once(self):
        _, channel = self._opened()
        channel.send_eof()
        with pytest.raises(TransferError):
            channel.send_eof()

    def test_remote_error_after_data(self):
        _, channel = self._opened(trailer=b"\x01scp: disk full\n")
        channel.send_eof()
        with pytest.raises(TransferError, match="disk full"):
            channel.wait_eof()

    def test_nonzero_exit_status(self):
        _, channel = self._opened(exit_status=1)
        channel.send_eof()
        channel.wait_eof()
        channel.close()
        with pytest.raises(TransferError, match="status 1"):
            channel.wait_close()

    def test_wait_close_times_out_when_remote_never_closes(self):
        fake, channel = self._opened(remote_closes=False)
        channel.send_eof()
        channel.wait_eof()
        channel.close()
        # 本地 close 已经置位 status_event，但这不代表远端已关闭
        assert fake.status_event.is_set()
        with pytest.raises(TransferError, match="Timed out waiting for the remote side"):
            channel.wait_close()

    def test_exit_status_is_captured_before_local_close(self):
        fake, channel = self._opened(exit_status=3)
        channel.send_eof()
        channel.wait_eof()
        fake.exit_status = -1
        channel.close()
        with pytest.raises(TransferError, match="status 3"):
            channel.wait_close()

    def test_wait_eof_times_out_without_exit_status(self):
        fake, channel = self._opened(sends_status=False)
        channel.send_eof()
        with pytest.raises(TransferError, match="exit status"):
            channel.wait_eof()
        assert "close" not in fake.events

    def test_connection_lost_before_remote_close(self):
        fake, channel = self._opened(remote_closes=False)
        channel.send_eof()
        channel.wait_eof()
        channel.close()
        fake.transport.active = False
        with pytest.raises(TransferError, match="Connection lost"):
            channel.wait_close()

    def test_remote_close_arriving_later_is_awaited(self):
        fake, channel = self._opened(remote_closes=False)
        channel.send_eof()
        channel.wait_eof()
        channel.close()
        timer = threading.Timer(0.02, fake.transport._channels.pop, args=(fake.chanid,))
        timer.start()
        try:
            channel.wait_close()
        finally:
            timer.join()
        assert fake.get_id() not in fake.transport._channels

    def test_unopened_channel_rejects_steps(self):
        with pytest.raises(TransferError):
            ScpChannel(FakeChannel()).send_eof()
