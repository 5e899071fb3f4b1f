"""Remote-copy channel speaking the scp sink protocol over a paramiko channel."""

from __future__ import annotations

import posixpath
import shlex
import socket
import time
from typing import Optional

import paramiko

from ..errors import TransferError, TransportError
from ..utils.logging import get_logger

logger = get_logger(__name__)

ACK_OK = b"\x00"
ACK_WARNING = b"\x01"
ACK_FATAL = b"\x02"

# 关闭阶段必须严格按此顺序执行
SHUTDOWN_STEPS = ("send_eof", "wait_eof", "close", "wait_close")
CLOSE_POLL_INTERVAL = 0.05


class ScpChannel:
    """A single-file upload channel.

    Lifecycle: :meth:`open`, any number of :meth:`write` calls, then
    ``send_eof``, ``wait_eof``, ``close`` and ``wait_close`` once each, in
    that order.
    """

    def __init__(self, channel: paramiko.Channel, close_timeout: Optional[float] = 30.0) -> None:
        self._channel = channel
        self._close_timeout = close_timeout
        self._opened = False
        self._next_step = 0
        self._exit_status = -1

    @property
    def channel(self) -> paramiko.Channel:
        return self._channel

    def open(self, remote_path: str, mode: int, size: int) -> "ScpChannel":
        """Start ``scp -t`` on the remote side and declare the incoming file."""
        if self._opened:
            raise TransferError("scp channel already opened")
        command = f"scp -t {shlex.quote(remote_path)}"
        logger.debug("Executing remote command: %s", command)
        try:
            self._channel.exec_command(command)
            self._read_ack("start")
            name = posixpath.basename(remote_path.rstrip("/")) or "file"
            header = f"C{mode & 0o7777:04o} {size} {name}\n"
            logger.debug("Sending scp header: %r", header)
            self._channel.sendall(header.encode("utf-8"))
            self._read_ack("file header")
        except (paramiko.SSHException, socket.error, EOFError) as exc:
            raise TransportError(f"Failed to open scp channel: {exc}") from exc
        self._opened = True
        return self

    def write(self, data: bytes) -> int:
        """Send ``data`` in full and return the number of bytes written."""
        if not self._opened or self._next_step:
            raise TransferError("scp channel is not accepting data")
        self._channel.sendall(data)
        return len(data)

    def send_eof(self) -> None:
        self._begin_step("send_eof")
        # 文件内容结束后还需要发送一个 \0 作为结束标记
        self._channel.sendall(ACK_OK)
        self._channel.shutdown_write()

    def wait_eof(self) -> None:
        """Read the final ack, drain to remote EOF and record the exit status."""
        self._begin_step("wait_eof")
        self._read_ack("file data")
        while self._channel.recv(1024):
            pass
        # 本地 close() 也会触发 status_event，所以必须在关闭之前取得退出码
        if not self._channel.status_event.wait(self._close_timeout):
            raise TransferError("Timed out waiting for the remote scp exit status")
        self._exit_status = self._channel.exit_status
        logger.debug("Remote scp exited with status %s", self._exit_status)

    def close(self) -> None:
        self._begin_step("close")
        self._channel.close()

    def wait_close(self) -> None:
        """Block until the remote side acknowledges the close."""
        self._begin_step("wait_close")
        deadline = None if self._close_timeout is None else time.monotonic() + self._close_timeout
        while not self._remote_closed():
            if deadline is not None and time.monotonic() > deadline:
                raise TransferError("Timed out waiting for the remote side to close the channel")
            time.sleep(CLOSE_POLL_INTERVAL)
        if self._exit_status > 0:
            raise TransferError(f"Remote scp exited with status {self._exit_status}")

    def _remote_closed(self) -> bool:
        transport = self._channel.get_transport()
        # paramiko 只有在收到对端 CHANNEL_CLOSE 后才会把通道从 transport 中移除
        if transport._channels.get(self._channel.get_id()) is None:
            return True
        if not transport.is_active():
            raise TransferError("Connection lost before the remote side closed the channel")
        return False

    def _begin_step(self, name: str) -> None:
        if not self._opened:
            raise TransferError(f"Cannot {name}: scp channel was never opened")
        expected = SHUTDOWN_STEPS[self._next_step] if self._next_step < len(SHUTDOWN_STEPS) else None
        if name != expected:
            raise TransferError(f"Cannot {name}: expected {expected or 'no further steps'}")
        logger.debug("scp channel: %s", name)
        self._next_step += 1

    def _read_ack(self, stage: str) -> None:
        code = self._channel.recv(1)
        if code == ACK_OK:
            return
        if not code:
            raise TransferError(f"Remote scp closed the channel during {stage}")
        if code in (ACK_WARNING, ACK_FATAL):
            message = self._read_line()
            raise TransferError(f"Remote scp error during {stage}: {message or 'unknown error'}")
        # 非协议字节：读取剩余行作为错误信息
        message = code.decode("utf-8", errors="replace") + self._read_line()
        raise TransferError(f"Unexpected scp response during {stage}: {message.strip()}")

    def _read_line(self) -> str:
        buf = bytearray()
        while True:
            byte = self._channel.recv(1)
            if not byte or byte == b"\n":
                break
            buf += byte
        return buf.decode("utf-8", errors="replace").strip()
