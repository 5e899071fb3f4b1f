"""Chunked file upload over an authenticated session."""

from __future__ import annotations

import os
import socket
from typing import Optional, Protocol

import paramiko
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from .config import TransferConfig, TransferSettings
from .errors import LocalFileError, TransferError, TransportError
from .ssh.scp import SHUTDOWN_STEPS, ScpChannel
from .ssh.session import SSHSession
from .utils.logging import get_logger

logger = get_logger(__name__)

_CHANNEL_ERRORS = (paramiko.SSHException, socket.error, EOFError)


class ProgressObserver(Protocol):
    """Receives byte counts synchronously from the transfer loop."""

    def start(self, total: int) -> None: ...

    def update(self, transferred: int) -> None: ...

    def finish(self) -> None: ...


class NullProgressObserver:
    def start(self, total: int) -> None:
        pass

    def update(self, transferred: int) -> None:
        pass

    def finish(self) -> None:
        pass


class RichProgressObserver:
    """Terminal progress bar: spinner, elapsed time, bar, bytes and ETA."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._progress = Progress(
            SpinnerColumn(style="green"),
            TimeElapsedColumn(),
            BarColumn(bar_width=40, style="blue", complete_style="cyan"),
            DownloadColumn(),
            TimeRemainingColumn(),
            TextColumn("{task.description}"),
            console=console,
        )
        self._task: Optional[TaskID] = None
        self._total = 0

    def start(self, total: int) -> None:
        self._total = total
        self._progress.start()
        self._task = self._progress.add_task("", total=total)

    def update(self, transferred: int) -> None:
        if self._task is not None:
            self._progress.update(self._task, completed=transferred)

    def finish(self) -> None:
        if self._task is not None:
            self._progress.update(self._task, completed=self._total, description="Transfer completed!")
        self._progress.stop()

    def abort(self) -> None:
        self._progress.stop()


class FileTransferer:
    """Streams one local file into a remote-copy channel."""

    def __init__(self, settings: Optional[TransferSettings] = None) -> None:
        self.settings = settings or TransferSettings()

    def transfer(
        self,
        session: SSHSession,
        config: TransferConfig,
        progress: Optional[ProgressObserver] = None,
    ) -> int:
        """Upload ``config.local_file`` to ``config.remote_path``.

        Returns the number of bytes sent. Raises TransferError (or its
        LocalFileError subclass) on any failure; TransportError if the
        channel cannot be opened.
        """
        observer = progress or NullProgressObserver()
        try:
            handle = open(config.local_file, "rb")
        except OSError as exc:
            raise LocalFileError(f"Cannot open {config.local_file}: {exc}") from exc

        with handle:
            try:
                file_size = os.fstat(handle.fileno()).st_size
            except OSError as exc:
                raise LocalFileError(f"Cannot read size of {config.local_file}: {exc}") from exc

            logger.debug(
                "Uploading %s (%d bytes) to %s:%s",
                config.local_file, file_size, config.remote_host, config.remote_path,
            )
            channel = session.open_scp_channel(config.remote_path, self.settings.file_mode, file_size)
            observer.start(file_size)
            transferred = self._stream(handle, channel, observer, file_size)

        self._shutdown(channel)
        observer.finish()
        logger.debug("Transferred %d of %d bytes", transferred, file_size)
        return transferred

    def _stream(self, handle, channel: ScpChannel, observer: ProgressObserver, file_size: int) -> int:
        # 远端只接收声明的字节数，文件在 fstat 之后的变化不能越过这个边界
        transferred = 0
        while transferred < file_size:
            try:
                chunk = handle.read(min(self.settings.chunk_size, file_size - transferred))
            except OSError as exc:
                raise LocalFileError(f"Failed reading local file: {exc}") from exc
            if not chunk:
                raise LocalFileError(
                    f"Local file shrank during transfer: got {transferred} of {file_size} bytes"
                )
            try:
                written = channel.write(chunk)
            except _CHANNEL_ERRORS as exc:
                raise TransferError(f"Write to remote channel failed: {exc}") from exc
            if written != len(chunk):
                raise TransferError(f"Short write to remote channel: {written} of {len(chunk)} bytes")
            transferred += written
            observer.update(transferred)
        return transferred

    def _shutdown(self, channel: ScpChannel) -> None:
        for step in SHUTDOWN_STEPS:
            try:
                getattr(channel, step)()
            except TransferError:
                raise
            except (TransportError, *_CHANNEL_ERRORS) as exc:
                raise TransferError(f"Channel {step.replace('_', '-')} failed: {exc}") from exc
