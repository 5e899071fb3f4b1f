"""SSH session management built on Paramiko."""

from __future__ import annotations

import socket
from pathlib import Path
from typing import Callable, Optional

import paramiko

from ..errors import CredentialRejected, TransferError, TransportError
from ..utils.logging import get_logger
from .credentials import load_private_key
from .scp import ScpChannel

logger = get_logger(__name__)

SocketFactory = Callable[..., socket.socket]
KeyLoader = Callable[[Path, Optional[str]], paramiko.PKey]


class SSHSession:
    """Handshaken secure-transport connection wrapping paramiko.Transport.

    The session starts unauthenticated; the authenticator drives the
    ``auth_*`` primitives and only then may a copy channel be opened.
    """

    def __init__(
        self,
        host: str,
        port: int = 22,
        *,
        timeout: Optional[float] = 20,
        channel_timeout: Optional[float] = None,
        transport_factory: Callable[[socket.socket], paramiko.Transport] | None = None,
        socket_factory: SocketFactory | None = None,
        key_loader: KeyLoader | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.channel_timeout = channel_timeout
        self._transport_factory = transport_factory or paramiko.Transport
        self._socket_factory = socket_factory or socket.create_connection
        self._key_loader = key_loader or load_private_key
        self._sock: Optional[socket.socket] = None
        self._transport: Optional[paramiko.Transport] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def is_authenticated(self) -> bool:
        return bool(self._transport and self._transport.is_authenticated())

    def connect(self) -> None:
        """Open the TCP connection and run the SSH handshake."""
        if self._transport:
            return
        logger.debug("Connecting to %s:%s", self.host, self.port)
        sock = None
        transport = None
        try:
            sock = self._socket_factory((self.host, self.port), self.timeout)
            transport = self._transport_factory(sock)
            transport.start_client(timeout=self.timeout)
        except (OSError, EOFError, paramiko.SSHException) as exc:
            if transport is not None:
                transport.close()
            if sock is not None:
                sock.close()
            raise TransportError(f"Cannot connect to {self.host}:{self.port}: {exc}") from exc
        self._sock = sock
        self._transport = transport

    def close(self) -> None:
        if self._transport:
            self._transport.close()
            self._transport = None
        if self._sock:
            self._sock.close()
            self._sock = None

    def auth_publickey(self, username: str, key_path: Path, passphrase: Optional[str] = None) -> None:
        """Authenticate with a private key file.

        Raises CredentialRejected when the key cannot be used or the server
        refuses it, TransportError when the connection itself fails.
        """
        transport = self._require_transport()
        try:
            key = self._key_loader(Path(key_path), passphrase)
        except (paramiko.SSHException, OSError, ValueError) as exc:
            raise CredentialRejected(f"Cannot use key {key_path}: {exc}") from exc

        logger.debug("Offering %s key %s for %s", key.get_name(), key_path, username)
        try:
            transport.auth_publickey(username, key)
        except paramiko.AuthenticationException as exc:
            raise CredentialRejected(f"Key {key_path} rejected: {exc}") from exc
        except (paramiko.SSHException, OSError, EOFError) as exc:
            raise TransportError(f"Public key authentication failed: {exc}") from exc
        self._check_authenticated("public key")

    def auth_password(self, username: str, password: str) -> None:
        transport = self._require_transport()
        try:
            transport.auth_password(username, password)
        except paramiko.AuthenticationException as exc:
            raise CredentialRejected(f"Password rejected: {exc}") from exc
        except (paramiko.SSHException, OSError, EOFError) as exc:
            raise TransportError(f"Password authentication failed: {exc}") from exc
        self._check_authenticated("password")

    def open_scp_channel(self, remote_path: str, mode: int, size: int) -> ScpChannel:
        """Open a remote-copy channel declaring ``size`` bytes at ``remote_path``."""
        if not self.is_authenticated:
            raise TransferError("Cannot open a copy channel before authentication succeeds")
        transport = self._require_transport()
        try:
            channel = transport.open_session()
            channel.settimeout(self.channel_timeout)
        except (paramiko.SSHException, OSError, EOFError) as exc:
            raise TransportError(f"Cannot open channel: {exc}") from exc
        return ScpChannel(channel).open(remote_path, mode, size)

    def _require_transport(self) -> paramiko.Transport:
        if not self._transport:
            self.connect()
        assert self._transport is not None
        return self._transport

    def _check_authenticated(self, method: str) -> None:
        # 服务器可能要求多因素认证（partial success），此时仍视为未通过
        if not self.is_authenticated:
            raise CredentialRejected(f"Server requires further authentication after {method}")
