"""Configuration objects for scp-transfer."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import ConfigurationError

DEFAULT_PORT = 22
MAX_PORT = 65535


@dataclass(frozen=True)
class TransferConfig:
    """Everything the driver collected for one transfer."""

    local_file: str
    remote_host: str
    port: int
    remote_path: str
    username: str


@dataclass
class TransferSettings:
    """Tunables shared by the authenticator, session and transferer."""

    chunk_size: int = 8192
    file_mode: int = 0o644
    connect_timeout: int = 20
    channel_timeout: Optional[float] = None  # None 表示阻塞读写
    key_names: Tuple[str, ...] = ("id_rsa", "id_ed25519", "id_ecdsa")


@dataclass
class AppConfig:
    """Top-level configuration."""

    transfer: TransferSettings = field(default_factory=TransferSettings)
    verbose: bool = False

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        transfer_payload = payload.get("transfer", {}) or {}
        # 过滤掉值为 None 的字段，保留默认值
        transfer_payload = {k: v for k, v in transfer_payload.items() if v is not None}
        if "key_names" in transfer_payload:
            transfer_payload["key_names"] = tuple(transfer_payload["key_names"])

        return cls(
            transfer=TransferSettings(**{**TransferSettings().__dict__, **transfer_payload}),
            verbose=bool(payload.get("verbose", False)),
        )


def parse_port(text: Optional[str], warn: Optional[Callable[[str], None]] = None) -> int:
    """Parse user-supplied port text, falling back to 22.

    Empty input is the normal way to ask for the default. Anything that is
    not an ASCII integer in 0..65535 also yields 22, and ``warn`` is told.
    """
    value = (text or "").strip()
    if not value:
        return DEFAULT_PORT
    if value.isascii() and value.isdigit() and int(value) <= MAX_PORT:
        return int(value)
    if warn is not None:
        warn(f"Invalid port number {value!r}, using default {DEFAULT_PORT}")
    return DEFAULT_PORT


def default_remote_path(username: str, local_file: str) -> str:
    return f"/home/{username}/{Path(local_file).name}"


def require_local_file(local_file: str) -> str:
    """Return the stripped path, or raise ConfigurationError unless it names a regular file."""
    local_file = local_file.strip()
    if not local_file:
        raise ConfigurationError("Local file path is required")
    if not Path(local_file).is_file():
        raise ConfigurationError(f"Local file does not exist: {local_file}")
    return local_file


def build_transfer_config(
    local_file: str,
    remote_host: str,
    username: str,
    port: Optional[str] = None,
    remote_path: Optional[str] = None,
    *,
    warn: Optional[Callable[[str], None]] = None,
) -> TransferConfig:
    """Validate raw inputs and assemble an immutable :class:`TransferConfig`."""
    local_file = require_local_file(local_file)

    remote_host = remote_host.strip()
    username = username.strip()
    missing = []
    if not remote_host:
        missing.append("remote host")
    if not username:
        missing.append("username")
    if missing:
        raise ConfigurationError("Missing transfer values: " + ", ".join(missing))

    final_remote_path = (remote_path or "").strip() or default_remote_path(username, local_file)

    return TransferConfig(
        local_file=local_file,
        remote_host=remote_host,
        port=parse_port(port, warn),
        remote_path=final_remote_path,
        username=username,
    )
