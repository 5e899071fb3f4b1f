"""Private key discovery helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Type

import paramiko

# 按优先级排列的候选私钥文件及其 paramiko 密钥类型
KEY_TYPES: Dict[str, Type[paramiko.PKey]] = {
    "id_rsa": paramiko.RSAKey,
    "id_ed25519": paramiko.Ed25519Key,
    "id_ecdsa": paramiko.ECDSAKey,
}


def resolve_home_dir() -> Optional[str]:
    """Return the invoking user's home directory, or None if it is unknown."""
    home = os.environ.get("HOME")
    if home:
        return home
    try:
        return str(Path.home())
    except RuntimeError:
        return None


def candidate_key_paths(
    home_dir: Optional[str],
    key_names: Iterable[str] = tuple(KEY_TYPES),
) -> List[Path]:
    """Candidate private key paths under ``~/.ssh``, in priority order.

    Existence is not checked here; the authenticator does that lazily.
    """
    if not home_dir:
        return []
    ssh_dir = Path(home_dir) / ".ssh"
    return [ssh_dir / name for name in key_names]


def load_private_key(path: Path, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Load a private key file, picking the paramiko class from its name.

    Raises ``paramiko.SSHException`` (``PasswordRequiredException`` for an
    encrypted key without passphrase) or ``OSError``.
    """
    key_cls = KEY_TYPES.get(Path(path).name)
    if key_cls is not None:
        return key_cls.from_private_key_file(str(path), password=passphrase)

    last_error: Optional[paramiko.SSHException] = None
    for candidate_cls in KEY_TYPES.values():
        try:
            return candidate_cls.from_private_key_file(str(path), password=passphrase)
        except paramiko.PasswordRequiredException:
            raise
        except paramiko.SSHException as exc:
            last_error = exc
    raise last_error or paramiko.SSHException(f"Unsupported key file: {path}")
