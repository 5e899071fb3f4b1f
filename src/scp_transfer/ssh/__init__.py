"""SSH utilities for scp-transfer."""

from .auth import AuthOutcome, AuthResult, AuthStrategy, Authenticator
from .credentials import KEY_TYPES, candidate_key_paths, load_private_key, resolve_home_dir
from .scp import ScpChannel
from .session import SSHSession

__all__ = [
    "AuthOutcome",
    "AuthResult",
    "AuthStrategy",
    "Authenticator",
    "KEY_TYPES",
    "candidate_key_paths",
    "load_private_key",
    "resolve_home_dir",
    "ScpChannel",
    "SSHSession",
]
