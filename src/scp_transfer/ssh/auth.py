"""Opportunistic authentication: private keys first, then password."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence

from ..config import TransferConfig, TransferSettings
from ..errors import AuthFailure, CredentialRejected, TransportError
from ..interaction import InputType, InteractionRequest, UserInteractionHandler, prompt_value
from ..utils.logging import get_logger
from .credentials import candidate_key_paths
from .session import SSHSession

logger = get_logger(__name__)


class AuthOutcome(str, Enum):
    """Result of a single authentication strategy."""
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"               # 凭据被拒绝，继续尝试下一个
    TRANSPORT_ERROR = "transport_error"  # 连接层错误，立即终止


@dataclass
class AuthAttempt:
    outcome: AuthOutcome
    method: str
    error: Optional[Exception] = None


@dataclass
class AuthResult:
    """Returned when a strategy was accepted."""

    method: str
    key_path: Optional[Path] = None


@dataclass
class AuthStrategy:
    """One entry of the ordered fallback list."""

    method: str
    attempt: Callable[[SSHSession, TransferConfig], None]
    key_path: Optional[Path] = None

    def run(self, session: SSHSession, config: TransferConfig) -> AuthAttempt:
        try:
            self.attempt(session, config)
        except CredentialRejected as exc:
            logger.debug("%s rejected: %s", self.method, exc)
            return AuthAttempt(AuthOutcome.REJECTED, self.method, exc)
        except TransportError as exc:
            return AuthAttempt(AuthOutcome.TRANSPORT_ERROR, self.method, exc)
        return AuthAttempt(AuthOutcome.SUCCEEDED, self.method)


class Authenticator:
    """Tries candidate keys in order, then falls back to a password prompt.

    The home directory is injected so the candidate list does not depend on
    ambient process state.
    """

    def __init__(
        self,
        interaction: UserInteractionHandler,
        home_dir: Optional[str],
        settings: Optional[TransferSettings] = None,
        exists: Callable[[Path], bool] = Path.exists,
    ) -> None:
        self.interaction = interaction
        self.home_dir = home_dir
        self.settings = settings or TransferSettings()
        self._exists = exists

    def candidate_keys(self) -> Sequence[Path]:
        return candidate_key_paths(self.home_dir, self.settings.key_names)

    def authenticate(self, session: SSHSession, config: TransferConfig) -> AuthResult:
        """Run the strategies until one succeeds.

        Raises AuthFailure when every credential was rejected and
        TransportError as soon as any attempt hits a connection fault.
        """
        for strategy in self.strategies(config):
            attempt = strategy.run(session, config)
            if attempt.outcome == AuthOutcome.SUCCEEDED:
                self.interaction.notify(f"✅ Authenticated with {strategy.method}", "success")
                return AuthResult(method=strategy.method, key_path=strategy.key_path)
            if attempt.outcome == AuthOutcome.TRANSPORT_ERROR:
                raise attempt.error or TransportError(f"{strategy.method} failed")
        self.interaction.notify("❌ Password authentication failed", "error")
        raise AuthFailure()

    def strategies(self, config: TransferConfig) -> Iterator[AuthStrategy]:
        """Yield strategies lazily; key existence is checked when reached."""
        if not self.home_dir:
            logger.debug("Home directory unknown, skipping key authentication")
        for key_path in self.candidate_keys():
            if not self._exists(key_path):
                logger.debug("Key %s not found, skipping", key_path)
                continue
            self.interaction.notify(f"🔑 Trying SSH key: {key_path}", "info")
            yield AuthStrategy(
                method="SSH key (no passphrase)",
                attempt=self._key_without_passphrase(key_path),
                key_path=key_path,
            )
            yield AuthStrategy(
                method="SSH key (with passphrase)",
                attempt=self._key_with_passphrase(key_path),
                key_path=key_path,
            )
        self.interaction.notify(
            "🔐 SSH key authentication failed, trying password authentication", "warning"
        )
        yield AuthStrategy(method="password", attempt=self._password)

    def _key_without_passphrase(self, key_path: Path) -> Callable[[SSHSession, TransferConfig], None]:
        def attempt(session: SSHSession, config: TransferConfig) -> None:
            session.auth_publickey(config.username, key_path)

        return attempt

    def _key_with_passphrase(self, key_path: Path) -> Callable[[SSHSession, TransferConfig], None]:
        def attempt(session: SSHSession, config: TransferConfig) -> None:
            self.interaction.notify("🔐 SSH key requires passphrase", "warning")
            passphrase = prompt_value(
                self.interaction,
                InteractionRequest(
                    question="🔑 SSH key passphrase",
                    input_type=InputType.SECRET,
                    allow_empty=True,
                ),
            )
            session.auth_publickey(config.username, key_path, passphrase)

        return attempt

    def _password(self, session: SSHSession, config: TransferConfig) -> None:
        password = prompt_value(
            self.interaction,
            InteractionRequest(
                question="🔑 Password",
                input_type=InputType.SECRET,
                allow_empty=True,
            ),
        )
        session.auth_password(config.username, password)
