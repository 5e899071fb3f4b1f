"""High-level transfer orchestration."""

from __future__ import annotations

from typing import Callable, Optional

from .config import AppConfig, TransferConfig
from .interaction import CLIInteractionHandler, UserInteractionHandler
from .ssh import Authenticator, AuthResult, SSHSession, resolve_home_dir
from .transfer import FileTransferer, NullProgressObserver, ProgressObserver, RichProgressObserver
from .utils.logging import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[TransferConfig], SSHSession]
ProgressFactory = Callable[[], ProgressObserver]


class TransferWorkflow:
    """Connects, authenticates and uploads, strictly in that order."""

    def __init__(
        self,
        config: AppConfig,
        interaction_handler: Optional[UserInteractionHandler] = None,
        *,
        home_dir: Optional[str] = None,
        session_factory: Optional[SessionFactory] = None,
        progress_factory: Optional[ProgressFactory] = None,
    ) -> None:
        self.config = config
        self.interaction_handler = interaction_handler or CLIInteractionHandler()
        self.home_dir = home_dir if home_dir is not None else resolve_home_dir()
        self._session_factory = session_factory or self._default_session
        self._progress_factory = progress_factory or self._default_progress
        self.authenticator = Authenticator(
            self.interaction_handler, self.home_dir, self.config.transfer
        )
        self.transferer = FileTransferer(self.config.transfer)

    def run(self, request: TransferConfig) -> int:
        """Run one transfer and return the number of bytes sent.

        Every failure surfaces as a ScpTransferError subclass; the session
        is closed on both paths.
        """
        notify = self.interaction_handler.notify
        notify("\n🔗 Connecting to remote host...", "info")
        session = self._session_factory(request)
        try:
            session.connect()
            result: AuthResult = self.authenticator.authenticate(session, request)
            logger.info("Authenticated %s@%s via %s", request.username, request.remote_host, result.method)

            notify("✅ Connected and authenticated successfully!", "success")
            notify("📤 Starting file transfer...", "info")
            progress = self._progress_factory()
            try:
                return self.transferer.transfer(session, request, progress)
            except BaseException:
                abort = getattr(progress, "abort", None)
                if abort is not None:
                    abort()
                raise
        finally:
            session.close()

    def _default_session(self, request: TransferConfig) -> SSHSession:
        settings = self.config.transfer
        return SSHSession(
            request.remote_host,
            request.port,
            timeout=settings.connect_timeout,
            channel_timeout=settings.channel_timeout,
        )

    def _default_progress(self) -> ProgressObserver:
        if isinstance(self.interaction_handler, CLIInteractionHandler):
            return RichProgressObserver(self.interaction_handler.console)
        return NullProgressObserver()
