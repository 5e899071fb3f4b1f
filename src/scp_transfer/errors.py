"""Error types raised by scp-transfer."""

from __future__ import annotations


class ScpTransferError(RuntimeError):
    """Base class for every failure that ends a transfer run."""

    pass


class ConfigurationError(ScpTransferError):
    """Raised when the transfer configuration cannot be assembled."""

    pass


class InputCancelled(ScpTransferError):
    """Raised when the user aborts an interactive prompt."""

    pass


class CredentialRejected(ScpTransferError):
    """A single credential was refused or could not be used.

    Only the authenticator sees this; it moves on to the next attempt.
    """

    pass


class AuthFailure(ScpTransferError):
    """Raised when no key or password was accepted by the remote host."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class TransportError(ScpTransferError):
    """Raised for connection, handshake or channel faults."""

    pass


class TransferError(ScpTransferError):
    """Raised when streaming the file or closing the channel fails."""

    pass


class LocalFileError(TransferError):
    """Raised when the local file cannot be opened, sized or read."""

    pass
