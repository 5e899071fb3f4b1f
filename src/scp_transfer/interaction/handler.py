"""User interaction handlers for prompting and status narration."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from rich.console import Console
from rich.prompt import Prompt

from ..errors import InputCancelled

logger = logging.getLogger(__name__)


class InputType(str, Enum):
    """Type of user input expected."""
    TEXT = "text"           # 普通文本输入
    SECRET = "secret"       # 敏感信息（密码、口令），输入不回显


@dataclass
class InteractionRequest:
    """A request for a single value from the user."""

    question: str
    input_type: InputType = InputType.TEXT
    allow_empty: bool = False               # 是否允许直接回车（返回空字符串）
    default: Optional[str] = None

    @property
    def is_secret(self) -> bool:
        return self.input_type == InputType.SECRET


@dataclass
class InteractionResponse:
    """User's response to an interaction request."""

    value: str
    cancelled: bool = False

    @classmethod
    def cancelled_response(cls) -> "InteractionResponse":
        return cls(value="", cancelled=True)


class UserInteractionHandler(ABC):
    """Abstract base class for handling user interactions."""

    @abstractmethod
    def ask(self, request: InteractionRequest) -> InteractionResponse:
        """
        Present a request to the user and block until it is answered.

        Args:
            request: The interaction request to present

        Returns:
            The user's response
        """
        pass

    @abstractmethod
    def notify(self, message: str, level: str = "info") -> None:
        """
        Send a notification to the user (no response needed).

        Args:
            message: The message to display
            level: Severity level (info, success, warning, error)
        """
        pass


LEVEL_STYLES: Dict[str, str] = {
    "info": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "title": "bold cyan",
}


class CLIInteractionHandler(UserInteractionHandler):
    """Terminal handler built on rich prompts and console styling."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        try:
            while True:
                value = Prompt.ask(
                    request.question,
                    console=self.console,
                    password=request.is_secret,
                    default=request.default if request.default is not None else "",
                    show_default=bool(request.default) and not request.is_secret,
                )
                if request.is_secret:
                    # 口令原样返回，不做 strip
                    value = value or ""
                else:
                    value = (value or "").strip()
                if value or request.allow_empty:
                    return InteractionResponse(value=value)
                self.console.print("   This value is required", style="yellow")
        except KeyboardInterrupt:
            self.console.print("\n   (cancelled)")
            return InteractionResponse.cancelled_response()
        except EOFError:
            return InteractionResponse.cancelled_response()

    def notify(self, message: str, level: str = "info") -> None:
        self.console.print(message, style=LEVEL_STYLES.get(level), highlight=False)


class CallbackInteractionHandler(UserInteractionHandler):
    """
    Interaction handler that uses callbacks.
    Useful when embedding the transfer in another front end.
    """

    def __init__(
        self,
        ask_callback: Callable[[InteractionRequest], InteractionResponse],
        notify_callback: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.ask_callback = ask_callback
        self.notify_callback = notify_callback or (lambda msg, lvl: logger.info("[%s] %s", lvl, msg))

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        return self.ask_callback(request)

    def notify(self, message: str, level: str = "info") -> None:
        self.notify_callback(message, level)


class ScriptedInteractionHandler(UserInteractionHandler):
    """
    Answers prompts from a fixed script, in order.
    Records every request and notification so callers can inspect them.
    """

    def __init__(self, answers: Optional[Iterable[str]] = None) -> None:
        self._answers: List[str] = list(answers or [])
        self.requests: List[InteractionRequest] = []
        self.notifications: List[tuple] = []

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        self.requests.append(request)
        if not self._answers:
            logger.debug("No scripted answer left for %r", request.question)
            return InteractionResponse.cancelled_response()
        return InteractionResponse(value=self._answers.pop(0))

    def notify(self, message: str, level: str = "info") -> None:
        self.notifications.append((level, message))

    @property
    def remaining(self) -> int:
        return len(self._answers)


def prompt_value(handler: UserInteractionHandler, request: InteractionRequest) -> str:
    """Ask ``request`` through ``handler`` and return the answer string."""
    response = handler.ask(request)
    if response.cancelled:
        raise InputCancelled(f"Input cancelled: {request.question}")
    return response.value
