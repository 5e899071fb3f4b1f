"""User interaction module: prompts and status narration."""

from .handler import (
    UserInteractionHandler,
    InteractionRequest,
    InteractionResponse,
    CLIInteractionHandler,
    CallbackInteractionHandler,
    ScriptedInteractionHandler,
    InputType,
    prompt_value,
)

__all__ = [
    "UserInteractionHandler",
    "InteractionRequest",
    "InteractionResponse",
    "CLIInteractionHandler",
    "CallbackInteractionHandler",
    "ScriptedInteractionHandler",
    "InputType",
    "prompt_value",
]
