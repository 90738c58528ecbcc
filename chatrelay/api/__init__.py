"""API module for the gateway."""

from .routes import (
    chat_completions,
    create_conversation,
    list_models,
    relay_chat_completions,
    relay_list_models,
    relay_root,
    root,
)

__all__ = [
    "chat_completions",
    "create_conversation",
    "list_models",
    "relay_chat_completions",
    "relay_list_models",
    "relay_root",
    "root",
]
