"""API routes for the gateway."""

from .chat import chat_completions, create_conversation
from .models import list_models, root
from .relay import relay_chat_completions, relay_list_models, relay_root

__all__ = [
    "chat_completions",
    "create_conversation",
    "list_models",
    "relay_chat_completions",
    "relay_list_models",
    "relay_root",
    "root",
]
