"""chatrelay - OpenAI-compatible gateway for chat backends that are not.

This package provides:
- A chat completions gateway over the aipkit site backend, with
  server-side conversation continuity
- A raw relay for an OpenAI-compatible upstream with virtual model aliases
- An in-memory conversation session store

Example:
    >>> from chatrelay import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="0.0.0.0", port=8000)
"""

from .config_loader import load_config
from .core.sessions import SessionStore
from .logging import setup_logging
from .main import create_app
from .settings import GatewaySettings, load_settings

__all__ = [
    "GatewaySettings",
    "SessionStore",
    "create_app",
    "load_config",
    "load_settings",
    "setup_logging",
]
