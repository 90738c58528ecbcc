"""Authentication module for chatrelay."""

from .bearer import BearerAuthValidator, require_api_key

__all__ = ["BearerAuthValidator", "require_api_key"]
