"""Models listing endpoint - OpenAI compatible."""

import logging
import time

from fastapi import Request

from ...types.chat import ModelList

logger = logging.getLogger("chatrelay")


async def list_models(request: Request) -> dict:
    """List available models in OpenAI API format.

    GET /v1/models
    """
    logger.info("Received models list request")
    created = int(time.time())
    models: ModelList = {
        "object": "list",
        "data": [
            {"id": model_name, "object": "model", "created": created, "owned_by": "system"}
            for model_name in request.app.state.settings.models
        ],
    }
    return models


async def root() -> dict:
    """Liveness check.

    GET /
    """
    return {"message": "chatrelay API"}
