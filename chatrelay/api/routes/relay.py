"""Endpoints of the pass-through relay, served under the relay prefix."""

import logging

from fastapi import Request, Response

from ...core.relay import RelayAdapter
from ...types.chat import ModelList

logger = logging.getLogger("chatrelay")


async def relay_chat_completions(request: Request) -> Response:
    """POST {prefix}/v1/chat/completions, relayed to the upstream untouched."""
    logger.info("%s %s", request.method, request.url.path)
    relay: RelayAdapter = request.app.state.relay
    body = await request.body()
    return await relay.forward(body, request.headers.items())


async def relay_list_models(request: Request) -> dict:
    """GET {prefix}/v1/models"""
    relay: RelayAdapter = request.app.state.relay
    models: ModelList = {
        "object": "list",
        "data": [
            {"id": model_name, "object": "model", "owned_by": relay.settings.owned_by}
            for model_name in relay.settings.models
        ],
    }
    return models


async def relay_root() -> dict:
    return {"status": "running"}
