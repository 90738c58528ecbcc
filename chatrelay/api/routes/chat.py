"""OpenAI-compatible chat completions and conversation endpoints."""

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from ...core.exceptions import ValidationError
from ...core.orchestrator import ERROR_PREFIX, ChatOrchestrator, ChatTurnRequest, StreamingTurn

logger = logging.getLogger("chatrelay")


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.

    POST /v1/chat/completions

    Returns a ``text/event-stream`` of chunks when the body sets ``stream``,
    otherwise one ``chat.completion`` object.
    """
    logger.info("Received chat completions request")
    body = await request.body()
    try:
        turn = ChatTurnRequest.from_body(body)
    except ValidationError as exc:
        logger.error("Invalid chat request: %s", exc.message)
        raise exc.prefixed(ERROR_PREFIX) from exc

    orchestrator: ChatOrchestrator = request.app.state.orchestrator
    result = await orchestrator.complete(turn)
    if isinstance(result, StreamingTurn):
        return StreamingResponse(
            result.frames,
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
            background=BackgroundTask(result.finish),
        )
    return JSONResponse(result)


async def create_conversation(request: Request) -> dict:
    """Create an explicit conversation that keeps context across turns.

    POST /v1/conversations
    """
    orchestrator: ChatOrchestrator = request.app.state.orchestrator
    return {"conversation_id": orchestrator.create_conversation()}
