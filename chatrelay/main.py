"""Main FastAPI application for chatrelay."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.routes import (
    chat_completions,
    create_conversation,
    list_models,
    relay_chat_completions,
    relay_list_models,
    relay_root,
    root,
)
from .auth import BearerAuthValidator, require_api_key
from .config_loader import load_config
from .core.event_stream import EventStreamClient
from .core.exceptions import GatewayError
from .core.handshake import HandshakeClient
from .core.orchestrator import ChatOrchestrator
from .core.relay import RelayAdapter
from .core.sessions import SessionStore
from .logging import setup_logging
from .settings import GatewaySettings, load_settings

logger = logging.getLogger("chatrelay")


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error("Error: %s", exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)


def create_app(
    settings: Optional[GatewaySettings] = None,
    store: Optional[SessionStore] = None,
    site_transport: Optional[httpx.AsyncBaseTransport] = None,
    relay_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Factory function to create the FastAPI application.

    Args:
        settings: Resolved settings; loaded from the YAML config and the
            environment when omitted.
        store: Conversation store to share; a fresh one when omitted.
        site_transport: httpx transport for the aipkit site calls; the
            network when omitted.
        relay_transport: httpx transport for the relay upstream; the
            network when omitted.

    Returns:
        The configured FastAPI application instance.
    """
    if settings is None:
        settings = load_settings(load_config())
    setup_logging(settings.debug)
    if store is None:
        store = SessionStore(max_sessions=settings.max_sessions)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("chatrelay starting on %s:%s", settings.host, settings.port)
        logger.info("Models: %s", list(settings.models))
        logger.info("Authentication %s", "enabled" if settings.api_key else "disabled")
        if settings.relay.enabled:
            logger.info("Relay under %s -> %s", settings.relay.prefix, settings.relay.base_url)
        yield
        logger.info("chatrelay shutting down with %d live sessions", len(store))

    app = FastAPI(title="chatrelay", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.auth_validator = BearerAuthValidator(settings.api_key)
    app.state.orchestrator = ChatOrchestrator(
        store=store,
        models=settings.models,
        handshake=HandshakeClient(
            settings.site, timeout=settings.upstream_timeout, transport=site_transport
        ),
        event_stream=EventStreamClient(
            settings.site, timeout=settings.upstream_timeout, transport=site_transport
        ),
        serialize_turns=settings.serialize_turns,
    )
    app.state.relay = RelayAdapter(
        settings.relay, timeout=settings.upstream_timeout, transport=relay_transport
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    # Register routes
    authed = [Depends(require_api_key)]
    app.get("/")(root)
    app.post("/v1/conversations", dependencies=authed)(create_conversation)
    app.post("/v1/chat/completions", dependencies=authed)(chat_completions)
    app.get("/v1/models", dependencies=authed)(list_models)

    if settings.relay.enabled:
        prefix = settings.relay.prefix
        app.get(f"{prefix}/")(relay_root)
        app.post(f"{prefix}/v1/chat/completions")(relay_chat_completions)
        app.get(f"{prefix}/v1/models")(relay_list_models)
    else:
        logger.info("Relay endpoints are disabled in configuration")

    logger.info("FastAPI application created")
    return app


__all__ = ["create_app"]
