"""
FastAPI Application Module

The HTTP surface of the chat gateway. A browser client creates chats, sends
chat turns that are forwarded to a third-party LLM API, and reads back the
persisted history.

Key Features:
- Per-client rate limiting of AI calls
- Provider adapters for GitHub Models, OpenAI, Anthropic, Cohere, Mistral and Gemini
- Structured logging and Prometheus metrics
- CORS and OpenTelemetry support

Every gateway error is rendered as ``{"error": ..., "details": ...}`` with
the status it carries; nothing raised in a handler takes the process down.
"""

import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import Counter, generate_latest, CollectorRegistry
from structlog import get_logger

from ..config import Settings
from ..domain.exceptions import ChatGatewayError, InvalidRequest
from ..domain.models import Chat, ChatCreate, ChatReply, Message, ProviderKeys
from ..repositories.base import Repository
from ..repositories.memory import InMemoryRepository
from ..services.gateway import ChatGateway
from ..services.providers import ProviderClient
from . import admin
from .dependencies import get_gateway, get_repository, get_settings
from .rate_limiter import RateLimiter, client_key

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

# Core operational metrics for monitoring
REQUESTS = Counter("requests_total", "Total requests", registry=CUSTOM_REGISTRY)
ERRORS = Counter("errors_total", "Total error responses", registry=CUSTOM_REGISTRY)
PROCESSING_TIME = Counter("processing_time_seconds", "Total processing time", registry=CUSTOM_REGISTRY)

logger = get_logger()


def create_app(
    settings: Optional[Settings] = None,
    *,
    repository: Optional[Repository] = None,
    rate_limiter: Optional[RateLimiter] = None,
    provider_client: Optional[ProviderClient] = None,
) -> FastAPI:
    """Build an app with its own storage, limiter and provider client."""
    settings = settings or Settings()
    settings.warn_missing()

    repository = repository or InMemoryRepository()
    rate_limiter = rate_limiter or RateLimiter(
        limit=settings.default_rate_limit,
        window_seconds=settings.rate_window_seconds,
    )
    provider_client = provider_client or ProviderClient(
        timeout=settings.provider_timeout_seconds,
        full_history=settings.gemini_full_history,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handles app startup/shutdown and resource management"""
        await rate_limiter.start()
        logger.info("application_startup_complete")

        yield

        await rate_limiter.stop()
        await provider_client.aclose()
        logger.info("application_shutdown_complete")

    app = FastAPI(
        title="Adix Chat Gateway",
        description="Rate-limited chat API forwarding turns to third-party LLM providers",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.repository = repository
    app.state.rate_limiter = rate_limiter
    app.state.gateway = ChatGateway(repository, rate_limiter, provider_client, settings)

    # Enable cross-origin requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Set up request tracing
    FastAPIInstrumentor.instrument_app(app)

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Logs and counts every request"""
        logger.info("request_started", method=request.method, path=request.url.path)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", path=request.url.path, error=str(e))
            ERRORS.inc()
            raise
        REQUESTS.inc()
        PROCESSING_TIME.inc(time.perf_counter() - started)
        if response.status_code >= 400:
            ERRORS.inc()
        return response

    @app.exception_handler(ChatGatewayError)
    async def gateway_error_handler(request: Request, exc: ChatGatewayError):
        logger.warning(
            "request_rejected",
            path=request.url.path,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {k: v for k, v in err.items() if k not in ("input", "ctx", "url")}
            for err in exc.errors()
        ]
        error = InvalidRequest("Invalid request format", details=errors)
        return JSONResponse(status_code=error.status_code, content=error.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    app.include_router(admin.router)

    @app.post("/api/chat", response_model=ChatReply)
    async def chat(
        request: Request,
        gateway: ChatGateway = Depends(get_gateway),
    ) -> ChatReply:
        """
        Runs one chat turn: rate check, validation, persistence of the user
        message, provider call, persistence of the assistant reply.
        """
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        try:
            return await gateway.handle_turn(client_key(request), payload)
        except ChatGatewayError:
            raise
        except Exception as e:
            logger.error("chat_error", error=str(e))
            raise ChatGatewayError("Failed to process chat request", details=str(e))

    @app.get("/api/chats", response_model=List[Chat])
    async def list_chats(repository: Repository = Depends(get_repository)) -> List[Chat]:
        """Lists chats, newest first"""
        try:
            return await repository.list_chats()
        except Exception as e:
            logger.error("list_chats_error", error=str(e))
            raise ChatGatewayError("Failed to retrieve chats")

    @app.post("/api/chats", response_model=Chat)
    async def create_chat(
        chat: ChatCreate,
        repository: Repository = Depends(get_repository),
    ) -> Chat:
        """Creates a chat with a client-chosen id"""
        try:
            return await repository.create_chat(chat.id, chat.name)
        except Exception as e:
            logger.error("create_chat_error", chat_id=chat.id, error=str(e))
            raise ChatGatewayError("Failed to create chat")

    @app.delete("/api/chats/{chat_id}")
    async def delete_chat(
        chat_id: str,
        repository: Repository = Depends(get_repository),
    ) -> dict:
        """Deletes a chat and all of its messages"""
        try:
            await repository.delete_chat(chat_id)
        except Exception as e:
            logger.error("delete_chat_error", chat_id=chat_id, error=str(e))
            raise ChatGatewayError("Failed to delete chat")
        return {"success": True}

    @app.get("/api/chats/{chat_id}/messages", response_model=List[Message])
    async def get_messages(
        chat_id: str,
        repository: Repository = Depends(get_repository),
    ) -> List[Message]:
        """Gets the message history of a chat, oldest first"""
        try:
            return await repository.get_messages(chat_id)
        except Exception as e:
            logger.error("get_messages_error", chat_id=chat_id, error=str(e))
            raise ChatGatewayError("Failed to retrieve messages")

    @app.get("/api/config/keys", response_model=ProviderKeys)
    async def provider_keys(settings: Settings = Depends(get_settings)) -> ProviderKeys:
        """Hands the configured provider credentials to the browser client"""
        if not settings.expose_provider_keys:
            raise HTTPException(status_code=404, detail="Not found")
        return ProviderKeys(
            gemini=settings.gemini_api_key,
            mistral=settings.mistral_api_key,
            github=settings.github_token,
        )

    @app.get("/metrics")
    async def metrics():
        """Provides Prometheus metrics for system monitoring"""
        return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
