"""Chat turn orchestration: rate check, validation, persistence, provider call."""

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from ..config import Settings
from ..domain.exceptions import (
    ChatGatewayError,
    ChatNotFound,
    InvalidRequest,
    RateLimited,
)
from ..domain.models import ChatReply, ChatRequest, ProviderConfig
from ..api.rate_limiter import RateLimiter
from ..repositories.base import Repository
from .providers import DEFAULT_ENDPOINTS, ProviderClient, resolve_provider_kind

logger = structlog.get_logger()

QUOTA_PHRASES = ("quota", "rate limit")
AUTH_PHRASES = ("unauthorized", "invalid")


def classify_provider_error(error: Exception) -> ChatGatewayError:
    """Map an unexpected outbound failure to a gateway error by its message."""
    text = str(error).lower()
    if any(phrase in text for phrase in QUOTA_PHRASES):
        return RateLimited(
            "API rate limit exceeded. Please wait before sending another message."
        )
    if any(phrase in text for phrase in AUTH_PHRASES):
        return ChatGatewayError(
            "Invalid API key. Please check your API key permissions.",
            status_code=401,
        )
    return ChatGatewayError("Failed to process chat request", details=str(error))


class ChatGateway:
    """Runs one chat turn against the configured collaborators."""

    def __init__(
        self,
        repository: Repository,
        rate_limiter: RateLimiter,
        provider_client: ProviderClient,
        settings: Settings,
    ) -> None:
        self.repository = repository
        self.rate_limiter = rate_limiter
        self.provider_client = provider_client
        self.settings = settings

    def resolve_provider(self, request: ChatRequest) -> ProviderConfig:
        """Fill unset provider fields from configuration."""
        kind = resolve_provider_kind(request.provider or self.settings.default_provider)
        model_id = request.model or self.settings.default_model
        return ProviderConfig(
            id=kind.value,
            display_name=kind.value,
            endpoint=request.endpoint or DEFAULT_ENDPOINTS[kind],
            api_key=request.api_key or self.settings.api_key_for(kind.value),
            model_id=model_id,
        )

    async def handle_turn(self, client_key: str, payload: Any) -> ChatReply:
        if not await self.rate_limiter.check_rate_limit(client_key):
            raise RateLimited(
                "Rate limit exceeded. Please wait before sending another message."
            )

        try:
            request = ChatRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidRequest(
                "Invalid request format",
                details=e.errors(include_url=False, include_context=False, include_input=False),
            )
        provider = self.resolve_provider(request)

        chat = await self.repository.get_chat(request.chat_id)
        if chat is None:
            raise ChatNotFound(request.chat_id)

        last = request.messages[-1]
        if last.role == "user":
            await self.repository.create_message(
                request.chat_id, "user", last.content, model=None
            )

        try:
            text = await self.provider_client.send(
                resolve_provider_kind(provider.id),
                provider.endpoint,
                provider.api_key,
                provider.model_id,
                request.messages,
            )
        except httpx.HTTPError as e:
            logger.error(
                "provider_transport_error",
                chat_id=request.chat_id,
                provider=provider.id,
                error=str(e),
            )
            raise classify_provider_error(e) from e

        saved = await self.repository.create_message(
            request.chat_id, "assistant", text, model=provider.model_id
        )
        logger.info(
            "chat_turn_completed",
            chat_id=request.chat_id,
            provider=provider.id,
            model=provider.model_id,
            response_length=len(text),
        )
        return ChatReply(message=text, message_id=saved.id, model=provider.model_id)
