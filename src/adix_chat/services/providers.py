"""Provider adapters for the supported chat-completion APIs.

Every vendor speaks its own dialect: GitHub Models, OpenAI, Cohere and Mistral
share the OpenAI ``/chat/completions`` shape but differ in auth header and
length field, Anthropic authenticates with ``x-api-key`` and answers with a
``content`` array, and Gemini puts the model and key in the URL and nests the
text under ``candidates``. Each kind gets one entry in ``ADAPTERS`` holding
its request builder and response parser.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx
import structlog

from ..domain.exceptions import (
    EmptyProviderResponse,
    ProviderCallFailed,
    ProviderTimeout,
    UnsupportedProvider,
)
from ..domain.models import ChatMessage

logger = structlog.get_logger()

MAX_OUTPUT_TOKENS = 4000
ANTHROPIC_VERSION = "2023-06-01"


class ProviderKind(str, Enum):
    GITHUB = "github"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    COHERE = "cohere"
    MISTRAL = "mistral"
    GEMINI = "gemini"


DEFAULT_ENDPOINTS: Dict[ProviderKind, str] = {
    ProviderKind.GITHUB: "https://models.inference.ai.azure.com",
    ProviderKind.OPENAI: "https://api.openai.com/v1",
    ProviderKind.ANTHROPIC: "https://api.anthropic.com",
    ProviderKind.COHERE: "https://api.cohere.ai/v1",
    ProviderKind.GEMINI: "https://generativelanguage.googleapis.com/v1beta",
    ProviderKind.MISTRAL: "https://api.mistral.ai/v1",
}


@dataclass
class ProviderRequest:
    """Fully shaped outbound HTTP request."""

    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderAdapter:
    build_request: Callable[..., ProviderRequest]
    extract_text: Callable[[Dict[str, Any]], Optional[str]]


def resolve_provider_kind(name: str) -> ProviderKind:
    try:
        return ProviderKind(name.strip().lower())
    except ValueError:
        raise UnsupportedProvider(name) from None


def _wire_messages(messages: List[ChatMessage]) -> List[Dict[str, str]]:
    return [{"role": m.role, "content": m.content} for m in messages]


def _completions_request(
    endpoint: str,
    model_id: str,
    messages: List[ChatMessage],
    auth_headers: Dict[str, str],
    length_field: str,
) -> ProviderRequest:
    headers = {"Content-Type": "application/json"}
    headers.update(auth_headers)
    return ProviderRequest(
        url=f"{endpoint.rstrip('/')}/chat/completions",
        headers=headers,
        body={
            "model": model_id,
            "messages": _wire_messages(messages),
            length_field: MAX_OUTPUT_TOKENS,
        },
    )


def build_openai_request(endpoint, api_key, model_id, messages, **_):
    return _completions_request(
        endpoint, model_id, messages,
        {"Authorization": f"Bearer {api_key}"},
        "max_completion_tokens",
    )


def build_bearer_request(endpoint, api_key, model_id, messages, **_):
    """Cohere and Mistral: bearer auth with the older ``max_tokens`` field."""
    return _completions_request(
        endpoint, model_id, messages,
        {"Authorization": f"Bearer {api_key}"},
        "max_tokens",
    )


def build_anthropic_request(endpoint, api_key, model_id, messages, **_):
    return _completions_request(
        endpoint, model_id, messages,
        {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION},
        "max_tokens",
    )


def build_gemini_request(endpoint, api_key, model_id, messages, full_history=False, **_):
    """Gemini ``generateContent``; the key travels in the query string.

    Only the final message is sent unless ``full_history`` is set, in which
    case every turn is sent with Gemini's ``user``/``model`` roles.
    """
    if full_history:
        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": m.content}],
            }
            for m in messages
        ]
    else:
        contents = [{"parts": [{"text": messages[-1].content}]}]
    return ProviderRequest(
        url=f"{endpoint.rstrip('/')}/models/{model_id}:generateContent",
        headers={"Content-Type": "application/json"},
        body={"contents": contents},
        params={"key": api_key},
    )


def _dig(payload: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None at the first missing step."""
    current = payload
    for step in path:
        try:
            current = current[step]
        except (KeyError, IndexError, TypeError):
            return None
    return current


def extract_choices_text(payload):
    return _dig(payload, "choices", 0, "message", "content")


def extract_anthropic_text(payload):
    return _dig(payload, "content", 0, "text")


def extract_gemini_text(payload):
    return _dig(payload, "candidates", 0, "content", "parts", 0, "text")


ADAPTERS: Dict[ProviderKind, ProviderAdapter] = {
    ProviderKind.GITHUB: ProviderAdapter(build_openai_request, extract_choices_text),
    ProviderKind.OPENAI: ProviderAdapter(build_openai_request, extract_choices_text),
    ProviderKind.ANTHROPIC: ProviderAdapter(build_anthropic_request, extract_anthropic_text),
    ProviderKind.COHERE: ProviderAdapter(build_bearer_request, extract_choices_text),
    ProviderKind.MISTRAL: ProviderAdapter(build_bearer_request, extract_choices_text),
    ProviderKind.GEMINI: ProviderAdapter(build_gemini_request, extract_gemini_text),
}


def build_request(
    kind: ProviderKind,
    endpoint: str,
    api_key: str,
    model_id: str,
    messages: List[ChatMessage],
    full_history: bool = False,
) -> ProviderRequest:
    return ADAPTERS[kind].build_request(
        endpoint, api_key, model_id, messages, full_history=full_history
    )


def extract_text(kind: ProviderKind, payload: Any) -> str:
    """Pull the assistant text out of a vendor response body."""
    text = ADAPTERS[kind].extract_text(payload)
    if not isinstance(text, str) or not text:
        raise EmptyProviderResponse()
    return text


class ProviderClient:
    """Sends shaped requests over a shared ``httpx.AsyncClient``. No retries."""

    def __init__(
        self,
        timeout: float = 30.0,
        full_history: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.full_history = full_history
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def send(
        self,
        kind: ProviderKind,
        endpoint: str,
        api_key: str,
        model_id: str,
        messages: List[ChatMessage],
    ) -> str:
        if not messages:
            raise ValueError("at least one message is required")

        request = build_request(
            kind, endpoint, api_key, model_id, messages,
            full_history=self.full_history,
        )
        logger.info(
            "provider_call_started",
            provider=kind.value,
            model=model_id,
            url=request.url,
            message_count=len(messages),
        )

        try:
            response = await self._client.post(
                request.url,
                headers=request.headers,
                params=request.params or None,
                json=request.body,
            )
        except httpx.TimeoutException:
            logger.error("provider_call_timeout", provider=kind.value, timeout=self.timeout)
            raise ProviderTimeout(self.timeout)

        if not response.is_success:
            logger.error(
                "provider_call_failed",
                provider=kind.value,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ProviderCallFailed(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError:
            logger.error("provider_response_not_json", provider=kind.value)
            raise EmptyProviderResponse()

        try:
            return extract_text(kind, payload)
        except EmptyProviderResponse:
            logger.error("provider_response_empty", provider=kind.value)
            raise

    async def aclose(self) -> None:
        await self._client.aclose()
