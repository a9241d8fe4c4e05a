"""Domain models for the chat gateway."""

from datetime import datetime, timezone
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class ChatMessage(CamelModel):
    """One turn of the conversation as sent by the client."""

    role: Role
    content: str


class Message(CamelModel):
    """Persisted message."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    chat_id: str
    role: Role
    content: str
    model: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class Chat(CamelModel):
    """Chat thread; owns its messages."""

    id: str
    name: str
    created_at: datetime = Field(default_factory=_utcnow)
    user_id: Optional[str] = None


class ProviderConfig(CamelModel):
    """Describes one remote AI backend as configured by the client."""

    id: str
    display_name: str
    endpoint: str
    api_key: str = Field(repr=False)
    model_id: str
    requests_per_minute: int = Field(default=50, ge=1, le=1000)


class RateLimitEntry(BaseModel):
    """Window state for a single client key."""

    client_key: str
    count: int
    window_reset_at: float


class ChatRequest(CamelModel):
    """Body of POST /api/chat."""

    chat_id: str = Field(min_length=1)
    messages: List[ChatMessage] = Field(min_length=1)
    model: Optional[str] = None
    endpoint: Optional[str] = None
    api_key: Optional[str] = Field(default=None, repr=False)
    provider: Optional[str] = None

    @field_validator("endpoint", "api_key", "provider", "model")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        # The browser client sends empty strings for unset settings fields
        if value is not None and not value.strip():
            return None
        return value


class ChatReply(CamelModel):
    """Successful chat turn."""

    message: str
    message_id: str
    model: str


class ChatCreate(CamelModel):
    """Body of POST /api/chats."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)


class RateLimitUpdate(CamelModel):
    rate_limit: int = Field(ge=1, le=1000)


class ClearDataRequest(CamelModel):
    data_type: Literal["chats", "all"]


class BroadcastRequest(CamelModel):
    message: str
    type: Optional[str] = None


class ProviderKeys(BaseModel):
    gemini: str
    mistral: str
    github: str


class SystemStats(CamelModel):
    total_chats: int
    total_messages: int
    current_rate_limit: int
    active_users: int
