"""In-memory repository implementation."""

import asyncio
from typing import Dict, List, Optional

import structlog

from ..domain.models import Chat, Message, Role
from .base import Repository

logger = structlog.get_logger()


class InMemoryRepository(Repository):
    """Process-local storage of chats and messages.

    Messages are kept in insertion order in a single dict keyed by message id,
    so messages created within the same clock tick still read back in the
    order they were written.
    """

    def __init__(self) -> None:
        self._chats: Dict[str, Chat] = {}
        self._messages: Dict[str, Message] = {}
        self._lock = asyncio.Lock()
        logger.info("repository_initialized")

    async def get_chat(self, chat_id: str) -> Optional[Chat]:
        async with self._lock:
            chat = self._chats.get(chat_id)
            if chat is None:
                logger.warning("chat_not_found", chat_id=chat_id)
            return chat

    async def list_chats(self, user_id: Optional[str] = None) -> List[Chat]:
        async with self._lock:
            chats = [
                chat for chat in self._chats.values()
                if user_id is None or chat.user_id == user_id
            ]
        # Newest insertion first among equal timestamps
        return sorted(reversed(chats), key=lambda c: c.created_at, reverse=True)

    async def create_chat(self, chat_id: str, name: str) -> Chat:
        chat = Chat(id=chat_id, name=name)
        async with self._lock:
            replaced = chat_id in self._chats
            # Re-insert so a recreated chat counts as the newest
            self._chats.pop(chat_id, None)
            self._chats[chat_id] = chat
        logger.info("chat_created", chat_id=chat_id, replaced=replaced)
        return chat

    async def delete_chat(self, chat_id: str) -> None:
        async with self._lock:
            self._chats.pop(chat_id, None)
            removed = self._drop_messages(chat_id)
        logger.info("chat_deleted", chat_id=chat_id, messages_removed=removed)

    async def create_message(
        self,
        chat_id: str,
        role: Role,
        content: str,
        model: Optional[str] = None,
    ) -> Message:
        message = Message(chat_id=chat_id, role=role, content=content, model=model)
        async with self._lock:
            self._messages[message.id] = message
        logger.info(
            "message_added",
            chat_id=chat_id,
            message_id=message.id,
            message_role=role,
        )
        return message

    async def get_messages(self, chat_id: str) -> List[Message]:
        async with self._lock:
            messages = [m for m in self._messages.values() if m.chat_id == chat_id]
        # _messages is insertion ordered; wall-clock timestamps may step backwards
        return messages

    async def delete_messages(self, chat_id: str) -> None:
        async with self._lock:
            removed = self._drop_messages(chat_id)
        logger.info("messages_deleted", chat_id=chat_id, messages_removed=removed)

    async def count_messages(self) -> int:
        async with self._lock:
            return len(self._messages)

    def _drop_messages(self, chat_id: str) -> int:
        """Remove a chat's messages. Caller holds the lock."""
        doomed = [mid for mid, m in self._messages.items() if m.chat_id == chat_id]
        for message_id in doomed:
            del self._messages[message_id]
        return len(doomed)
