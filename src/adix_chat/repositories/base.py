"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..domain.models import Chat, Message, Role


class Repository(ABC):
    """Abstract base class for chat storage."""

    @abstractmethod
    async def get_chat(self, chat_id: str) -> Optional[Chat]:
        """Retrieve a chat by ID."""
        pass

    @abstractmethod
    async def list_chats(self, user_id: Optional[str] = None) -> List[Chat]:
        """List chats, newest first, optionally filtered by owner."""
        pass

    @abstractmethod
    async def create_chat(self, chat_id: str, name: str) -> Chat:
        """Create a chat with a client-supplied ID."""
        pass

    @abstractmethod
    async def delete_chat(self, chat_id: str) -> None:
        """Delete a chat together with all of its messages."""
        pass

    @abstractmethod
    async def create_message(
        self,
        chat_id: str,
        role: Role,
        content: str,
        model: Optional[str] = None,
    ) -> Message:
        """Append a message to a chat."""
        pass

    @abstractmethod
    async def get_messages(self, chat_id: str) -> List[Message]:
        """Get the messages of a chat, oldest first."""
        pass

    @abstractmethod
    async def delete_messages(self, chat_id: str) -> None:
        """Delete all messages of a chat."""
        pass

    @abstractmethod
    async def count_messages(self) -> int:
        """Total number of stored messages."""
        pass
