from datetime import datetime, timezone
from itertools import count

from shared.models.conversation import Conversation, ConversationMessage, Role
from shared.repositories.RepositoryInterfaces import ConversationRepository


class ConversationRepositoryMemory(ConversationRepository):
    """Process-local conversations with append-only message lists."""

    def __init__(self) -> None:
        self._conversations: dict[int, Conversation] = {}
        self._messages: dict[int, list[ConversationMessage]] = {}
        self._ids = count(1)

    async def create(self, user_id: int, title: str) -> Conversation:
        now = datetime.now(timezone.utc)
        conversation = Conversation(id=next(self._ids), user_id=user_id, title=title, created_at=now, updated_at=now)
        self._conversations[conversation.id] = conversation
        self._messages[conversation.id] = []
        return conversation.model_copy()

    async def find_by_id(self, conversation_id: int) -> Conversation | None:
        conversation = self._conversations.get(conversation_id)
        return conversation.model_copy() if conversation else None

    async def find_by_user_id(self, user_id: int) -> list[Conversation]:
        active = [c for c in self._conversations.values() if c.user_id == user_id and c.active]
        active.sort(key=lambda c: c.updated_at, reverse=True)
        return [c.model_copy() for c in active]

    async def add_message(self, conversation_id: int, role: Role, content: str) -> ConversationMessage:
        if conversation_id not in self._conversations:
            raise KeyError(conversation_id)
        now = datetime.now(timezone.utc)
        message = ConversationMessage(role=role, content=content, timestamp=now)
        self._messages[conversation_id].append(message)
        self._conversations[conversation_id] = self._conversations[conversation_id].model_copy(update={"updated_at": now})
        return message

    async def get_messages(self, conversation_id: int) -> list[ConversationMessage]:
        return list(self._messages.get(conversation_id, []))

    async def deactivate(self, conversation_id: int) -> bool:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return False
        self._conversations[conversation_id] = conversation.model_copy(update={"active": False})
        return True

    async def update_title(self, conversation_id: int, title: str) -> Conversation:
        conversation = self._conversations[conversation_id].model_copy(
            update={"title": title, "updated_at": datetime.now(timezone.utc)}
        )
        self._conversations[conversation_id] = conversation
        return conversation.model_copy()
