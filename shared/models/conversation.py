"""Conversation models: user-owned threads and their append-only messages."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

Role = Literal["user", "assistant"]


class ConversationMessage(BaseModel):
    role: Role
    content: str
    timestamp: datetime


class Conversation(BaseModel):
    """A titled thread. Deactivated conversations keep their history."""

    id: int
    user_id: int
    title: str
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AskResponse(BaseModel):
    """The assistant answer returned by the RAG pipeline."""

    content: str
