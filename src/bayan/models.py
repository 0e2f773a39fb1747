"""
Defines the core Pydantic data models for the application.

These models are the data contract between the proxy endpoints, the HTTP
client, the chat session and the persistence layer. Their JSON shape is the
wire format of the proxy endpoints and of the saved chat archive.
"""

import time
import uuid
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .config import TITLE_LENGTH

# --- Constants ---
USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
Role = Literal[USER_ROLE, ASSISTANT_ROLE]

DEFAULT_CHAT_TITLE = "محادثة جديدة"


class PoetryStyle(str, Enum):
    CLASSICAL = "عمودي"
    FREE = "حر"
    NABATI = "نبطي"

    @classmethod
    def resolve(cls, value: Optional[str]) -> Optional["PoetryStyle"]:
        """Maps a requested style onto the closed set, or None for the generic style."""
        try:
            return cls(value)
        except ValueError:
            return None


# --- Models ---
class ChatMessage(BaseModel):
    """Represents a single turn within a conversation."""

    role: Role
    content: str = ""
    images: Optional[List[str]] = None

    def to_payload(self) -> dict:
        """Wire shape sent to the chat endpoint; ``images`` only when present."""
        payload = {"role": self.role, "content": self.content}
        if self.images:
            payload["images"] = list(self.images)
        return payload


class SavedChat(BaseModel):
    """A persisted snapshot of a conversation."""

    id: str
    title: str
    messages: List[ChatMessage] = Field(default_factory=list)
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))

    @classmethod
    def from_messages(
        cls, messages: List[ChatMessage], chat_id: Optional[str] = None
    ) -> "SavedChat":
        now = int(time.time() * 1000)
        first_text = messages[0].content if messages else ""
        return cls(
            id=chat_id or str(uuid.uuid4()),
            title=first_text[:TITLE_LENGTH] or DEFAULT_CHAT_TITLE,
            messages=[msg.model_copy(deep=True) for msg in messages],
            timestamp=now,
        )


class Notification(BaseModel):
    """A user-facing toast raised by the UI sessions."""

    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class ChatRequest(BaseModel):
    messages: List[ChatMessage]


class PoetryRequest(BaseModel):
    topic: str
    type: Optional[str] = None

    @field_validator("topic")
    @classmethod
    def topic_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("topic must not be blank")
        return value

    @field_validator("type", mode="before")
    @classmethod
    def non_text_type_as_none(cls, value):
        return value if isinstance(value, str) else None
