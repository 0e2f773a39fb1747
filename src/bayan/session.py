"""
UI state for the chat and poetry pages, independent of any rendering layer.

A session is rebuilt from the browser-held state on every callback, so each
send works on its own copy of the conversation captured at submission time.
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import unquote

from .config import MAX_IMAGE_BYTES
from .errors import BayanError
from .models import (
    ASSISTANT_ROLE,
    USER_ROLE,
    ChatMessage,
    Notification,
    PoetryStyle,
    SavedChat,
)

logger = logging.getLogger(__name__)

ERROR_TITLE = "خطأ"
DEFAULT_IMAGE_PROMPT = "ما هذا في الصورة؟"
IMAGE_TOO_LARGE = "حجم الصورة يجب أن يكون أقل من 5 ميجابايت"
SEND_FAILED = "فشل في إرسال الرسالة"


def data_uri_size(data_uri: str) -> int:
    """Size in bytes of the payload embedded in a data URI."""
    header, _, data = data_uri.partition(",")
    if header.endswith(";base64"):
        padding = len(data) - len(data.rstrip("="))
        return len(data) * 3 // 4 - padding
    return len(unquote(data).encode("utf-8"))


class ChatSession:
    """Conversation state, image attachments and the saved chat archive."""

    def __init__(
        self,
        client,
        store,
        messages: Optional[List[ChatMessage]] = None,
        chat_id: Optional[str] = None,
        pending_images: Optional[List[str]] = None,
    ):
        self.client = client
        self.store = store
        self.messages: List[ChatMessage] = list(messages or [])
        self.current_chat_id = chat_id
        self.pending_images: List[str] = list(pending_images or [])
        self.is_loading = False
        self.notifications: List[Notification] = []
        self.archive: List[SavedChat] = store.load_all()
        self._observers: List[Callable[[List[ChatMessage]], None]] = []

    @classmethod
    def from_snapshot(
        cls, client, store, snapshot: Optional[Dict[str, Any]], pending_images=None
    ) -> "ChatSession":
        snapshot = snapshot or {}
        return cls(
            client,
            store,
            messages=[ChatMessage.model_validate(m) for m in snapshot.get("messages", [])],
            chat_id=snapshot.get("chat_id"),
            pending_images=pending_images,
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "chat_id": self.current_chat_id,
            "messages": [msg.model_dump() for msg in self.messages],
        }

    def subscribe(self, observer: Callable[[List[ChatMessage]], None]) -> None:
        """Registers ``observer`` to receive the message list on every change."""
        self._observers.append(observer)

    def _publish(self) -> None:
        for observer in self._observers:
            observer(list(self.messages))

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        self.notifications.append(
            Notification(title=title, description=description, variant=variant)
        )

    def attach_image(self, data_uri: str) -> bool:
        if data_uri_size(data_uri) > MAX_IMAGE_BYTES:
            self.notify(ERROR_TITLE, IMAGE_TOO_LARGE, "destructive")
            return False
        self.pending_images.append(data_uri)
        return True

    def remove_image(self, index: int) -> None:
        if 0 <= index < len(self.pending_images):
            del self.pending_images[index]

    def send(self, text: Optional[str]) -> Optional[str]:
        """Runs one exchange and returns the assistant's reply, or None.

        The user message is shown immediately and the assistant message grows
        with every streamed delta. If the exchange fails, the conversation
        keeps the user message but drops the partial reply. The chat is saved
        either way.
        """
        text = (text or "").strip()
        if (not text and not self.pending_images) or self.is_loading:
            return None

        user_message = ChatMessage(
            role=USER_ROLE,
            content=text or DEFAULT_IMAGE_PROMPT,
            images=list(self.pending_images) or None,
        )
        request_messages = self.messages + [user_message]
        self.messages = list(request_messages)
        self.pending_images = []
        self.is_loading = True
        self._publish()

        reply = None
        try:
            assistant = ChatMessage(role=ASSISTANT_ROLE, content="")
            self.messages = request_messages + [assistant]
            self._publish()

            def on_text(full_text: str) -> None:
                assistant.content = full_text
                self._publish()

            reply = self.client.stream_chat(request_messages, on_text=on_text)
        except BayanError as exc:
            logger.warning("Chat exchange failed: %s", exc.message)
            self.notify(ERROR_TITLE, exc.message or SEND_FAILED, "destructive")
            self.messages = list(request_messages)
        finally:
            self.is_loading = False
            self.save_current_chat()
            self._publish()
        return reply

    def save_current_chat(self) -> Optional[SavedChat]:
        if not self.messages:
            return None
        record = SavedChat.from_messages(self.messages, self.current_chat_id)
        self.store.save_one(record)
        self.current_chat_id = record.id
        self.archive = self.store.load_all()
        return record

    def load_chat(self, chat_id: str) -> bool:
        record = next((rec for rec in self.archive if rec.id == chat_id), None)
        if record is None:
            return False
        self.messages = [msg.model_copy(deep=True) for msg in record.messages]
        self.current_chat_id = record.id
        self._publish()
        return True

    def delete_chat(self, chat_id: str) -> None:
        self.store.delete_one(chat_id)
        self.archive = self.store.load_all()
        if self.current_chat_id == chat_id:
            self.new_chat()

    def new_chat(self) -> None:
        self.messages = []
        self.current_chat_id = None
        self._publish()


class PoetrySession:
    """State of the single request/response poetry form."""

    def __init__(self, client):
        self.client = client
        self.poetry = ""
        self.is_loading = False
        self.notifications: List[Notification] = []

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        self.notifications.append(
            Notification(title=title, description=description, variant=variant)
        )

    def generate(
        self, topic: Optional[str], style: Optional[str] = PoetryStyle.CLASSICAL.value
    ) -> Optional[str]:
        if not topic or not topic.strip():
            self.notify("تنبيه", "الرجاء إدخال موضوع الشعر", "destructive")
            return None

        self.is_loading = True
        self.poetry = ""
        try:
            self.poetry = self.client.generate_poetry(topic, style)
            self.notify("تم بنجاح", "تم إنشاء القصيدة بنجاح")
        except BayanError as exc:
            logger.warning("Poetry generation failed: %s", exc.message)
            self.notify(ERROR_TITLE, exc.message or "فشل في إنشاء الشعر", "destructive")
        finally:
            self.is_loading = False
        return self.poetry or None
