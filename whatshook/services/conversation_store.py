import threading
from typing import Optional

from whatshook.logging_config import get_logger, mask_phone

logger = get_logger("conversation_store")


class ConversationStore:
    """In-process map of sender phone -> last known conversation id.

    The lock is held for a single get/set only, never across a network call.
    Two concurrent chats for the same sender race; the last write wins.
    Nothing is persisted: a restart starts every sender on a fresh lookup.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._conversations: dict[str, str] = {}

    def get(self, phone: str) -> Optional[str]:
        with self._lock:
            return self._conversations.get(phone)

    def set(self, phone: str, conversation_id: str) -> None:
        with self._lock:
            previous = self._conversations.get(phone)
            self._conversations[phone] = conversation_id
        if previous != conversation_id:
            logger.debug(f"Conversation for {mask_phone(phone)} set to {conversation_id}")

    def pop(self, phone: str) -> Optional[str]:
        with self._lock:
            return self._conversations.pop(phone, None)

    def clear(self) -> None:
        with self._lock:
            self._conversations.clear()

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._conversations)

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)
