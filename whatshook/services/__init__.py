from whatshook.services.conversation_store import ConversationStore
from whatshook.services.phone_service import (
    derive_session_id,
    format_for_whatsapp,
    normalize,
    resolve_store,
)
from whatshook.services.relay_service import RelayService
from whatshook.services.result import Result
