from whatshook.schemas.events import (
    EventGridEvent,
    InboundMessage,
    MediaReference,
    SubscriptionValidationData,
    SubscriptionValidationResponse,
    parse_advanced_message,
)

__all__ = [
    "EventGridEvent",
    "InboundMessage",
    "MediaReference",
    "SubscriptionValidationData",
    "SubscriptionValidationResponse",
    "parse_advanced_message",
]
