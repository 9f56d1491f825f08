"""Message bus between channels and the dispatcher."""

from acheron.bus.events import (
    GroupParticipantsEvent,
    InboundEvent,
    InboundMessage,
)
from acheron.bus.queue import MessageBus

__all__ = [
    "GroupParticipantsEvent",
    "InboundEvent",
    "InboundMessage",
    "MessageBus",
]
