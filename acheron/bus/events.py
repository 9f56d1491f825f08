"""Event types passed between channels and the dispatcher."""

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass
class InboundMessage:
    """
    A chat message delivered by a channel.

    ``payload`` is the transport's message body, e.g.
    ``{"conversation": "hi"}`` or ``{"imageMessage": {"caption": "..."}}``.
    Text extraction happens in the dispatcher.
    """
    chat_id: str
    payload: dict[str, Any]
    participant_id: str | None = None  # Sender inside a group
    display_name: str | None = None
    is_group: bool = False
    from_me: bool = False
    message_id: str | None = None
    channel: str = ""
    timestamp: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def actor_id(self) -> str:
        """Identity the message is attributed to."""
        if self.is_group and self.participant_id:
            return self.participant_id
        return self.participant_id or self.chat_id


@dataclass
class GroupParticipantsEvent:
    """Members joined, left or changed role in a group."""
    group_id: str
    participant_ids: list[str] = field(default_factory=list)
    action: str = ""  # add, remove, promote, demote
    channel: str = ""
    timestamp: float = field(default_factory=time.time)


InboundEvent = InboundMessage | GroupParticipantsEvent
