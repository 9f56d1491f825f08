"""Chat channels for Acheron."""

from acheron.channels.base import (
    BaseChannel,
    Transport,
    PRESENCE_AVAILABLE,
    PRESENCE_COMPOSING,
)

__all__ = [
    "BaseChannel",
    "Transport",
    "PRESENCE_AVAILABLE",
    "PRESENCE_COMPOSING",
]
