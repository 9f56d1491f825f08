"""
Effective configuration for a single inbound event.

The command prefix resolves in this order, first match wins:

1. override stored for the chat
2. override stored for the participant
3. global override
4. ``prefix`` from the config file
5. ``!``

Mood, chat mode and typing delay come from the config file only.
"""

from dataclasses import dataclass

from loguru import logger

from acheron.config.loader import ConfigSource
from acheron.config.schema import Config
from acheron.errors import StoreUnavailable
from acheron.memory.store import GLOBAL_SCOPE, MemoryStore

DEFAULT_PREFIX = "!"


@dataclass(frozen=True)
class EffectiveConfig:
    """Configuration snapshot resolved for one event."""
    prefix: str
    mood: str = "calm"
    chat_mode: bool = False
    typing_delay_ms: int = 800
    owner: str = ""
    config: Config | None = None

    @property
    def typing_delay_seconds(self) -> float:
        return max(self.typing_delay_ms, 0) / 1000

    def is_owner(self, identity: str | None) -> bool:
        return bool(identity) and identity == self.owner


async def resolve_prefix(
    store: MemoryStore | None,
    config: Config | None,
    chat_id: str,
    participant_id: str | None = None,
) -> str:
    """
    Resolve the command prefix for a chat.

    Args:
        store: Store holding prefix overrides, or None to skip overrides.
        config: Static configuration, or None when it could not be loaded.
        chat_id: Chat the event arrived in.
        participant_id: Acting participant, if different from the chat.

    Returns:
        The effective prefix.
    """
    scopes = [chat_id]
    if participant_id and participant_id != chat_id:
        scopes.append(participant_id)
    scopes.append(GLOBAL_SCOPE)

    if store is not None:
        for scope in scopes:
            try:
                prefix = await store.get_prefix_for(scope)
            except StoreUnavailable as e:
                logger.warning(f"Prefix overrides unavailable: {e}")
                break
            if prefix:
                return prefix

    if config is not None and config.prefix:
        return config.prefix
    return DEFAULT_PREFIX


async def resolve(
    store: MemoryStore | None,
    source: ConfigSource | None,
    chat_id: str,
    participant_id: str | None = None,
) -> EffectiveConfig:
    """Load the config fresh and resolve the effective settings for a chat."""
    config = source.load() if source is not None else None
    prefix = await resolve_prefix(store, config, chat_id, participant_id)

    if config is None:
        return EffectiveConfig(prefix=prefix)

    return EffectiveConfig(
        prefix=prefix,
        mood=config.mood or "calm",
        chat_mode=config.chat_mode,
        typing_delay_ms=config.typing_delay_ms,
        owner=config.owner,
        config=config,
    )
