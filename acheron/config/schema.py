"""Configuration schema using Pydantic."""

from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Moods understood by the offline reply generator
MOODS: tuple[str, ...] = ("calm", "cold", "cryptic")


class WhatsAppConfig(BaseModel):
    """WhatsApp bridge channel configuration."""
    enabled: bool = False
    bridge_url: str = "ws://localhost:3001"
    reconnect_delay_seconds: float = 3.0
    allow_from: list[str] = Field(default_factory=list)  # Allowed chat ids (empty = all)


class ChannelsConfig(BaseModel):
    """Configuration for chat channels."""
    whatsapp: WhatsAppConfig = Field(default_factory=WhatsAppConfig)


class MaintenanceConfig(BaseModel):
    """Periodic store maintenance."""
    enabled: bool = True
    interval_hours: float = 12.0


class LoggingConfig(BaseModel):
    """Log sinks."""
    level: str = "INFO"
    log_dir: str = "~/.acheron/logs"
    message_log: bool = True  # One line per inbound text in messages.log
    rotation: str = "10 MB"


class DispatchConfig(BaseModel):
    """Inbound event processing limits."""
    max_queue_size: int = 100
    processing_timeout_seconds: float = 120.0


class Config(BaseSettings):
    """
    Root configuration for Acheron.

    The top-level bot fields keep the layout of the classic ``config.json``
    (``prefix``, ``owner``, ``chatMode``, ``typingDelayMs``, ``mood``,
    ``memoryPruneDays``) so an existing file loads unchanged.
    """
    prefix: str = "!"
    owner: str = "1234567890@s.whatsapp.net"
    chat_mode: bool = False
    typing_delay_ms: int = 800
    mood: str = "calm"  # Unknown moods fall back to calm at reply time
    memory_prune_days: int = 30
    data_dir: str = "~/.acheron/data"

    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    maintenance: MaintenanceConfig = Field(default_factory=MaintenanceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)

    model_config = SettingsConfigDict(
        env_prefix="ACHERON_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @property
    def data_path(self) -> Path:
        """Get expanded data directory."""
        return Path(self.data_dir).expanduser()

    @property
    def log_path(self) -> Path:
        """Get expanded log directory."""
        return Path(self.logging.log_dir).expanduser()

    @property
    def typing_delay_seconds(self) -> float:
        return max(self.typing_delay_ms, 0) / 1000

    def is_owner(self, identity: str | None) -> bool:
        """Check whether an acting identity is the configured owner."""
        return bool(identity) and identity == self.owner
