"""
Pytest configuration and shared fixtures for Acheron tests.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from acheron.bus.events import InboundMessage
from acheron.config.loader import ConfigSource
from acheron.errors import TransportSendFailure
from acheron.memory.store import MemoryStore

OWNER = "1111@s.whatsapp.net"
ALICE = "2222@s.whatsapp.net"
BOB = "3333@s.whatsapp.net"
GROUP = "123-456@g.us"


class FakeClock:
    """Settable clock for store and maintenance tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeTransport:
    """Transport that records every call in order."""

    def __init__(self, fail_send: bool = False, fail_presence: bool = False):
        self.calls: list[tuple] = []
        self.fail_send = fail_send
        self.fail_presence = fail_presence

    async def send(self, chat_id, text, reply_to=None):
        self.calls.append(("send", chat_id, text, reply_to))
        if self.fail_send:
            raise TransportSendFailure("bridge down")

    async def set_presence(self, chat_id, state):
        self.calls.append(("presence", chat_id, state))
        if self.fail_presence:
            raise RuntimeError("presence not supported")

    @property
    def sent(self) -> list[str]:
        return [call[2] for call in self.calls if call[0] == "send"]


@pytest.fixture
def workspace(tmp_path):
    """Create a temporary workspace directory."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def data_dir(workspace):
    """Create a data directory in the workspace."""
    data = workspace / "data"
    data.mkdir()
    return data


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def write_config(workspace):
    """Write a camelCase config file and return its path."""
    path = workspace / "config.json"

    def _write(**values):
        data = {"owner": OWNER, "dataDir": str(workspace / "data")}
        data.update(values)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config_source(write_config):
    return ConfigSource(write_config())


@pytest_asyncio.fixture
async def store(data_dir, clock):
    """An initialized store on a fresh database."""
    store = MemoryStore(data_dir, clock=clock)
    await store.init()
    yield store
    await store.close()


@pytest.fixture
def transport():
    return FakeTransport()


def make_message(
    text: str | None = None,
    chat_id: str = ALICE,
    participant_id: str | None = None,
    display_name: str | None = "Alice",
    from_me: bool = False,
    payload: dict | None = None,
) -> InboundMessage:
    """Build an inbound message the way the WhatsApp channel would."""
    return InboundMessage(
        chat_id=chat_id,
        payload=payload if payload is not None else {"conversation": text},
        participant_id=participant_id,
        display_name=display_name,
        is_group=chat_id.endswith("@g.us"),
        from_me=from_me,
        channel="test",
    )
