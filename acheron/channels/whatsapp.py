"""
WhatsApp channel for Acheron.

Talks to a WhatsApp bridge process over a WebSocket. The bridge owns the
WhatsApp session (pairing, credentials, protocol); this side only maps its
JSON frames to bus events and sends replies back.

Frames from the bridge:
- ``{"type": "message", "message": {key, pushName, message}}``
- ``{"type": "group-participants", "id", "participants", "action"}``
- ``{"type": "status", "status": "open" | "connecting" | "close" | "logged_out"}``
- ``{"type": "qr", "qr": "..."}``

Frames to the bridge:
- ``{"type": "send", "to", "text", "quoted"}``
- ``{"type": "presence", "to", "state"}``
"""

import asyncio
import json
from typing import Any

import aiohttp
from loguru import logger

from acheron.bus.events import InboundMessage
from acheron.bus.queue import MessageBus
from acheron.channels.base import BaseChannel
from acheron.config.schema import WhatsAppConfig
from acheron.errors import TransportDeauthorized, TransportSendFailure


GROUP_SUFFIX = "@g.us"


def parse_wa_message(raw: dict[str, Any]) -> InboundMessage | None:
    """
    Build an InboundMessage from a bridge message object.

    Returns None when the object is malformed or has no chat id or no
    message body.
    """
    if not isinstance(raw, dict):
        return None

    key = raw.get("key") or {}
    if not isinstance(key, dict):
        return None

    chat_id = key.get("remoteJid") or key.get("participant")
    payload = raw.get("message")
    if not isinstance(chat_id, str) or not chat_id or not isinstance(payload, dict):
        return None

    return InboundMessage(
        chat_id=chat_id,
        payload=payload,
        participant_id=key.get("participant") or None,
        display_name=raw.get("pushName") or None,
        is_group=chat_id.endswith(GROUP_SUFFIX),
        from_me=bool(key.get("fromMe")),
        message_id=key.get("id"),
        channel=WhatsAppChannel.name,
        metadata={"key": key},
    )


def is_logged_out(reason: Any) -> bool:
    """Check whether a close reason means the session was revoked."""
    if isinstance(reason, dict):
        status = reason.get("statusCode") or (reason.get("output") or {}).get("statusCode")
        if status == 401:
            return True
    return "logged out" in str(reason).lower()


class WhatsAppChannel(BaseChannel):
    """
    WhatsApp channel via the bridge WebSocket.

    Transient disconnects reconnect after a fixed delay. A logged-out
    session stops the channel and raises TransportDeauthorized.
    """

    name = "whatsapp"

    def __init__(self, config: WhatsAppConfig, bus: MessageBus):
        super().__init__(config, bus)
        self.bridge_url = config.bridge_url
        self.reconnect_delay = config.reconnect_delay_seconds

        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._connected = False
        self.deauthorized = False

    @property
    def connected(self) -> bool:
        return self._connected and self._ws is not None and not self._ws.closed

    async def start(self) -> None:
        """Connect to the bridge and keep reconnecting until stopped."""
        if self._running:
            return

        self._running = True
        logger.info(f"Connecting to WhatsApp bridge at {self.bridge_url}")

        while self._running:
            try:
                await self._connect()
                await self._run_loop()
            except asyncio.CancelledError:
                break
            except TransportDeauthorized:
                self.deauthorized = True
                self._running = False
                logger.error("Logged out. Remove the bridge session and re-scan the QR code.")
                await self._disconnect()
                raise
            except Exception as e:
                logger.error(f"WhatsApp bridge connection error: {e}")

            self._connected = False
            if self._running:
                logger.warning(f"Attempting reconnect in {self.reconnect_delay:g}s...")
                await asyncio.sleep(self.reconnect_delay)

        await self._disconnect()
        logger.info("WhatsApp channel stopped")

    async def stop(self) -> None:
        self._running = False
        await self._disconnect()

    async def _connect(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._ws = await self._session.ws_connect(self.bridge_url, heartbeat=30.0)
        self._connected = True
        logger.info("Connected to WhatsApp bridge")

    async def _disconnect(self) -> None:
        self._connected = False
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _run_loop(self) -> None:
        if not self._ws:
            return

        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    data = json.loads(msg.data)
                except json.JSONDecodeError:
                    logger.warning("Bridge sent invalid JSON")
                    continue
                if not isinstance(data, dict):
                    logger.warning(f"Bridge sent a non-object frame: {type(data).__name__}")
                    continue

                try:
                    await self._handle_frame(data)
                except TransportDeauthorized:
                    raise
                except Exception as e:
                    logger.error(f"Error handling bridge frame: {e}")

            elif msg.type == aiohttp.WSMsgType.CLOSED:
                logger.warning("Bridge closed the connection")
                break

            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error(f"Bridge WebSocket error: {self._ws.exception()}")
                break

    async def _handle_frame(self, data: dict[str, Any]) -> None:
        """Handle one frame from the bridge."""
        frame_type = data.get("type")

        if frame_type == "message":
            message = parse_wa_message(data.get("message") or {})
            if message is not None:
                self._handle_message(message)

        elif frame_type == "group-participants":
            group_id = data.get("id") or ""
            participants = [p for p in data.get("participants") or [] if p]
            if group_id and participants:
                self._handle_group_update(group_id, participants, data.get("action") or "")

        elif frame_type == "status":
            await self._handle_status(data)

        elif frame_type == "qr":
            logger.info("QR generated. Scan it in the bridge terminal with WhatsApp.")

        elif frame_type == "error":
            logger.error(f"Bridge error: {data.get('error')}")

    async def _handle_status(self, data: dict[str, Any]) -> None:
        status = data.get("status")
        reason = data.get("reason")

        if status == "open":
            logger.info("Connected to WhatsApp.")
        elif status == "connecting":
            logger.info("Connecting to WhatsApp...")
        elif status == "logged_out" or (status == "close" and is_logged_out(reason)):
            raise TransportDeauthorized(str(reason or "logged out"))
        elif status == "close":
            logger.warning(f"WhatsApp connection closed. Reason: {reason or 'unknown'}")

    async def _send_frame(self, frame: dict[str, Any]) -> None:
        if not self.connected:
            raise TransportSendFailure("WhatsApp bridge not connected")
        try:
            await self._ws.send_json(frame)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            raise TransportSendFailure(str(e)) from e

    async def send(
        self,
        chat_id: str,
        text: str,
        reply_to: InboundMessage | None = None,
    ) -> None:
        frame: dict[str, Any] = {"type": "send", "to": chat_id, "text": text}
        if reply_to is not None and reply_to.metadata.get("key"):
            frame["quoted"] = {"key": reply_to.metadata["key"]}
        await self._send_frame(frame)

    async def set_presence(self, chat_id: str, state: str) -> None:
        await self._send_frame({"type": "presence", "to": chat_id, "state": state})
