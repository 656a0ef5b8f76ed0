"""
Messaging transport for the WhatsApp bot.

The WhatsApp protocol itself lives in a separate bridge process. The
bot talks to it over a small JSON REST API, and the bridge posts
connection and message events back to the dashboard's /webhook route.

Bridge API (all POST, JSON bodies, JSON replies with an "ok" flag):
    /session/start  {"auth_dir", "webhook_url"}   open the socket
    /session/pair   {"phone"} -> {"code"}         request a pairing code
    /session/stop   {}                            close the socket
    /messages       {"to", "text"}                send a text message
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0


@dataclass
class ConnectionOpen:
    """The transport finished connecting."""


@dataclass
class ConnectionClosed:
    """The transport connection closed."""

    reason_code: Optional[int] = None


@dataclass
class IncomingMessage:
    """A text message received from a chat."""

    sender: str
    text: str
    timestamp: Optional[int] = None
    display_name: Optional[str] = None

    @property
    def sent_at_ms(self) -> Optional[int]:
        """Send time in milliseconds (WhatsApp reports seconds)."""
        if self.timestamp is None:
            return None
        return self.timestamp * 1000


TransportEvent = Union[ConnectionOpen, ConnectionClosed, IncomingMessage]


class TransportError(RuntimeError):
    """Raised when the bridge rejects a request."""


class Transport(ABC):
    """Operations the bot session needs from a messaging transport."""

    @abstractmethod
    async def connect(self, auth_dir: str) -> None:
        """Open (or reopen) the connection using stored credentials."""

    @abstractmethod
    async def request_pairing_code(self, phone_number: str) -> str:
        """Request a pairing code for a phone number; raises on failure."""

    @abstractmethod
    async def send(self, to: str, text: str) -> bool:
        """Send a text message. Returns False if it could not be sent."""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection and release resources."""


class BridgeTransport(Transport):
    """WhatsApp bridge client with connection reuse."""

    def __init__(self, base_url: str, webhook_url: str):
        self.base_url = base_url.rstrip("/")
        self.webhook_url = webhook_url
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create a reusable HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT,
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
        return self._client

    async def _call(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.post(f"{self.base_url}{path}", json=payload)
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Bridge call {path} returned invalid JSON: {e}")
            raise TransportError(f"Bridge returned invalid JSON on {path}") from e
        if not isinstance(data, dict):
            raise TransportError(f"Bridge returned unexpected body on {path}: {data!r}")
        if not data.get("ok"):
            logger.error(f"Bridge call {path} failed: {data}")
            raise TransportError(f"Bridge error on {path}: {data.get('error', data)}")
        return data

    async def connect(self, auth_dir: str) -> None:
        logger.info(f"Starting bridge session (auth dir: {auth_dir})")
        await self._call(
            "/session/start",
            {"auth_dir": auth_dir, "webhook_url": self.webhook_url},
        )

    async def request_pairing_code(self, phone_number: str) -> str:
        data = await self._call("/session/pair", {"phone": phone_number})
        code = data.get("code")
        if not code:
            raise TransportError("Bridge returned no pairing code")
        return code

    async def send(self, to: str, text: str) -> bool:
        try:
            await self._call("/messages", {"to": to, "text": text})
            return True
        except (httpx.HTTPError, TransportError) as e:
            logger.error(f"Error sending message to {to}: {type(e).__name__}: {e}")
            return False

    async def close(self) -> None:
        """Stop the bridge session and close the HTTP client."""
        if self._client is None:
            return
        try:
            await self._call("/session/stop", {})
        except (httpx.HTTPError, TransportError) as e:
            logger.warning(f"Could not stop bridge session: {e}")
        finally:
            await self._client.aclose()
            self._client = None


def _message_text(message: Dict[str, Any]) -> str:
    extended = message.get("extendedTextMessage") or {}
    return message.get("conversation") or extended.get("text") or ""


def _disconnect_code(data: Dict[str, Any]) -> Optional[int]:
    if data.get("statusCode") is not None:
        return int(data["statusCode"])
    last = data.get("lastDisconnect") or {}
    output = (last.get("error") or {}).get("output") or {}
    code = output.get("statusCode")
    return int(code) if code is not None else None


def parse_event(payload: Dict[str, Any]) -> List[TransportEvent]:
    """
    Convert a bridge webhook payload into transport events.

    Unknown event kinds, messages sent by the bot itself and message
    stubs without content produce no events. Non-text content (images,
    stickers) comes through with an empty text.
    """
    kind = payload.get("event")
    data = payload.get("data") or {}

    if kind == "connection.update":
        connection = data.get("connection")
        if connection == "open":
            return [ConnectionOpen()]
        if connection == "close":
            return [ConnectionClosed(reason_code=_disconnect_code(data))]
        return []

    if kind == "messages.upsert":
        events: List[TransportEvent] = []
        for msg in data.get("messages", []):
            key = msg.get("key") or {}
            if key.get("fromMe") or not msg.get("message"):
                continue
            timestamp = msg.get("messageTimestamp")
            events.append(
                IncomingMessage(
                    sender=key.get("remoteJid", ""),
                    text=_message_text(msg["message"]),
                    timestamp=int(timestamp) if timestamp is not None else None,
                    display_name=msg.get("pushName"),
                )
            )
        return events

    logger.debug(f"Ignoring bridge event: {kind}")
    return []
