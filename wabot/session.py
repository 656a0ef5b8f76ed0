"""
Bot session: one logical WhatsApp connection.

The session owns the rate limiter, the reconnect policy and the set of
senders seen so far. Transport events are queued and handled one at a
time by run(), so none of that state needs locking; other threads hand
events in through submit().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

import httpx

from .command_parser import normalize_text, parse_command
from .commands import CommandContext, CommandRegistry
from .events import EventHub
from .message_builder import MessageBuilder
from .rate_limiter import RateLimiter
from .reconnect import ConnectionState, ReconnectPolicy
from .transport import (
    ConnectionClosed,
    ConnectionOpen,
    IncomingMessage,
    Transport,
    TransportError,
    TransportEvent,
)

logger = logging.getLogger(__name__)

# Errors a transport may raise for a single failed request
TRANSPORT_ERRORS = (httpx.HTTPError, TransportError)


class BotSession:
    """
    Orchestrates transport events, rate limiting and command dispatch.

    Args:
        transport: Messaging transport
        registry: Command registry (shared, read-only)
        hub: Push channel for log and status records
        auth_dir: Credentials directory handed to the transport
        rate_limiter: Per-sender limiter (default: 5 messages per minute)
        policy: Reconnect policy (default: 5 attempts, 5s linear backoff)
    """

    def __init__(
        self,
        transport: Transport,
        registry: CommandRegistry,
        hub: EventHub,
        auth_dir: str = "./auth_info",
        rate_limiter: Optional[RateLimiter] = None,
        policy: Optional[ReconnectPolicy] = None,
    ):
        self.transport = transport
        self.registry = registry
        self.hub = hub
        self.auth_dir = auth_dir
        self.rate_limiter = rate_limiter or RateLimiter()
        self.policy = policy or ReconnectPolicy()
        self.senders: Set[str] = set()
        self.connected = False
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._reconnect_task: Optional[asyncio.Task] = None

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self._loop

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None

    async def start(self, phone_number: Optional[str] = None) -> Optional[str]:
        """
        Connect to the transport, optionally requesting a pairing code.

        A failed pairing request is logged and yields None; the
        connection attempt itself carries on. A failed connection goes
        through the reconnect policy like any other close.

        Args:
            phone_number: All-digit phone number to pair, or None

        Returns:
            The pairing code, or None
        """
        self._loop = asyncio.get_running_loop()
        self.cancel_retry()
        self.policy.on_connecting()

        try:
            await self.transport.connect(self.auth_dir)
        except TRANSPORT_ERRORS as e:
            self.hub.log(f"Erreur de connexion: {e}", "error")
            await self._handle_close(ConnectionClosed(reason_code=None))
            return None

        if not phone_number:
            return None

        try:
            code = await self.transport.request_pairing_code(phone_number)
        except TRANSPORT_ERRORS as e:
            self.hub.log(f"Erreur génération code pairing: {e}", "error")
            return None

        self.hub.log(f"Code de pairing généré pour {phone_number}: {code}", "info")
        return code

    def submit(self, event: TransportEvent) -> None:
        """Queue a transport event from any thread."""
        if self._loop is None:
            raise RuntimeError("Session has not been started")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def run(self) -> None:
        """Handle queued events until cancelled."""
        self._loop = asyncio.get_running_loop()
        while True:
            event = await self._queue.get()
            try:
                await self.handle_event(event)
            except Exception as e:
                logger.exception(f"Error handling {type(event).__name__}: {e}")
            finally:
                self._queue.task_done()

    async def handle_event(self, event: TransportEvent) -> None:
        if isinstance(event, IncomingMessage):
            await self._handle_message(event)
        elif isinstance(event, ConnectionOpen):
            self._handle_open()
        elif isinstance(event, ConnectionClosed):
            await self._handle_close(event)
        else:
            logger.warning(f"Unknown transport event: {event!r}")

    async def stop(self) -> None:
        """Cancel any pending reconnect and close the transport."""
        self.cancel_retry()
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self.connected = False
        await self.transport.close()

    def cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def status(self) -> Dict[str, Any]:
        """Snapshot for the dashboard."""
        return {
            "connected": self.connected,
            "users": len(self.senders),
            "state": self.policy.state.value,
            "reconnect_attempts": self.policy.attempts,
        }

    async def _handle_message(self, message: IncomingMessage) -> None:
        sender = message.sender
        parsed = parse_command(message.text)
        self.senders.add(sender)
        self.hub.log(f"Message reçu de {sender}: {normalize_text(message.text)}", "message")

        if not self.rate_limiter.record_and_check(sender):
            logger.info(f"Rate limited sender {sender}")
            await self._reply(sender, MessageBuilder.RATE_LIMITED_MESSAGE)
            return

        context = CommandContext(
            sender=sender,
            sent_at=message.sent_at_ms,
            display_name=message.display_name,
            distinct_senders=len(self.senders),
        )
        reply = self.registry.dispatch(parsed.keyword, parsed.args, context)
        if reply:
            await self._reply(sender, reply)

    async def _reply(self, sender: str, text: str) -> None:
        try:
            sent = await self.transport.send(sender, text)
        except TRANSPORT_ERRORS as e:
            logger.error(f"Send to {sender} raised {type(e).__name__}: {e}")
            sent = False

        if sent:
            self.hub.log(f"Réponse envoyée à {sender}: {text}", "response")
        else:
            self.hub.log(f"Échec de l'envoi à {sender}", "error")

    def _handle_open(self) -> None:
        self.policy.on_open()
        self.cancel_retry()
        self.connected = True
        self.hub.log("Connecté à WhatsApp ! Bot prêt.", "success")
        self.hub.emit_status(True, len(self.senders))

    async def _handle_close(self, event: ConnectionClosed) -> None:
        self.connected = False
        self.hub.emit_status(False, len(self.senders))

        decision = self.policy.on_disconnect(event.reason_code)
        if not decision.retry:
            self.hub.log(
                f"Connexion fermée ({decision.reason}), redémarrage manuel requis.",
                "error",
            )
            return

        delay_ms = decision.retry_after_ms or 0
        self.hub.log(
            f"Connexion perdue, reconnexion dans {delay_ms // 1000}s "
            f"(tentative {decision.attempt}/{self.policy.max_attempts})...",
            "error",
        )
        self._schedule_retry(delay_ms)

    def _schedule_retry(self, delay_ms: int) -> None:
        loop = self._loop or asyncio.get_running_loop()
        self.cancel_retry()
        self._retry_handle = loop.call_later(delay_ms / 1000, self._reconnect)

    def _reconnect(self) -> None:
        self._retry_handle = None
        if self.policy.state is not ConnectionState.CLOSED_RETRY_PENDING:
            return
        self._reconnect_task = self._loop.create_task(self.start())
        self._reconnect_task.add_done_callback(self._reconnect_done)

    def _reconnect_done(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        # An unexpected error left the policy in CONNECTING; count it as a close
        error = task.exception()
        logger.error(f"Reconnect attempt failed: {type(error).__name__}: {error}")
        self.hub.log(f"Erreur de reconnexion: {error}", "error")
        self._reconnect_task = self._loop.create_task(
            self._handle_close(ConnectionClosed(reason_code=None))
        )
