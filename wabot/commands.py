"""
Keyword command registry.

Maps a lower-cased keyword to a handler that turns a CommandContext
into a reply string. An empty reply means nothing is sent back.

The registry knows nothing about the transport: the session parses the
message, builds the context and sends whatever dispatch() returns.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .calculator import CalcError, evaluate, format_result
from .message_builder import MessageBuilder
from .rate_limiter import now_ms

logger = logging.getLogger(__name__)

DEFAULT_ROLL_MAX = 100

QUOTES = [
    "La vie est belle.",
    "Carpe diem.",
    "Think big.",
    "Le succès, c'est d'aller d'échec en échec sans perdre son enthousiasme.",
    "Rien n'est impossible à celui qui essaie.",
]

JOKES = [
    "Pourquoi les plongeurs plongent-ils toujours en arrière ? Parce que sinon ils tombent dans le bateau.",
    "Qu'est-ce qu'un crocodile qui surveille la pharmacie ? Un Lacoste garde.",
    "Que dit un oignon quand il se cogne ? Aïe !",
    "Pourquoi le livre de maths est triste ? Parce qu'il a trop de problèmes.",
]

FACTS = [
    "Les pieuvres ont trois cœurs.",
    "Le miel ne se périme jamais.",
    "Une journée sur Vénus est plus longue qu'une année sur Vénus.",
    "Les bananes sont légèrement radioactives.",
]

Handler = Callable[["CommandContext"], str]


@dataclass
class CommandContext:
    """Everything a handler may need about the incoming message."""

    sender: str
    args: List[str] = field(default_factory=list)
    sent_at: Optional[int] = None
    display_name: Optional[str] = None
    distinct_senders: int = 0

    @property
    def text(self) -> str:
        return " ".join(self.args)


class CommandRegistry:
    """
    Keyword to handler table with the bot's built-in commands.

    Args:
        admin_jid: Sender allowed to use admin commands
        channel_link: URL returned by the channel command
        version: Bot version shown by info
        started_at: Process start, epoch seconds (default: now)
        clock: Returns the current time in milliseconds
        rng: Random source for quote, joke, fact, roll and coin
        on_log: Callback(message, type) for side-effect log records
    """

    def __init__(
        self,
        admin_jid: str,
        channel_link: str,
        version: str = "1.0.0",
        started_at: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
        rng: Optional[random.Random] = None,
        on_log: Optional[Callable[[str, str], None]] = None,
    ):
        self.admin_jid = admin_jid
        self.channel_link = channel_link
        self.version = version
        self.started_at = time.time() if started_at is None else started_at
        self.clock = clock
        self.rng = rng or random.Random()
        self.on_log = on_log
        self._handlers: Dict[str, Handler] = {}
        self._register_builtins()

    @property
    def keywords(self) -> List[str]:
        return sorted(self._handlers)

    def register(self, keyword: str, handler: Handler, *aliases: str) -> None:
        """Register a handler under a keyword and optional aliases."""
        for name in (keyword, *aliases):
            self._handlers[name.lower()] = handler

    def dispatch(self, keyword: str, args: List[str], context: CommandContext) -> str:
        """
        Resolve a keyword to a reply.

        Args:
            keyword: First token of the message (matched case-insensitively)
            args: Remaining tokens
            context: Message metadata

        Returns:
            Reply text; '' for an empty message
        """
        keyword = (keyword or "").lower()
        if not keyword:
            return ""

        context.args = list(args)
        handler = self._handlers.get(keyword)
        if handler is None:
            return MessageBuilder.UNKNOWN_COMMAND_MESSAGE
        return handler(context)

    def uptime_seconds(self) -> float:
        return self.clock() / 1000 - self.started_at

    def _log(self, message: str, log_type: str) -> None:
        if self.on_log is not None:
            self.on_log(message, log_type)
        else:
            logger.info(message)

    def _register_builtins(self) -> None:
        self.register("ping", self._ping)
        self.register("salut", self._salut)
        self.register("aide", self._help, "help")
        self.register("channel", self._channel)
        self.register("uptime", self._uptime)
        self.register("weather", self._weather)
        self.register("quote", lambda ctx: self.rng.choice(QUOTES))
        self.register("joke", lambda ctx: self.rng.choice(JOKES))
        self.register("fact", lambda ctx: self.rng.choice(FACTS))
        self.register("broadcast", self._broadcast)
        self.register("info", self._info)
        self.register("stats", self._stats)
        self.register("calc", self._calc)
        self.register("echo", self._echo)
        self.register("roll", self._roll)
        self.register("coin", lambda ctx: self.rng.choice(MessageBuilder.COIN_SIDES))
        self.register("time", self._time)

    # Handlers

    def _ping(self, ctx: CommandContext) -> str:
        now = self.clock()
        sent_at = ctx.sent_at if ctx.sent_at is not None else now
        return MessageBuilder.ping(now - sent_at)

    def _salut(self, ctx: CommandContext) -> str:
        return MessageBuilder.greeting(ctx.display_name)

    def _help(self, ctx: CommandContext) -> str:
        return MessageBuilder.HELP_MESSAGE

    def _channel(self, ctx: CommandContext) -> str:
        return MessageBuilder.channel(self.channel_link)

    def _uptime(self, ctx: CommandContext) -> str:
        return MessageBuilder.uptime(self.uptime_seconds())

    def _weather(self, ctx: CommandContext) -> str:
        city = ctx.args[0] if ctx.args else MessageBuilder.DEFAULT_CITY
        return MessageBuilder.weather(city)

    def _broadcast(self, ctx: CommandContext) -> str:
        if ctx.sender != self.admin_jid:
            return MessageBuilder.ADMIN_ONLY_MESSAGE
        text = ctx.text
        self._log(f"Broadcast par admin: {text}", "admin")
        return MessageBuilder.broadcast_sent(text)

    def _info(self, ctx: CommandContext) -> str:
        return MessageBuilder.info(
            self.version, self.admin_jid, datetime.fromtimestamp(self.started_at)
        )

    def _stats(self, ctx: CommandContext) -> str:
        return MessageBuilder.stats(ctx.distinct_senders, self.uptime_seconds())

    def _calc(self, ctx: CommandContext) -> str:
        expression = ctx.text
        try:
            result = evaluate(expression)
        except CalcError as e:
            return MessageBuilder.calc_error(str(e))
        return MessageBuilder.calc_result(expression, format_result(result))

    def _echo(self, ctx: CommandContext) -> str:
        return ctx.text or MessageBuilder.ECHO_PLACEHOLDER

    def _roll(self, ctx: CommandContext) -> str:
        maximum = DEFAULT_ROLL_MAX
        if ctx.args and ctx.args[0].isdigit() and int(ctx.args[0]) >= 1:
            maximum = int(ctx.args[0])
        return MessageBuilder.roll(self.rng.randint(1, maximum), maximum)

    def _time(self, ctx: CommandContext) -> str:
        return MessageBuilder.current_time(datetime.fromtimestamp(self.clock() / 1000))
