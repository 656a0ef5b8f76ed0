"""
WhatsApp Keyword Bot - Core modules.

This package contains the bot core:
- command_parser: Split message bodies into keyword and arguments
- rate_limiter: Sliding-window rate limiting per sender
- commands: Keyword command registry and built-in commands
- reconnect: Reconnect policy after disconnects
- session: Bot session tying transport events to the above
- events: Log and status push channel for the dashboard
"""

from .command_parser import parse_command, CommandResult
from .commands import CommandContext, CommandRegistry
from .events import EventHub
from .message_builder import MessageBuilder
from .rate_limiter import RateLimiter
from .reconnect import Decision, ReconnectPolicy
from .session import BotSession

__version__ = "1.0.0"

__all__ = [
    "parse_command",
    "CommandResult",
    "CommandContext",
    "CommandRegistry",
    "EventHub",
    "MessageBuilder",
    "RateLimiter",
    "Decision",
    "ReconnectPolicy",
    "BotSession",
]
