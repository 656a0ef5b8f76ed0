"""
Reconnect policy for the WhatsApp connection.

Decides what to do after the transport closes: retry with a linear
backoff for a bounded number of attempts, or give up. A logout is
always final since the stored credentials are no longer valid.
"""

import enum
from dataclasses import dataclass
from typing import Optional

# Status code the transport reports when the account logged the device out
LOGGED_OUT = 401

MAX_ATTEMPTS = 5
BASE_DELAY_MS = 5000


class ConnectionState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED_RETRY_PENDING = "closed-retry-pending"
    CLOSED_FINAL = "closed-final"


@dataclass(frozen=True)
class Decision:
    """Outcome of a disconnect: retry after a delay, or give up."""

    retry: bool
    retry_after_ms: Optional[int] = None
    attempt: int = 0
    reason: str = ""

    @classmethod
    def give_up(cls, reason: str) -> "Decision":
        return cls(retry=False, reason=reason)


class ReconnectPolicy:
    """
    Bounded linear-backoff reconnect state machine.

    States: idle -> connecting -> open -> closed-retry-pending ->
    connecting ... or closed-final. closed-final lasts until the session
    is started again from outside.
    """

    def __init__(self, max_attempts: int = MAX_ATTEMPTS, base_delay_ms: int = BASE_DELAY_MS):
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.attempts = 0
        self.state = ConnectionState.IDLE

    def on_connecting(self) -> None:
        self.state = ConnectionState.CONNECTING

    def on_open(self) -> None:
        """A connection opened: the next disconnect starts a fresh cycle."""
        self.attempts = 0
        self.state = ConnectionState.OPEN

    def on_disconnect(self, reason_code: Optional[int]) -> Decision:
        """
        Decide whether to reconnect after a close.

        Args:
            reason_code: Status code reported with the close, if any

        Returns:
            Decision with retry_after_ms set when retrying
        """
        if reason_code == LOGGED_OUT:
            self.attempts = 0
            self.state = ConnectionState.CLOSED_FINAL
            return Decision.give_up("logged out")

        if self.attempts >= self.max_attempts:
            self.attempts = 0
            self.state = ConnectionState.CLOSED_FINAL
            return Decision.give_up(f"{self.max_attempts} reconnect attempts failed")

        self.attempts += 1
        self.state = ConnectionState.CLOSED_RETRY_PENDING
        return Decision(
            retry=True,
            retry_after_ms=self.base_delay_ms * self.attempts,
            attempt=self.attempts,
        )

    def reset(self) -> None:
        self.attempts = 0
        self.state = ConnectionState.IDLE
