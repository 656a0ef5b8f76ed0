"""
Rate Limiter for incoming WhatsApp messages.

Sliding-window limiter: every message a sender sends is recorded, and
the sender is throttled while more than 5 messages fall inside the last
60 seconds. Throttled messages are recorded too, so a sender who keeps
talking stays throttled until they pause.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class RateLimiter:
    """
    Rate limiter with per-sender timestamp windows.

    Args:
        max_requests: Messages allowed inside one window (default: 5)
        window_ms: Window length in milliseconds (default: 60000)
        max_entries: Senders to track before idle windows are swept (default: 10000)
        clock: Returns the current time in milliseconds
    """

    max_requests: int = 5
    window_ms: int = 60_000
    max_entries: int = 10000
    clock: Callable[[], int] = now_ms
    _windows: Dict[str, List[int]] = field(default_factory=dict)

    def record_and_check(self, sender: str) -> bool:
        """
        Record a message from sender and check whether it may be answered.

        Args:
            sender: Sender jid

        Returns:
            True if allowed, False if throttled
        """
        now = self.clock()

        if sender not in self._windows and len(self._windows) >= self.max_entries:
            self._cleanup(now)

        window = self._windows.setdefault(sender, [])
        window.append(now)
        self._prune(window, now)

        return len(window) <= self.max_requests

    def get_remaining(self, sender: str) -> int:
        """Messages the sender can still send in the current window."""
        window = self._windows.get(sender)
        if not window:
            return self.max_requests
        self._prune(window, self.clock())
        return max(0, self.max_requests - len(window))

    def get_reset_time(self, sender: str) -> float:
        """
        Seconds until the oldest recorded message leaves the window.

        Returns 0.0 for unknown senders or empty windows.
        """
        window = self._windows.get(sender)
        now = self.clock()
        if window:
            self._prune(window, now)
        if not window:
            return 0.0
        return (window[0] + self.window_ms - now) / 1000

    def reset(self, sender: Optional[str] = None) -> None:
        """
        Reset rate limits.

        Args:
            sender: Specific sender to reset, or None to reset all
        """
        if sender is not None:
            self._windows.pop(sender, None)
        else:
            self._windows.clear()

    def _prune(self, window: List[int], now: int) -> None:
        cutoff = now - self.window_ms
        # Timestamps are appended in order, so expired ones sit at the front
        while window and window[0] < cutoff:
            window.pop(0)

    def _cleanup(self, now: int) -> None:
        """Remove senders whose windows have fully expired."""
        for sender in list(self._windows):
            window = self._windows[sender]
            self._prune(window, now)
            if not window:
                del self._windows[sender]
