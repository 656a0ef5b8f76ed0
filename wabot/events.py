"""
Push channel for dashboard log and status events.

Every notable bot event becomes a LogRecord. Records go to the Python
logger (the durable sink, whatever handlers bot.py configured), into a
bounded in-memory buffer the dashboard polls, and to any subscribed
listeners.
"""

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_BUFFERED_RECORDS = 500

# Record types whose text is logged at ERROR level in the durable sink
ERROR_TYPES = frozenset(["error"])


@dataclass
class LogRecord:
    """One log line pushed to the dashboard."""

    seq: int
    time: str
    type: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StatusRecord:
    """Connection status pushed to the dashboard."""

    connected: bool
    users: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Listener = Callable[[str, Dict[str, Any]], None]


class EventHub:
    """
    Fan-out point for log and status events.

    Safe to call from the HTTP server threads and the bot loop at once.
    """

    def __init__(self, max_records: int = MAX_BUFFERED_RECORDS):
        self._records: Deque[LogRecord] = deque(maxlen=max_records)
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        self._seq = 0
        self.status = StatusRecord(connected=False)

    def subscribe(self, listener: Listener) -> None:
        """Register listener(kind, payload); kind is 'log' or 'status'."""
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def log(self, message: str, log_type: str = "info") -> LogRecord:
        """Record and push a log line."""
        level = logging.ERROR if log_type in ERROR_TYPES else logging.INFO
        logger.log(level, f"[{log_type.upper()}] {message}")

        with self._lock:
            self._seq += 1
            record = LogRecord(
                seq=self._seq,
                time=datetime.now().strftime("%d/%m/%Y %H:%M:%S"),
                type=log_type,
                message=message,
            )
            self._records.append(record)
            listeners = list(self._listeners)

        self._notify(listeners, "log", record.to_dict())
        return record

    def emit_status(self, connected: bool, users: int = 0) -> StatusRecord:
        """Replace the current status and push it."""
        with self._lock:
            status = StatusRecord(connected=connected, users=users)
            self.status = status
            listeners = list(self._listeners)

        self._notify(listeners, "status", status.to_dict())
        return status

    def records_since(self, seq: int = 0, limit: Optional[int] = None) -> List[LogRecord]:
        """Buffered records with a sequence number greater than seq."""
        with self._lock:
            records = [r for r in self._records if r.seq > seq]
        if limit is not None:
            records = records[-limit:]
        return records

    @property
    def last_seq(self) -> int:
        with self._lock:
            return self._seq

    def _notify(self, listeners: List[Listener], kind: str, payload: Dict[str, Any]) -> None:
        for listener in listeners:
            try:
                listener(kind, payload)
            except Exception as e:
                logger.error(f"Event listener failed: {type(e).__name__}: {e}")
