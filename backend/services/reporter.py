"""
Rate-Limited Reporter
Suppresses repeated alerts for a recurring unhealthy condition.

RULE (per monitor key):
- healthy check   -> forget the last report, emit nothing
- unhealthy check -> emit iff never reported or now - last >= cooldown
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from models import Finding

logger = logging.getLogger("Reporter")


class MonitorState:
    """
    Process-wide mutable state for all bots. Never persisted.

    Every read-compare-write happens under one lock with no awaits inside.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last_reported: Dict[str, int] = {}
        self._values: Dict[str, Any] = {}

    # ---- cooldown bookkeeping ----

    def try_report(self, key: str, now: int, cooldown: int) -> bool:
        """Atomically claim the right to report `key` at `now`"""
        with self._lock:
            last = self._last_reported.get(key)
            if last is not None and now - last < cooldown:
                return False
            self._last_reported[key] = now
            return True

    def reset(self, key: str):
        with self._lock:
            self._last_reported.pop(key, None)

    def last_reported(self, key: str) -> Optional[int]:
        with self._lock:
            return self._last_reported.get(key)

    # ---- running values (e.g. total pooled ether) ----

    def get_value(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set_value(self, key: str, value: Any):
        with self._lock:
            self._values[key] = value

    def compare_and_set(self, key: str, value: Any, should_replace: Callable[[Any, Any], bool]) -> Optional[Any]:
        """
        Replace the stored value when should_replace(old, new) holds.
        Returns the previous value on replacement, None otherwise.
        An unset key is seeded with `value` and counts as no replacement.
        """
        with self._lock:
            previous = self._values.get(key)
            if previous is None:
                self._values[key] = value
                return None
            if not should_replace(previous, value):
                return None
            self._values[key] = value
            return previous

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "last_reported": dict(self._last_reported),
                "values": dict(self._values),
            }


class RateLimitedReporter:
    """Cooldown gate for one monitored condition"""

    def __init__(self, state: MonitorState, key: str, cooldown: int):
        if cooldown < 0:
            raise ValueError("cooldown must not be negative")
        self.state = state
        self.key = key
        self.cooldown = cooldown

    def check(
        self,
        healthy: bool,
        timestamp: int,
        build_finding: Callable[[], Finding],
    ) -> Optional[Finding]:
        if healthy:
            self.state.reset(self.key)
            return None

        finding = build_finding()
        if not self.state.try_report(self.key, timestamp, self.cooldown):
            logger.debug(f"{self.key}: unhealthy but reported within the last {self.cooldown}s")
            return None

        logger.info(f"{self.key}: reporting {finding.alert_id} at {timestamp}")
        return finding
