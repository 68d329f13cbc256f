"""Bounded in-memory ledger of diagnosed CORS failures."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List, Optional, Sequence, Tuple
import logging
import threading

from cors_diagnoser.core.models import Diagnosis

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100


@dataclass
class CorsError:
    """One distinct failure, with how often it has been seen."""

    timestamp: datetime
    route: str
    method: str
    origin: str
    diagnoses: List[Diagnosis] = field(default_factory=list)
    count: int = 1


def diagnosis_signature(diagnoses: Sequence[Diagnosis]) -> Tuple[Tuple[str, str, str], ...]:
    """Canonical projection used to decide whether two failures are the same.

    Code examples, patterns and severities do not take part in the match.
    """
    ordered = sorted(diagnoses, key=lambda d: d.issue)
    return tuple((d.issue, d.description, d.recommendation) for d in ordered)


class ErrorHistory:
    """Circular buffer of CorsError entries, newest first.

    Repeats of a (route, method, origin, diagnoses) failure update the
    existing entry instead of adding a new one. When full, the oldest
    inserted entry is dropped, regardless of how recently it was updated.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        if not isinstance(max_size, int) or max_size < 1:
            raise ValueError("max_size must be a positive integer")
        self.max_size = max_size
        self._entries: Deque[CorsError] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def add(
        self,
        route: str,
        method: str,
        origin: str,
        diagnoses: Sequence[Diagnosis],
        timestamp: Optional[datetime] = None,
    ) -> CorsError:
        """Record a failure and return the entry that now represents it."""
        now = timestamp or datetime.now()
        signature = diagnosis_signature(diagnoses)

        with self._lock:
            for entry in self._entries:
                if (
                    entry.route == route
                    and entry.method == method
                    and entry.origin == origin
                    and diagnosis_signature(entry.diagnoses) == signature
                ):
                    entry.count += 1
                    entry.timestamp = now
                    logger.debug("Repeated CORS error on %s %s (count=%d)", method, route, entry.count)
                    return entry

            if len(self._entries) == self.max_size:
                evicted = self._entries[-1]
                logger.debug("History full, evicting %s %s", evicted.method, evicted.route)

            entry = CorsError(
                timestamp=now,
                route=route,
                method=method,
                origin=origin,
                diagnoses=list(diagnoses),
            )
            # deque(maxlen) drops from the right when appending on the left
            self._entries.appendleft(entry)
            return entry

    def get_all(self) -> List[CorsError]:
        """Return every entry, most recently seen first."""
        with self._lock:
            entries = list(self._entries)
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
