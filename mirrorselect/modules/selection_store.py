"""Selection store: the current best host per group.

Written by the refresh scheduler, read by every request handler. Records
are immutable and swapped whole under a lock, so a reader sees either the
old or the new host, never a mix.
"""

import logging
import threading
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    host: str
    updated_at: float


class SelectionStore:
    """Thread-safe mapping of group name to its selected host."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[str, Selection] = {}

    def publish(self, group: str, host: str | None) -> bool:
        """Publish *host* for *group*.

        An empty host keeps the previous selection in place (stale but
        valid) and returns False.
        """
        if not host:
            with self._lock:
                previous = self._records.get(group)
            if previous is None:
                logger.warning("No eligible host for %s and nothing published yet", group)
            else:
                logger.warning(
                    "No eligible host for %s, keeping %s", group, previous.host
                )
            return False

        record = Selection(host=host, updated_at=time.time())
        with self._lock:
            previous = self._records.get(group)
            self._records[group] = record
        if previous is None or previous.host != host:
            logger.info("Selected %s for %s", host, group)
        return True

    def read(self, group: str) -> str | None:
        """Return the current host for *group*, or None if not yet available."""
        with self._lock:
            record = self._records.get(group)
        return record.host if record else None

    def snapshot(self) -> dict[str, Selection]:
        with self._lock:
            return dict(self._records)
