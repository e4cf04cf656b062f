"""Refresh scheduler.

Runs one measure-rank-publish cycle for every group at startup, then
repeats on a fixed interval from a background thread. Groups are refreshed
in parallel and a failure in one group never stops the others.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from mirrorselect.modules.errors import EmptyGroupError, PrivilegeError
from mirrorselect.modules.ranking import Candidate, RankingEngine
from mirrorselect.modules.selection_store import SelectionStore

logger = logging.getLogger(__name__)


@dataclass
class Group:
    """A named list of mirror hosts competing for one selection."""
    name: str
    hosts: list[str] = field(default_factory=list)
    sample_throughput: bool = True

    def candidates(self) -> list[Candidate]:
        return [Candidate(name=h) for h in self.hosts]


class RefreshScheduler:
    """Periodically re-ranks every group and publishes the winners."""

    def __init__(self, groups: list[Group], engine: RankingEngine,
                 store: SelectionStore, interval: float = 600.0):
        if interval <= 0:
            raise ValueError("refresh interval must be positive")
        self.groups = list(groups)
        self.engine = engine
        self.store = store
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # -- public API ----------------------------------------------------------

    def run_once(self) -> dict[str, str | None]:
        """Refresh every group once and return the host chosen per group.

        A group with no eligible host maps to None; its previous selection
        stays published.
        """
        if not self.groups:
            return {}
        with ThreadPoolExecutor(max_workers=len(self.groups)) as pool:
            futures = {g.name: pool.submit(self._refresh_group, g) for g in self.groups}
        return {name: future.result() for name, future in futures.items()}

    def start(self) -> None:
        """Run a first cycle synchronously, then keep refreshing in the background."""
        if self._thread is not None:
            if self._thread.is_alive():
                raise RuntimeError("scheduler already running")
            self._thread = None
        logger.info("Initial refresh of %d group(s)", len(self.groups))
        self.run_once()
        # One stop event per loop.
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, args=(self._stop,), name="mirrorselect-refresh", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait up to *timeout* for it.

        If the loop is still mid-cycle when the wait ends, it stays tracked
        and start() refuses to launch a second one.
        """
        self._stop.set()
        if self._thread is None:
            return
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Refresh loop still finishing its cycle")
        else:
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -- internals -----------------------------------------------------------

    def _loop(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            logger.info("Refreshing %d group(s)", len(self.groups))
            self.run_once()
        logger.info("Refresh loop stopped")

    def _refresh_group(self, group: Group) -> str | None:
        try:
            best = self.engine.select_best(
                group.name, group.candidates(), sample_throughput=group.sample_throughput
            )
        except EmptyGroupError as exc:
            logger.warning("%s", exc)
            self.store.publish(group.name, None)
            return None
        except PrivilegeError as exc:
            logger.error("Refresh of %s aborted: %s", group.name, exc)
            return None
        except Exception:
            logger.exception("Refresh of %s failed", group.name)
            return None

        self.store.publish(group.name, best)
        return best
