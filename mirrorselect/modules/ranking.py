"""Ranking engine.

Measures every candidate of a group concurrently, drops the ones that
failed measurement and orders the rest fastest-first. Each pass works on
private copies of the candidates; results are only merged once every task
has finished.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Iterable

from mirrorselect.modules.errors import (
    AllAttemptsFailedError,
    EmptyGroupError,
    PrivilegeError,
    ProbeError,
)

logger = logging.getLogger(__name__)

UNMEASURED = -1

RANK_KEYS = ("latency", "throughput")


@dataclass
class Candidate:
    """One mirror host and its latest measurement."""
    name: str
    latency: int = UNMEASURED
    throughput: int = UNMEASURED
    measurement_failed: bool = False
    error: str = ""

    @property
    def eligible(self) -> bool:
        return not self.measurement_failed and self.latency != UNMEASURED


class RankingEngine:
    """Probes, samples, filters and sorts candidate hosts."""

    def __init__(self, prober, sampler=None, rank_by: str = "latency",
                 max_workers: int | None = None):
        if rank_by not in RANK_KEYS:
            raise ValueError(f"rank_by must be one of {RANK_KEYS}, got {rank_by!r}")
        self.prober = prober
        self.sampler = sampler
        self.rank_by = rank_by
        self.max_workers = max_workers

    def rank(self, candidates: Iterable[Candidate],
             sample_throughput: bool = True) -> list[Candidate]:
        """Measure *candidates* and return the eligible ones, fastest first.

        Sorting is stable, so equal keys keep their input order. Returns an
        empty list when nothing survives.
        """
        candidates = list(candidates)
        if not candidates:
            return []

        measured: list[Candidate] = []
        workers = self.max_workers or len(candidates)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._measure, c, sample_throughput) for c in candidates
            ]
            for candidate, future in zip(candidates, futures):
                try:
                    measured.append(future.result())
                except PrivilegeError:
                    raise
                except Exception as exc:
                    logger.warning("Measurement failed for %s: %s", candidate.name, exc)
                    measured.append(replace(candidate, latency=UNMEASURED, error=str(exc)))

        ranked = sorted((c for c in measured if c.eligible), key=self._sort_key)
        self._log_leaderboard(measured, ranked)
        return ranked

    def select_best(self, group: str, candidates: Iterable[Candidate],
                    sample_throughput: bool = True) -> str:
        """Return the best host of *group* or raise EmptyGroupError."""
        ranked = self.rank(candidates, sample_throughput=sample_throughput)
        if not ranked:
            raise EmptyGroupError(group)
        return ranked[0].name

    # -- internals -----------------------------------------------------------

    def _measure(self, candidate: Candidate, sample_throughput: bool) -> Candidate:
        result = replace(candidate, latency=UNMEASURED, throughput=UNMEASURED,
                         measurement_failed=False, error="")
        try:
            result.latency = self.prober.probe(candidate.name)
        except PrivilegeError:
            raise
        except ProbeError as exc:
            logger.warning("Probe failed for %s: %s", candidate.name, exc.reason)
            result.error = exc.reason
            return result

        if sample_throughput and self.sampler is not None:
            try:
                result.throughput = self.sampler.sample(candidate.name)
            except AllAttemptsFailedError as exc:
                logger.warning("Throughput sample failed for %s: %s", candidate.name, exc)
                result.measurement_failed = True
                result.error = str(exc)
        return result

    def _sort_key(self, c: Candidate):
        if self.rank_by == "throughput":
            # Hosts without a throughput figure go after sampled ones.
            if c.throughput == UNMEASURED:
                return (1, c.latency)
            return (0, c.throughput)
        return c.latency

    @staticmethod
    def _log_leaderboard(measured: list[Candidate], ranked: list[Candidate]) -> None:
        for idx, c in enumerate(ranked, 1):
            tp = f"{c.throughput}ms" if c.throughput != UNMEASURED else "-"
            logger.info("  #%-2d %6dms %8s  %s", idx, c.latency, tp, c.name)
        for c in measured:
            if not c.eligible:
                logger.info("  dropped  %s (%s)", c.name, c.error or "unmeasured")
        logger.info(
            "Ranking complete: %d eligible, %d dropped, fastest=%s",
            len(ranked),
            len(measured) - len(ranked),
            ranked[0].name if ranked else "none",
        )
