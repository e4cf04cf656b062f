"""Throughput sampling module.

Fires a burst of concurrent requests for one reference resource on a
mirror and reports the mean time-to-response over the attempts that
succeeded.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

import requests

from mirrorselect.modules.errors import AllAttemptsFailedError

logger = logging.getLogger(__name__)

# Identical on every host so timings are comparable.
DEFAULT_PROBE_PATH = "/project/sevenzip/files/7-Zip/23.01/7zr.exe?viasf=1"


class ThroughputSampler:
    """Times concurrent downloads of the reference resource on a host."""

    def __init__(
        self,
        concurrency: int = 32,
        timeout: float = 10.0,
        probe_path: str = DEFAULT_PROBE_PATH,
    ):
        if concurrency < 1:
            raise ValueError("download concurrency must be at least 1")
        if not probe_path.startswith("/"):
            raise ValueError("probe path must start with '/'")
        self.concurrency = concurrency
        self.timeout = timeout
        self.probe_path = probe_path

    def reference_url(self, host: str) -> str:
        return f"https://{host}{self.probe_path}"

    def sample(self, host: str, concurrency: int | None = None) -> int:
        """Return the mean attempt time in ms over successful attempts.

        Failed attempts are left out of the mean; AllAttemptsFailedError
        is raised only when none succeeded.
        """
        attempts = self.concurrency if concurrency is None else concurrency
        if attempts < 1:
            raise ValueError("download concurrency must be at least 1")
        url = self.reference_url(host)
        elapsed: list[int] = []

        with ThreadPoolExecutor(max_workers=attempts) as pool:
            futures = [pool.submit(self._attempt, url) for _ in range(attempts)]
            for future in as_completed(futures):
                try:
                    elapsed.append(future.result())
                except requests.RequestException as exc:
                    logger.warning("Download attempt failed for %s: %s", host, exc)

        if not elapsed:
            raise AllAttemptsFailedError(host, attempts)

        mean = sum(elapsed) // len(elapsed)
        logger.debug(
            "Sampled %s: %d ms mean over %d/%d attempts",
            host, mean, len(elapsed), attempts,
        )
        return mean

    # -- internals -----------------------------------------------------------

    def _attempt(self, url: str) -> int:
        """Time one request up to the response headers, in whole ms."""
        start = time.perf_counter()
        # stream=True returns once headers arrive; the body is never read.
        resp = requests.get(url, timeout=self.timeout, stream=True)
        elapsed = int((time.perf_counter() - start) * 1000)
        resp.close()
        return elapsed
