"""Synchronized clock for manifest validation.

The validating host and the packager may disagree on local time, so "now" is
never read from the local wall clock. It is an authoritative timestamp from the
manifest's http-iso time source, moved back by the time that elapsed since the
manifest was downloaded.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from livecheck.infra.exceptions import ParseError
from livecheck.manifest.loader import parse_datetime

MonotonicFn = Callable[[], float]


def parse_sync_timestamp(body: str) -> datetime:
    """Parse an http-iso response body (the whole body is one ISO-8601 timestamp)."""
    text = body.strip()
    if not text:
        raise ParseError("Time sync response is empty.")
    return parse_datetime(text, "time sync response")


@dataclass
class ManifestClock:
    """Estimates what the synchronized clock read when the manifest was downloaded.

    Parameters
    ----------
    monotonic_fn:
        Injectable monotonic function, defaults to :func:`time.perf_counter`.
    """

    monotonic_fn: MonotonicFn = field(default=time.perf_counter)

    def __post_init__(self) -> None:
        self._downloaded_at: float | None = None

    def mark_manifest_downloaded(self) -> None:
        self._downloaded_at = self.monotonic_fn()

    def elapsed_since_download(self) -> timedelta:
        if self._downloaded_at is None:
            raise RuntimeError("mark_manifest_downloaded() has not been called")
        elapsed = self.monotonic_fn() - self._downloaded_at
        # perf_counter never goes backwards, but injected clocks might.
        return timedelta(seconds=max(0.0, elapsed))

    def manifest_download_time(self, synchronized_now: datetime) -> datetime:
        """Translate an authoritative timestamp to the manifest download moment."""
        return synchronized_now - self.elapsed_since_download()
