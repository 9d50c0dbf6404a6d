"""
Live stream validation entry points.

``validate`` downloads a manifest, synchronizes the clock against the
manifest's time source and runs every check. Results are observed through the
feedback sink; fatal conditions raise a LiveCheckError.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime

import structlog

from livecheck.domain.manifest import Manifest
from livecheck.domain.timing import ensure_aware, format_timestamp
from livecheck.feedback import FeedbackSink
from livecheck.infra.exceptions import LiveCheckError, UnsupportedFeature
from livecheck.manifest.loader import load_manifest
from livecheck.runtime.clock import ManifestClock, MonotonicFn, parse_sync_timestamp
from livecheck.transport import Fetcher, HttpFetcher
from livecheck.validation.coverage import check_timeline_coverage
from livecheck.validation.sanity import run_sanity_checks

_log = structlog.get_logger(__name__)


def _describe_periods(manifest: Manifest, now: datetime) -> str:
    lines = [
        f"{p.id or 'unknown'} from {format_timestamp(p.start)} to {format_timestamp(p.end or now)}."
        for p in manifest.periods
    ]
    return f"Loaded manifest with {len(manifest.periods)} periods:\n" + "\n".join(lines)


def _run_checks(manifest: Manifest, now: datetime, feedback: FeedbackSink) -> None:
    feedback.info(_describe_periods(manifest, now))
    run_sanity_checks(manifest)
    check_timeline_coverage(manifest, now, feedback)


def validate(
    manifest_url: str,
    feedback: FeedbackSink,
    *,
    fetcher: Fetcher | None = None,
    monotonic_fn: MonotonicFn = time.perf_counter,
) -> None:
    """Validate the live stream behind ``manifest_url``.

    Raises:
        TransportFailure: either fetch failed
        ParseError: the manifest or time sync response could not be parsed
        UnsupportedFeature: the stream uses something this validator cannot check
    """
    if not manifest_url:
        raise ValueError("manifest_url is required")
    if feedback is None:
        raise ValueError("feedback is required")

    fetcher = fetcher or HttpFetcher()
    clock = ManifestClock(monotonic_fn=monotonic_fn)
    log = _log.bind(manifest_url=manifest_url)

    feedback.info(f"Downloading manifest from {manifest_url}")
    manifest_text = fetcher.fetch_text(manifest_url)
    clock.mark_manifest_downloaded()
    feedback.downloaded_manifest(manifest_text)

    feedback.info("Parsing manifest.")
    manifest = load_manifest(manifest_text, feedback)

    if manifest.time_sync_url is None:
        raise UnsupportedFeature(
            "The live stream manifest must define a supported method for clock synchronization. "
            "This validator supports the following clock synchronization modes: http-iso."
        )

    synchronized_now = parse_sync_timestamp(fetcher.fetch_text(manifest.time_sync_url))
    feedback.info(
        f"Clock synchronized from time server. Current time is {format_timestamp(synchronized_now)}."
    )

    # Our "now" for the manifest is already a bit in the past.
    now = clock.manifest_download_time(synchronized_now)
    feedback.info(
        f"Manifest was downloaded at {format_timestamp(now)}. "
        "This timestamp will be used as 'now' when checking the timeline."
    )
    log.info("clock_synchronized", time_sync_url=manifest.time_sync_url, now=now.isoformat())

    _run_checks(manifest, now, feedback)
    log.info("validation_finished")


def check_manifest(manifest_text: str, now: datetime, feedback: FeedbackSink) -> None:
    """Run every check on manifest text against a caller-provided "now".

    No network access; the clock is the caller's responsibility.
    """
    ensure_aware(now)
    feedback.downloaded_manifest(manifest_text)
    feedback.info("Parsing manifest.")
    manifest = load_manifest(manifest_text, feedback)
    _run_checks(manifest, now, feedback)


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a validation run with fatal errors captured instead of raised."""

    failure_kind: str | None = None
    failure_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure_kind is None

    @classmethod
    def from_error(cls, error: LiveCheckError) -> ValidationOutcome:
        return cls(failure_kind=error.kind, failure_message=str(error))


def run_validation(
    manifest_url: str,
    feedback: FeedbackSink,
    *,
    fetcher: Fetcher | None = None,
    monotonic_fn: MonotonicFn = time.perf_counter,
) -> ValidationOutcome:
    """Like :func:`validate`, but fatal errors come back as a ValidationOutcome."""
    try:
        validate(manifest_url, feedback, fetcher=fetcher, monotonic_fn=monotonic_fn)
    except LiveCheckError as e:
        _log.warning("validation_aborted", kind=e.kind, error=str(e))
        return ValidationOutcome.from_error(e)
    return ValidationOutcome()


def run_check(manifest_text: str, now: datetime, feedback: FeedbackSink) -> ValidationOutcome:
    """Like :func:`check_manifest`, but fatal errors come back as a ValidationOutcome."""
    try:
        check_manifest(manifest_text, now, feedback)
    except LiveCheckError as e:
        _log.warning("check_aborted", kind=e.kind, error=str(e))
        return ValidationOutcome.from_error(e)
    return ValidationOutcome()
