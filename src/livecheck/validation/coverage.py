"""Timeline coverage check.

The playback window ``[now - timeShiftBufferDepth, now]`` must be entirely
covered by segments. Segments may lie before or after the window and may
overlap period boundaries (a newer period can cut an older one short); the
part outside a period is clipped, not flagged. Within a single timeline any
uncovered instant is a defect.

Period durations are already sequential here because the loader derives them
from the next period's start.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from livecheck.domain.manifest import Manifest, Timeline
from livecheck.domain.timing import format_duration, format_millis, format_timestamp
from livecheck.feedback import FeedbackSink

_log = structlog.get_logger(__name__)


def check_timeline_coverage(manifest: Manifest, now: datetime, feedback: FeedbackSink) -> None:
    """Report every gap in the playback window as invalid content. Never raises."""
    window_start = now - manifest.playback_window_length

    feedback.info(
        f"Playback window is from {format_timestamp(window_start)} to {format_timestamp(now)} "
        f"({format_duration(manifest.playback_window_length)})."
    )

    _check_period_boundaries(manifest, window_start, now, feedback)

    for timeline in manifest.timelines():
        feedback.info(f"Checking timeline of {timeline.path}.")
        check_single_timeline(timeline, window_start, now, feedback)


def _check_period_boundaries(
    manifest: Manifest, window_start: datetime, now: datetime, feedback: FeedbackSink
) -> None:
    if not manifest.periods:
        return

    first_start = manifest.periods[0].start
    if first_start > window_start:
        feedback.invalid_content(
            f"There is a gap of {format_millis(first_start - window_start)} ms between the start "
            f"of the playback window ({format_timestamp(window_start)}) and the start of the "
            f"first period ({format_timestamp(first_start)})."
        )

    # Almost always open-ended.
    last_end = manifest.periods[-1].end
    if last_end is not None and last_end < now:
        feedback.invalid_content(
            f"There is a gap of {format_millis(now - last_end)} ms between the end of the last "
            f"period ({format_timestamp(last_end)}) and the end of the playback window "
            f"({format_timestamp(now)})."
        )


def check_single_timeline(
    timeline: Timeline, window_start: datetime, now: datetime, feedback: FeedbackSink
) -> None:
    """Walk one timeline in source order and report every uncovered stretch.

    The first period is clipped to the window start, but the last period is
    processed up to its end even past ``now`` when it defines segments there.
    """
    period = timeline.period
    period_end = period.end
    period_timing = (
        f"The period lasts from {format_timestamp(period.start)} "
        f"to {format_timestamp(period_end or now)}."
    )

    content_exists_up_to = period.start

    # This may skip the entire period.
    if window_start > content_exists_up_to:
        feedback.info("Skipping data that lies before the playback window start.")
        content_exists_up_to = window_start

    ignored_past = 0
    ignored_future = 0

    for start, end in timeline.segment_bounds():
        if end <= content_exists_up_to:
            ignored_past += 1
            continue

        # Expected when the next period cuts this one short. A shortfall before the
        # period end is reported once, by the trailing check below.
        if period_end is not None and start > period_end:
            ignored_future += 1
            continue

        if start > content_exists_up_to:
            at_window_start = (
                " This gap is at the start of the playback window."
                if content_exists_up_to == window_start
                else ""
            )
            feedback.invalid_content(
                f"There is a gap of {format_millis(start - content_exists_up_to)} ms from "
                f"{format_timestamp(content_exists_up_to)} to {format_timestamp(start)} in "
                f"{timeline.path}. {period_timing}{at_window_start}"
            )

        # The segment still covers from its own start onwards.
        content_exists_up_to = end
        if period_end is not None and content_exists_up_to > period_end:
            content_exists_up_to = period_end

    if period_end is not None:
        # A period that ended before the window start is clamped past its end; nothing to cover.
        if content_exists_up_to < period_end:
            feedback.invalid_content(
                f"There is a gap of {format_millis(period_end - content_exists_up_to)} ms from "
                f"{format_timestamp(content_exists_up_to)} to {format_timestamp(period_end)} in "
                f"{timeline.path}. {period_timing} This gap is at the end of the period."
            )
    elif content_exists_up_to < now:
        feedback.invalid_content(
            f"There is a gap of {format_millis(now - content_exists_up_to)} ms from "
            f"{format_timestamp(content_exists_up_to)} to {format_timestamp(now)} in "
            f"{timeline.path}. {period_timing} This gap is at the end of the period."
        )

    if ignored_past or ignored_future:
        feedback.info(
            f"Ignored {ignored_past} segments that were too early and would never be played. "
            f"Ignored {ignored_future} segments that were too late and would never be played."
        )

    _log.debug(
        "timeline_checked",
        path=timeline.path,
        ignored_past=ignored_past,
        ignored_future=ignored_future,
    )
