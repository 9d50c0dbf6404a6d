"""
Manifest loader.

Parses dynamic MPD text into the in-memory model defined in
``livecheck.domain.manifest``. Only the subset of MPD needed for timeline
validation is read; everything else is ignored.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TypeVar
from urllib.parse import urlparse
from xml.etree import ElementTree

import isodate
import structlog

from livecheck.domain.manifest import (
    HTTP_ISO_SCHEME,
    AdaptationSet,
    Manifest,
    Period,
    Representation,
    SegmentTemplate,
    TemplateOwner,
    TimelineSegment,
)
from livecheck.feedback import FeedbackSink
from livecheck.infra.exceptions import ParseError, UnsupportedFeature

_log = structlog.get_logger(__name__)

MPD_NAMESPACE = "urn:mpeg:dash:schema:mpd:2011"

T = TypeVar("T")

# Upper bound on expanded segments per SegmentTimeline.
MAX_TIMELINE_SEGMENTS = 1_000_000


@dataclass(frozen=True)
class TimelineEntry:
    """A raw ``S`` element: ``t`` may be omitted, ``r`` defaults to 0."""

    d: int
    t: int | None = None
    r: int = 0


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _is(element: ElementTree.Element, name: str) -> bool:
    """Match MPD elements, namespaced or not."""
    return element.tag in (name, f"{{{MPD_NAMESPACE}}}{name}")


def _children(element: ElementTree.Element, name: str) -> list[ElementTree.Element]:
    return [child for child in element if _is(child, name)]


def _describe(element: ElementTree.Element) -> str:
    return f"<{_local_name(element.tag)}>"


def _require(element: ElementTree.Element, name: str) -> str:
    value = element.get(name)
    if value is None:
        raise ParseError(f"{_describe(element)} is missing required attribute '{name}'.")
    return value


def _optional(
    element: ElementTree.Element, name: str, parser: Callable[[str, str], T]
) -> T | None:
    value = element.get(name)
    if value is None:
        return None
    return parser(value, name)


def parse_datetime(value: str, name: str = "value") -> datetime:
    """Parse an ISO-8601 timestamp; timestamps without a zone are UTC."""
    try:
        parsed = isodate.parse_datetime(value.strip())
    except (ValueError, isodate.ISO8601Error) as e:
        raise ParseError(f"'{name}' is not a valid ISO-8601 timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_duration(value: str, name: str = "value", anchor: datetime | None = None) -> timedelta:
    """Parse an ISO-8601 duration.

    Durations with calendar components (years, months) are resolved relative
    to ``anchor`` and are rejected when no anchor is available.
    """
    try:
        parsed = isodate.parse_duration(value.strip())
    except (ValueError, isodate.ISO8601Error) as e:
        raise ParseError(f"'{name}' is not a valid ISO-8601 duration: {value!r}") from e
    if isinstance(parsed, isodate.Duration):
        if anchor is None:
            raise ParseError(f"'{name}' uses calendar units that cannot be resolved: {value!r}")
        return parsed.totimedelta(start=anchor)
    return parsed


def parse_int(value: str, name: str = "value") -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise ParseError(f"'{name}' is not a valid integer: {value!r}") from e


def _parse_sync_url(value: str, name: str) -> str:
    url = value.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ParseError(f"'{name}' is not an absolute http(s) URL: {value!r}")
    return url


def expand_timeline_entries(entries: Iterable[TimelineEntry]) -> tuple[TimelineSegment, ...]:
    """Expand raw ``S`` entries into a flat sequence of segments.

    An entry repeated ``r`` times yields ``r + 1`` contiguous segments starting
    at its ``t``. An entry without ``t`` continues where the previous one ended.
    """
    segments: list[TimelineSegment] = []
    next_start: int | None = None
    for entry in entries:
        start = entry.t if entry.t is not None else next_start
        if start is None:
            raise ParseError("The first <S> of a SegmentTimeline must declare 't'.")
        if entry.d <= 0:
            raise ParseError(f"<S> duration 'd' must be positive, got {entry.d}.")
        if entry.r < 0:
            raise UnsupportedFeature(
                "Negative <S> repeat counts (repeat until next) are not supported by this validator."
            )
        if len(segments) + entry.r + 1 > MAX_TIMELINE_SEGMENTS:
            raise UnsupportedFeature(
                f"SegmentTimeline expands to more than {MAX_TIMELINE_SEGMENTS} segments, "
                "which this validator does not support."
            )
        for i in range(entry.r + 1):
            segments.append(TimelineSegment(start_ticks=start + i * entry.d, duration_ticks=entry.d))
        next_start = start + (entry.r + 1) * entry.d
    return tuple(segments)


def _load_segment_template(element: ElementTree.Element, owner: TemplateOwner) -> SegmentTemplate:
    timescale = parse_int(_require(element, "timescale"), "timescale")
    if timescale <= 0:
        raise ParseError(f"SegmentTemplate 'timescale' must be positive, got {timescale}.")

    entries = []
    for timeline_element in _children(element, "SegmentTimeline"):
        for s in _children(timeline_element, "S"):
            entries.append(
                TimelineEntry(
                    d=parse_int(_require(s, "d"), "d"),
                    t=_optional(s, "t", parse_int),
                    r=_optional(s, "r", parse_int) or 0,
                )
            )

    return SegmentTemplate(
        owner=owner,
        timescale=timescale,
        presentation_time_offset=_optional(element, "presentationTimeOffset", parse_int) or 0,
        initialization=element.get("initialization"),
        media=element.get("media"),
        segments=expand_timeline_entries(entries),
    )


def _load_clock_sync(root: ElementTree.Element, manifest: Manifest, feedback: FeedbackSink) -> None:
    for timing in _children(root, "UTCTiming"):
        if timing.get("schemeIdUri") != HTTP_ISO_SCHEME:
            continue
        # A single URL is the common case in practice; the last one listed wins.
        if manifest.time_sync_url is not None:
            feedback.will_skip_some_data(
                "Multiple time sync URLs are present in the manifest. "
                "This validator will only use the last one listed."
            )
        manifest.time_sync_url = _parse_sync_url(_require(timing, "value"), "UTCTiming@value")


def _period_start_offset(
    elements: list[ElementTree.Element], index: int, periods: list[Period], anchor: datetime
) -> timedelta:
    element = elements[index]
    start = _optional(element, "start", lambda v, n: parse_duration(v, n, anchor))
    if start is not None:
        return start
    if index == 0:
        return timedelta(0)
    previous_duration = _optional(
        elements[index - 1], "duration", lambda v, n: parse_duration(v, n, anchor)
    )
    if previous_duration is None:
        raise ParseError(
            f"Period {index} has no 'start' and the period before it declares no 'duration'."
        )
    return periods[index - 1].start_offset + previous_duration


def assign_period_durations(periods: list[Period], last_explicit: timedelta | None) -> None:
    """Derive every period duration from the start of the period after it.

    Any explicit duration on a non-last period is ignored. Only the last period
    keeps its explicit duration, or stays open-ended without one.
    """
    if not periods:
        return
    periods[-1].duration = last_explicit
    for index in range(len(periods) - 2, -1, -1):
        periods[index].duration = periods[index + 1].start - periods[index].start


def _load_adaptation_set(
    element: ElementTree.Element, period_index: int, set_index: int
) -> AdaptationSet:
    adaptation_set = AdaptationSet(
        mime_type=element.get("mimeType"),
        aligned_segments=element.get("segmentAlignment") == "true",
    )

    template_elements = _children(element, "SegmentTemplate")
    if template_elements:
        adaptation_set.segment_template = _load_segment_template(
            template_elements[0], TemplateOwner(period_index, set_index)
        )

    for rep_index, rep_element in enumerate(_children(element, "Representation")):
        rep = Representation(id=rep_element.get("id"))
        rep_templates = _children(rep_element, "SegmentTemplate")
        if rep_templates:
            if adaptation_set.segment_template is not None:
                raise UnsupportedFeature(
                    "This validator only supports validating manifests where SegmentTemplate is "
                    "under AdaptationSet or Representation but not both together for the same "
                    "Representation."
                )
            rep.segment_template = _load_segment_template(
                rep_templates[0], TemplateOwner(period_index, set_index, rep_index)
            )
        elif adaptation_set.segment_template is None:
            raise UnsupportedFeature(
                "This validator requires a SegmentTemplate under one of the following: "
                "AdaptationSet or Representation."
            )
        adaptation_set.representations.append(rep)

    return adaptation_set


def load_manifest(text: str, feedback: FeedbackSink) -> Manifest:
    """Parse MPD text into a Manifest.

    Raises:
        ParseError: the document is malformed or a required attribute is
            missing or unparseable.
        UnsupportedFeature: the manifest is not dynamic or uses a structure this
            validator cannot check.
    """
    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise ParseError(f"Manifest is not well-formed XML: {e}") from e

    if not _is(root, "MPD"):
        raise ParseError(f"Root element must be <MPD>, found {_describe(root)}.")

    if root.get("type") != "dynamic":
        raise UnsupportedFeature("MPD@type must be 'dynamic'")

    ast = parse_datetime(_require(root, "availabilityStartTime"), "availabilityStartTime")
    manifest = Manifest(
        availability_start_time=ast,
        publish_time=_optional(root, "publishTime", parse_datetime),
        playback_window_length=parse_duration(
            _require(root, "timeShiftBufferDepth"), "timeShiftBufferDepth", ast
        ),
        manifest_refresh_interval=_optional(
            root, "minimumUpdatePeriod", lambda v, n: parse_duration(v, n, ast)
        ),
    )

    _load_clock_sync(root, manifest, feedback)

    # Source order is trusted; periods are not re-sorted.
    period_elements = _children(root, "Period")
    for index, element in enumerate(period_elements):
        manifest.periods.append(
            Period(
                availability_start_time=ast,
                start_offset=_period_start_offset(period_elements, index, manifest.periods, ast),
                id=element.get("id"),
            )
        )

    last_explicit = None
    if period_elements:
        last_explicit = _optional(
            period_elements[-1], "duration", lambda v, n: parse_duration(v, n, ast)
        )
    assign_period_durations(manifest.periods, last_explicit)

    for period_index, (period, element) in enumerate(zip(manifest.periods, period_elements)):
        for set_index, set_element in enumerate(_children(element, "AdaptationSet")):
            period.adaptation_sets.append(_load_adaptation_set(set_element, period_index, set_index))

    _log.debug(
        "manifest_loaded",
        periods=len(manifest.periods),
        time_sync_url=manifest.time_sync_url,
    )
    return manifest
