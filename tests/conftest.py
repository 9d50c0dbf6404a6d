"""
Global test configuration for livecheck.

Provides an MPD text builder, a recording feedback sink and an in-memory
fetcher so no test touches the network.
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Ensure the project src directory is importable without relying on an installed package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from livecheck.feedback import RecordingFeedbackSink  # noqa: E402
from livecheck.infra.exceptions import TransportFailure  # noqa: E402

T0 = datetime(2024, 1, 1, 0, 0, 0, tzinfo=UTC)
T0_ISO = "2024-01-01T00:00:00Z"
TIME_SYNC_URL = "https://time.example.com/iso"
MANIFEST_URL = "https://cdn.example.com/live/manifest.mpd"


def segments_xml(*entries: tuple) -> str:
    """``(t, d)`` or ``(t, d, r)`` tuples; ``t=None`` omits the attribute."""
    parts = []
    for entry in entries:
        t, d, *rest = entry
        attrs = [] if t is None else [f't="{t}"']
        attrs.append(f'd="{d}"')
        if rest:
            attrs.append(f'r="{rest[0]}"')
        parts.append(f"<S {' '.join(attrs)}/>")
    return "".join(parts)


def template_xml(segments: str, timescale: int = 1, pto: int | None = None) -> str:
    pto_attr = "" if pto is None else f' presentationTimeOffset="{pto}"'
    return (
        f'<SegmentTemplate timescale="{timescale}"{pto_attr} '
        f'initialization="$RepresentationID$/init.mp4" media="$RepresentationID$/$Time$.m4s">'
        f"<SegmentTimeline>{segments}</SegmentTimeline></SegmentTemplate>"
    )


def adaptation_set_xml(
    template: str | None = None,
    representations: str = '<Representation id="v1"/>',
    mime_type: str = "video/mp4",
) -> str:
    return (
        f'<AdaptationSet mimeType="{mime_type}" segmentAlignment="true">'
        f"{template or ''}{representations}</AdaptationSet>"
    )


def period_xml(body: str, id: str | None = "p0", start: str | None = "PT0S", duration: str | None = None) -> str:
    attrs = []
    if id is not None:
        attrs.append(f'id="{id}"')
    if start is not None:
        attrs.append(f'start="{start}"')
    if duration is not None:
        attrs.append(f'duration="{duration}"')
    return f"<Period {' '.join(attrs)}>{body}</Period>"


def mpd_xml(
    periods: str,
    *,
    type: str = "dynamic",
    ast: str | None = T0_ISO,
    tsbd: str | None = "PT30S",
    utc_timings: list[str] | None = None,
) -> str:
    if utc_timings is None:
        utc_timings = [TIME_SYNC_URL]
    attrs = [f'type="{type}"', 'publishTime="2024-01-01T00:00:20Z"', 'minimumUpdatePeriod="PT2S"']
    if ast is not None:
        attrs.append(f'availabilityStartTime="{ast}"')
    if tsbd is not None:
        attrs.append(f'timeShiftBufferDepth="{tsbd}"')
    timing = "".join(
        f'<UTCTiming schemeIdUri="urn:mpeg:dash:utc:http-iso:2014" value="{url}"/>'
        for url in utc_timings
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<MPD xmlns="urn:mpeg:dash:schema:mpd:2011" {" ".join(attrs)}>'
        f"{periods}{timing}</MPD>"
    )


def simple_mpd(*entries: tuple, timescale: int = 1, tsbd: str = "PT30S", **kwargs) -> str:
    """One open-ended period, one adaptation set with a shared template."""
    template = template_xml(segments_xml(*entries), timescale=timescale)
    return mpd_xml(period_xml(adaptation_set_xml(template)), tsbd=tsbd, **kwargs)


class FakeFetcher:
    """In-memory fetcher: URL -> body, or an exception to raise."""

    def __init__(self, responses: dict[str, str | Exception]) -> None:
        self.responses = responses
        self.requested: list[str] = []

    def fetch_text(self, url: str) -> str:
        self.requested.append(url)
        response = self.responses.get(url)
        if response is None:
            raise TransportFailure(f"Failed to fetch {url}: 404 Not Found")
        if isinstance(response, Exception):
            raise response
        return response


class SteppedMonotonic:
    """Monotonic function that advances only when told to."""

    def __init__(self, start: float = 100.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def feedback() -> RecordingFeedbackSink:
    return RecordingFeedbackSink()


@pytest.fixture
def monotonic() -> SteppedMonotonic:
    return SteppedMonotonic()
