"""In-memory model of a dynamic MPD.

The graph is built once by the loader and only read afterwards:

    Manifest -> Period -> AdaptationSet -> Representation
                               |                 |
                               +-- SegmentTemplate (one or the other)

A SegmentTemplate does not hold a reference to its owner. It carries a
``TemplateOwner`` handle (indices into the manifest) and the manifest resolves
it, so the only ownership edges point downwards.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .timing import ticks_to_timedelta

HTTP_ISO_SCHEME = "urn:mpeg:dash:utc:http-iso:2014"


@dataclass(frozen=True)
class TimelineSegment:
    """One expanded ``S`` entry. ``start_ticks`` already includes repeat offsets."""

    start_ticks: int
    duration_ticks: int

    @property
    def end_ticks(self) -> int:
        return self.start_ticks + self.duration_ticks


@dataclass(frozen=True)
class TemplateOwner:
    """Handle to the AdaptationSet or Representation that declared a template."""

    period_index: int
    adaptation_set_index: int
    # None when the template is shared by the whole adaptation set.
    representation_index: int | None = None

    @property
    def is_shared(self) -> bool:
        return self.representation_index is None


@dataclass
class SegmentTemplate:
    owner: TemplateOwner
    timescale: int
    # Subtract from a segment's raw start to get period-relative ticks.
    presentation_time_offset: int = 0
    initialization: str | None = None
    media: str | None = None
    segments: tuple[TimelineSegment, ...] = ()

    def __post_init__(self) -> None:
        if self.timescale <= 0:
            raise ValueError(f"timescale must be positive, got {self.timescale}")

    def duration_of(self, segment: TimelineSegment) -> timedelta:
        return ticks_to_timedelta(segment.duration_ticks, self.timescale)

    def start_offset_of(self, segment: TimelineSegment) -> timedelta:
        """Offset of the segment start from the start of its period."""
        return ticks_to_timedelta(
            segment.start_ticks - self.presentation_time_offset, self.timescale
        )


@dataclass
class Representation:
    id: str | None = None
    # None when the adaptation set's shared template applies.
    segment_template: SegmentTemplate | None = None


@dataclass
class AdaptationSet:
    mime_type: str | None = None
    aligned_segments: bool = False
    # None when every representation has its own template.
    segment_template: SegmentTemplate | None = None
    representations: list[Representation] = field(default_factory=list)


@dataclass
class Period:
    availability_start_time: datetime
    start_offset: timedelta
    id: str | None = None
    # None only for an open-ended last period.
    duration: timedelta | None = None
    adaptation_sets: list[AdaptationSet] = field(default_factory=list)

    @property
    def start(self) -> datetime:
        return self.availability_start_time + self.start_offset

    @property
    def end(self) -> datetime | None:
        if self.duration is None:
            return None
        return self.start + self.duration


@dataclass(frozen=True)
class Timeline:
    """One distinct segment timeline within a period."""

    path: str
    manifest: Manifest
    template: SegmentTemplate

    @property
    def period(self) -> Period:
        return self.manifest.resolve_period(self.template)

    def segment_bounds(self) -> Iterator[tuple[datetime, datetime]]:
        """Yield absolute ``(start, end)`` of every segment, in source order."""
        for segment in self.template.segments:
            yield (
                self.manifest.segment_start(self.template, segment),
                self.manifest.segment_end(self.template, segment),
            )


@dataclass
class Manifest:
    availability_start_time: datetime
    playback_window_length: timedelta
    publish_time: datetime | None = None
    manifest_refresh_interval: timedelta | None = None
    # Only the http-iso scheme is recognized.
    time_sync_url: str | None = None
    periods: list[Period] = field(default_factory=list)

    def resolve_period(self, template: SegmentTemplate) -> Period:
        return self.periods[template.owner.period_index]

    def resolve_adaptation_set(self, template: SegmentTemplate) -> AdaptationSet:
        period = self.resolve_period(template)
        return period.adaptation_sets[template.owner.adaptation_set_index]

    def resolve_representation(self, template: SegmentTemplate) -> Representation | None:
        index = template.owner.representation_index
        if index is None:
            return None
        return self.resolve_adaptation_set(template).representations[index]

    def segment_start(self, template: SegmentTemplate, segment: TimelineSegment) -> datetime:
        return self.resolve_period(template).start + template.start_offset_of(segment)

    def segment_end(self, template: SegmentTemplate, segment: TimelineSegment) -> datetime:
        return self.segment_start(template, segment) + template.duration_of(segment)

    def timelines(self) -> Iterator[Timeline]:
        """Yield every distinct timeline: one per shared template, else one per representation."""
        for period in self.periods:
            for adaptation_set in period.adaptation_sets:
                prefix = f"{period.id or 'unknown'}/{adaptation_set.mime_type or 'unknown'}"
                if adaptation_set.segment_template is not None:
                    yield Timeline(prefix, self, adaptation_set.segment_template)
                    continue
                for rep in adaptation_set.representations:
                    if rep.segment_template is None:
                        continue
                    yield Timeline(f"{prefix}/{rep.id or 'unknown'}", self, rep.segment_template)
