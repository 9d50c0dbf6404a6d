"""
Feedback sinks.

A validation run reports everything it finds through a FeedbackSink. Notices
are fire-and-forget; a sink can never abort the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

import structlog

_log = structlog.get_logger(__name__)


class NoticeKind(str, Enum):
    """Kinds of notices a validation run can emit."""

    INFO = "info"
    DOWNLOADED_MANIFEST = "downloaded_manifest"
    INVALID_CONTENT = "invalid_content"
    WILL_SKIP_SOME_DATA = "will_skip_some_data"


@runtime_checkable
class FeedbackSink(Protocol):
    """Receiver of validation notices."""

    def info(self, message: str) -> None: ...

    def downloaded_manifest(self, raw_text: str) -> None: ...

    def invalid_content(self, message: str) -> None: ...

    def will_skip_some_data(self, message: str) -> None: ...


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass
class RecordingFeedbackSink:
    """Collects notices in emission order."""

    notices: list[Notice] = field(default_factory=list)
    manifest_text: str | None = None

    def info(self, message: str) -> None:
        self.notices.append(Notice(NoticeKind.INFO, message))

    def downloaded_manifest(self, raw_text: str) -> None:
        self.manifest_text = raw_text
        self.notices.append(
            Notice(NoticeKind.DOWNLOADED_MANIFEST, f"Downloaded manifest ({len(raw_text)} characters).")
        )

    def invalid_content(self, message: str) -> None:
        self.notices.append(Notice(NoticeKind.INVALID_CONTENT, message))

    def will_skip_some_data(self, message: str) -> None:
        self.notices.append(Notice(NoticeKind.WILL_SKIP_SOME_DATA, message))

    def messages(self, kind: NoticeKind) -> list[str]:
        return [n.message for n in self.notices if n.kind is kind]

    @property
    def violations(self) -> list[str]:
        return self.messages(NoticeKind.INVALID_CONTENT)


class LoggingFeedbackSink:
    """Routes notices to structlog; violations log at error level."""

    def __init__(self, logger=None) -> None:
        self._log = logger or _log

    def info(self, message: str) -> None:
        self._log.info("validation_info", message=message)

    def downloaded_manifest(self, raw_text: str) -> None:
        self._log.debug("manifest_downloaded", length=len(raw_text))

    def invalid_content(self, message: str) -> None:
        self._log.error("invalid_content", message=message)

    def will_skip_some_data(self, message: str) -> None:
        self._log.warning("will_skip_some_data", message=message)


class TeeFeedbackSink:
    """Forwards every notice to several sinks, in order."""

    def __init__(self, *sinks: FeedbackSink) -> None:
        self._sinks = sinks

    def info(self, message: str) -> None:
        for sink in self._sinks:
            sink.info(message)

    def downloaded_manifest(self, raw_text: str) -> None:
        for sink in self._sinks:
            sink.downloaded_manifest(raw_text)

    def invalid_content(self, message: str) -> None:
        for sink in self._sinks:
            sink.invalid_content(message)

    def will_skip_some_data(self, message: str) -> None:
        for sink in self._sinks:
            sink.will_skip_some_data(message)
