from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from conftest import MANIFEST_URL, T0, TIME_SYNC_URL, FakeFetcher, simple_mpd

from livecheck.feedback import NoticeKind
from livecheck.infra.exceptions import ParseError, TransportFailure, UnsupportedFeature
from livecheck.validator import check_manifest, run_check, run_validation, validate


def _fetcher(manifest: str, sync_body: str = "2024-01-01T00:00:27Z") -> FakeFetcher:
    return FakeFetcher({MANIFEST_URL: manifest, TIME_SYNC_URL: sync_body})


def test_validate_uses_synchronized_now_minus_elapsed(feedback, monotonic):
    # Time server says T0+27 two seconds after download, so "now" is T0+25.
    fetcher = _fetcher(simple_mpd((0, 10), (10, 10), tsbd="PT25S"))
    original_fetch = fetcher.fetch_text

    def fetch_and_wait(url: str) -> str:
        if url == TIME_SYNC_URL:
            monotonic.advance(2.0)
        return original_fetch(url)

    fetcher.fetch_text = fetch_and_wait

    validate(MANIFEST_URL, feedback, fetcher=fetcher, monotonic_fn=monotonic)

    assert fetcher.requested == [MANIFEST_URL, TIME_SYNC_URL]
    assert feedback.manifest_text is not None
    infos = feedback.messages(NoticeKind.INFO)
    assert infos[0] == f"Downloading manifest from {MANIFEST_URL}"
    assert "Manifest was downloaded at 2024-01-01T00:00:25.000Z." in infos[3]
    assert feedback.violations == [
        "There is a gap of 5000.0 ms from 2024-01-01T00:00:20.000Z to 2024-01-01T00:00:25.000Z in "
        "p0/video/mp4. The period lasts from 2024-01-01T00:00:00.000Z to 2024-01-01T00:00:25.000Z. "
        "This gap is at the end of the period."
    ]


def test_validate_notice_order(feedback, monotonic):
    validate(MANIFEST_URL, feedback, fetcher=_fetcher(simple_mpd((0, 30), tsbd="PT27S")), monotonic_fn=monotonic)

    kinds = [n.kind for n in feedback.notices]
    assert kinds[:3] == [NoticeKind.INFO, NoticeKind.DOWNLOADED_MANIFEST, NoticeKind.INFO]
    assert feedback.violations == []
    assert any(m.startswith("Loaded manifest with 1 periods:\np0 from") for m in feedback.messages(NoticeKind.INFO))


def test_validate_requires_time_sync_method(feedback, monotonic):
    fetcher = _fetcher(simple_mpd((0, 10), utc_timings=[]))
    with pytest.raises(UnsupportedFeature, match="http-iso"):
        validate(MANIFEST_URL, feedback, fetcher=fetcher, monotonic_fn=monotonic)
    assert fetcher.requested == [MANIFEST_URL]


def test_validate_uses_last_time_sync_url(feedback, monotonic):
    urls = ["https://first.example.com/time", TIME_SYNC_URL]
    fetcher = _fetcher(simple_mpd((0, 30), tsbd="PT27S", utc_timings=urls))

    validate(MANIFEST_URL, feedback, fetcher=fetcher, monotonic_fn=monotonic)

    assert fetcher.requested == [MANIFEST_URL, TIME_SYNC_URL]
    assert len(feedback.messages(NoticeKind.WILL_SKIP_SOME_DATA)) == 1


def test_validate_static_manifest_is_fatal(feedback, monotonic):
    with pytest.raises(UnsupportedFeature):
        validate(MANIFEST_URL, feedback, fetcher=_fetcher(simple_mpd((0, 10), type="static")), monotonic_fn=monotonic)
    kinds = [n.kind for n in feedback.notices]
    assert kinds == [NoticeKind.INFO, NoticeKind.DOWNLOADED_MANIFEST, NoticeKind.INFO]


def test_manifest_fetch_failure_is_fatal(feedback):
    with pytest.raises(TransportFailure):
        validate(MANIFEST_URL, feedback, fetcher=FakeFetcher({}))


def test_bad_time_sync_body_is_fatal(feedback, monotonic):
    fetcher = _fetcher(simple_mpd((0, 10)), sync_body="<html>oops</html>")
    with pytest.raises(ParseError):
        validate(MANIFEST_URL, feedback, fetcher=fetcher, monotonic_fn=monotonic)


def test_validate_rejects_missing_arguments(feedback):
    with pytest.raises(ValueError):
        validate("", feedback)
    with pytest.raises(ValueError):
        validate(MANIFEST_URL, None)


def test_run_validation_returns_tagged_failure(feedback, monotonic):
    outcome = run_validation(
        MANIFEST_URL,
        feedback,
        fetcher=FakeFetcher({MANIFEST_URL: TransportFailure("timed out")}),
        monotonic_fn=monotonic,
    )
    assert not outcome.ok
    assert outcome.failure_kind == "transport_failure"
    assert outcome.failure_message == "timed out"


def test_run_validation_ok(feedback, monotonic):
    outcome = run_validation(
        MANIFEST_URL, feedback, fetcher=_fetcher(simple_mpd((0, 30), tsbd="PT27S")), monotonic_fn=monotonic
    )
    assert outcome.ok
    assert outcome.failure_kind is None


def test_check_manifest_offline(feedback):
    check_manifest(simple_mpd((0, 10), (10, 10)), T0 + timedelta(seconds=20), feedback)
    assert len(feedback.violations) == 1  # window start precedes the first period


def test_check_manifest_rejects_naive_now(feedback):
    with pytest.raises(ValueError):
        check_manifest(simple_mpd((0, 10)), datetime(2024, 1, 1), feedback)


@pytest.mark.parametrize(
    "text, kind",
    [
        ("<MPD", "parse_error"),
        (simple_mpd((0, 10), type="static"), "unsupported_feature"),
    ],
)
def test_run_check_failure_kinds(feedback, text, kind):
    outcome = run_check(text, T0, feedback)
    assert outcome.failure_kind == kind
