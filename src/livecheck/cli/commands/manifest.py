"""
Manifest command group.

Exit codes: 0 when no violations were found, 1 when the timeline has
violations, 2 when the run was aborted by a fatal error.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import typer

from livecheck.feedback import (
    FeedbackSink,
    LoggingFeedbackSink,
    NoticeKind,
    RecordingFeedbackSink,
    TeeFeedbackSink,
)
from livecheck.infra.exceptions import ParseError
from livecheck.manifest.loader import parse_datetime
from livecheck.transport import HttpFetcher
from livecheck.validator import ValidationOutcome, run_check, run_validation

app = typer.Typer(name="manifest", help="Validate live manifests against their playback window")

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_FATAL = 2

_MARKERS = {
    NoticeKind.INFO: " ",
    NoticeKind.DOWNLOADED_MANIFEST: " ",
    NoticeKind.INVALID_CONTENT: "✗",
    NoticeKind.WILL_SKIP_SOME_DATA: "!",
}


def _sink(recorder: RecordingFeedbackSink, log_notices: bool) -> FeedbackSink:
    if log_notices:
        return TeeFeedbackSink(recorder, LoggingFeedbackSink())
    return recorder


def _format_json_output(recorder: RecordingFeedbackSink, outcome: ValidationOutcome) -> str:
    if not outcome.ok:
        status = "error"
    elif recorder.violations:
        status = "invalid"
    else:
        status = "ok"
    result = {
        "status": status,
        "failure_kind": outcome.failure_kind,
        "failure_message": outcome.failure_message,
        "violations": len(recorder.violations),
        "notices": [n.to_dict() for n in recorder.notices],
    }
    return json.dumps(result, indent=2)


def _format_human_output(recorder: RecordingFeedbackSink, outcome: ValidationOutcome) -> str:
    lines = [f"{_MARKERS[n.kind]} {n.message}" for n in recorder.notices]
    if not outcome.ok:
        lines.append(f"✗ Validation aborted ({outcome.failure_kind}): {outcome.failure_message}")
    elif recorder.violations:
        lines.append(f"✗ {len(recorder.violations)} timeline violation(s) found")
    else:
        lines.append("✓ No timeline violations found")
    return "\n".join(lines)


def _finish(recorder: RecordingFeedbackSink, outcome: ValidationOutcome, json_output: bool) -> None:
    if json_output:
        typer.echo(_format_json_output(recorder, outcome))
    else:
        typer.echo(_format_human_output(recorder, outcome))

    if not outcome.ok:
        raise typer.Exit(EXIT_FATAL)
    raise typer.Exit(EXIT_VIOLATIONS if recorder.violations else EXIT_OK)


@app.command("validate")
def validate_cmd(
    manifest_url: str = typer.Argument(..., help="URL of a dynamic MPD"),
    timeout: float = typer.Option(None, "--timeout", help="Request timeout in seconds"),
    log_notices: bool = typer.Option(False, "--log-notices", help="Also log every notice"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Download a live manifest, synchronize the clock and check its timeline."""
    recorder = RecordingFeedbackSink()
    fetcher = HttpFetcher(timeout=timeout)
    try:
        outcome = run_validation(manifest_url, _sink(recorder, log_notices), fetcher=fetcher)
    finally:
        fetcher.close()
    _finish(recorder, outcome, json_output)


@app.command("check")
def check_cmd(
    manifest_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Local MPD file"),
    now: str = typer.Option(..., "--now", help="ISO-8601 timestamp to treat as 'now'"),
    log_notices: bool = typer.Option(False, "--log-notices", help="Also log every notice"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Check a local manifest file against an explicit 'now'. No network access."""
    try:
        now_ts: datetime = parse_datetime(now, "--now")
    except ParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_FATAL)

    recorder = RecordingFeedbackSink()
    try:
        manifest_text = manifest_file.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        outcome = ValidationOutcome.from_error(
            ParseError(f"Manifest file is not valid UTF-8: {e}")
        )
    else:
        outcome = run_check(manifest_text, now_ts, _sink(recorder, log_notices))
    _finish(recorder, outcome, json_output)
