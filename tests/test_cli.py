"""Tests for the CLI commands."""

from __future__ import annotations

from typing import Any

import pytest
from rami_action import cli
from rami_action.config import ActionSettings
from rami_action.outcome import Verdict, VerdictKind
from typer.testing import CliRunner

runner = CliRunner()


class RecordingRun:
    """Stands in for run_action and remembers how it was called."""

    def __init__(self, verdict: Verdict) -> None:
        self.verdict = verdict
        self.calls: list[tuple[ActionSettings, bool]] = []

    def __call__(self, settings: ActionSettings, *, sink: Any, submit: bool) -> Verdict:
        self.calls.append((settings, submit))
        return self.verdict


@pytest.mark.unit
@pytest.mark.parametrize(
    ("kind", "exit_code"),
    [(VerdictKind.PASSED, 0), (VerdictKind.SKIPPED, 0), (VerdictKind.FAILED, 1)],
)
def test_status_exit_code_follows_verdict(
    monkeypatch: pytest.MonkeyPatch, kind: VerdictKind, exit_code: int
) -> None:
    fake_run = RecordingRun(Verdict(kind, "message"))
    monkeypatch.setattr(cli, "run_action", fake_run)

    result = runner.invoke(cli.app, ["status", "--pr-number", "42", "--fail-on", "High"])

    assert result.exit_code == exit_code
    settings, submit = fake_run.calls[0]
    assert submit is False
    assert settings.pr_number == 42
    assert settings.fail_on == "high"


@pytest.mark.unit
def test_review_passes_submission_options(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_run = RecordingRun(Verdict(VerdictKind.PASSED))
    monkeypatch.setattr(cli, "run_action", fake_run)

    result = runner.invoke(
        cli.app,
        [
            "review",
            "--pr-url",
            "https://github.com/acme/rocket/pull/5",
            "--repository",
            "acme/rocket",
            "--no-post-comments",
            "--max-wait-seconds",
            "60",
            "--poll-interval-seconds",
            "5",
        ],
    )

    assert result.exit_code == 0
    settings, submit = fake_run.calls[0]
    assert submit is True
    assert settings.pr_number == 5
    assert settings.repository == "acme/rocket"
    assert settings.post_comments is False
    assert settings.poll_config.max_wait_seconds == 60
    assert settings.poll_config.poll_interval_seconds == 5


@pytest.mark.unit
def test_invalid_input_fails_before_running(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_run = RecordingRun(Verdict(VerdictKind.PASSED))
    monkeypatch.setattr(cli, "run_action", fake_run)
    monkeypatch.setenv("INPUT_POST_COMMENTS", "maybe")

    result = runner.invoke(cli.app, ["review", "--pr-number", "3"])

    assert result.exit_code == 1
    assert "::error::Input 'post_comments' must be one of" in result.output
    assert fake_run.calls == []
