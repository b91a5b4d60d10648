"""Projection of a final review outcome onto the pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from rami_action.actions import AnnotationProperties, PipelineSink
from rami_action.output import render_markdown_summary
from rami_action.schema import (
    CallbackRequest,
    CallbackResponse,
    ReviewIssue,
    ReviewOutcome,
    ReviewStatus,
)

OUTPUT_NAMES = (
    "status",
    "total_issues",
    "blocking_count",
    "high_count",
    "medium_count",
    "low_count",
    "files_reviewed",
    "review_url",
)

logger = logging.getLogger(__name__)


class CallbackRegistrar(Protocol):
    def register_callback(self, request: CallbackRequest) -> CallbackResponse: ...


class VerdictKind(StrEnum):
    """How the invocation ends."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class Verdict:
    """Final decision for one invocation."""

    kind: VerdictKind
    message: str = ""

    @property
    def exit_code(self) -> int:
        return 1 if self.kind is VerdictKind.FAILED else 0


def set_outputs(outcome: ReviewOutcome, sink: PipelineSink) -> None:
    """Emit every outputs field as a named pipeline output."""
    outputs = outcome.resolved_outputs
    for name in OUTPUT_NAMES:
        sink.set_output(name, getattr(outputs, name))


def format_issue_message(issue: ReviewIssue) -> str:
    return f"{issue.description}\n\nRisk: {issue.risk}\nFix: {issue.fix}"


def emit_annotations(outcome: ReviewOutcome, sink: PipelineSink) -> int:
    """Emit one annotation per issue and return how many were emitted."""
    if not outcome.issues:
        return 0

    for issue in outcome.issues:
        properties = AnnotationProperties(
            file=issue.file_path,
            line=issue.line_number,
            title=f"[{issue.severity or 'unknown'}] {issue.category}",
        )
        message = format_issue_message(issue)
        if issue.is_error_level:
            sink.error(message, properties)
        else:
            sink.warning(message, properties)
    return len(outcome.issues)


def timeout_message(outcome: ReviewOutcome, max_wait_seconds: float) -> str:
    return (
        f"Review did not complete within {max_wait_seconds:g} seconds. "
        f"Status: {outcome.status}. Please check if the Rami GitHub App is installed "
        "and webhooks are configured."
    )


def _register_callback(registrar: CallbackRegistrar, pr_number: int | None, sink: PipelineSink) -> None:
    """Best-effort request to re-run the workflow once the review turns clean."""
    if pr_number is None:
        sink.warning("Failed to register callback: pull request number is unknown")
        return
    try:
        response = registrar.register_callback(CallbackRequest(pr_number=pr_number))
    except Exception as error:  # noqa: BLE001
        logger.debug("Callback registration failed", exc_info=True)
        sink.warning(f"Failed to register callback: {error}")
        return
    if response.registered:
        sink.info("Registered for automatic re-trigger when review becomes clean")


def decide_verdict(
    outcome: ReviewOutcome,
    *,
    registrar: CallbackRegistrar,
    pr_number: int | None,
    sink: PipelineSink,
    max_wait_seconds: float,
) -> Verdict:
    """Turn a final outcome into a pass/fail verdict."""
    if outcome.status is ReviewStatus.BLOCKED:
        _register_callback(registrar, pr_number, sink)
        blocking = outcome.resolved_outputs.blocking_count
        return Verdict(VerdictKind.FAILED, f"Review blocked: {blocking} blocking issue(s) found")
    if outcome.status is ReviewStatus.ERROR:
        return Verdict(VerdictKind.FAILED, f"Review failed: {outcome.error}")
    if not outcome.is_terminal:
        return Verdict(VerdictKind.FAILED, timeout_message(outcome, max_wait_seconds))
    return Verdict(VerdictKind.PASSED, outcome.summary)


def apply_outcome(
    outcome: ReviewOutcome,
    *,
    registrar: CallbackRegistrar,
    pr_number: int | None,
    sink: PipelineSink,
    max_wait_seconds: float,
) -> Verdict:
    """Publish outputs, annotations and summary, then decide the verdict.

    Each projection is written independently; a runner file that cannot be
    written is reported as a warning and the verdict is still decided.
    """
    try:
        set_outputs(outcome, sink)
    except OSError as error:
        sink.warning(f"Failed to write step outputs: {error}")
    if outcome.summary:
        sink.info(f"Review completed: {outcome.summary}")
    try:
        emit_annotations(outcome, sink)
    except OSError as error:
        sink.warning(f"Failed to emit annotations: {error}")
    try:
        sink.append_summary(render_markdown_summary(outcome))
    except OSError as error:
        sink.warning(f"Failed to write job summary: {error}")
    return decide_verdict(
        outcome,
        registrar=registrar,
        pr_number=pr_number,
        sink=sink,
        max_wait_seconds=max_wait_seconds,
    )
