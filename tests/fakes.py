"""Test doubles and payload builders shared across test modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rami_action.actions import AnnotationProperties


@dataclass
class RecordedAnnotation:
    level: str
    message: str
    properties: AnnotationProperties | None


@dataclass
class RecordingSink:
    """PipelineSink that keeps everything in memory."""

    infos: list[str] = field(default_factory=list)
    annotations: list[RecordedAnnotation] = field(default_factory=list)
    outputs: dict[str, object] = field(default_factory=dict)
    summaries: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    def info(self, message: str) -> None:
        self.infos.append(message)

    def warning(self, message: str, properties: AnnotationProperties | None = None) -> None:
        self.annotations.append(RecordedAnnotation("warning", message, properties))

    def error(self, message: str, properties: AnnotationProperties | None = None) -> None:
        self.annotations.append(RecordedAnnotation("error", message, properties))

    def set_output(self, name: str, value: object) -> None:
        self.outputs[name] = value

    def append_summary(self, markdown: str) -> None:
        self.summaries.append(markdown)

    def set_failed(self, message: str) -> None:
        self.failures.append(message)

    @property
    def warnings(self) -> list[str]:
        return [item.message for item in self.annotations if item.level == "warning"]


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_outputs_payload(status: str = "clean", **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "status": status,
        "blocking_count": 0,
        "high_count": 0,
        "medium_count": 0,
        "low_count": 0,
        "total_issues": 0,
        "files_reviewed": 5,
        "review_url": "https://github.com/acme/rocket/pull/42",
    }
    payload.update(overrides)
    return payload


def make_outcome_payload(status: str = "clean", **overrides: Any) -> dict[str, Any]:
    """Build a review/status response body."""
    payload: dict[str, Any] = {
        "status": status,
        "pr_url": "https://github.com/acme/rocket/pull/42",
        "summary": "Reviewed 5 files. No issues found.",
        "outputs": make_outputs_payload(status),
    }
    payload.update(overrides)
    return payload


def make_issue_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "file_path": "src/app.py",
        "line_number": 12,
        "severity": "high",
        "category": "security",
        "description": "User input reaches a shell command.",
        "problem": "Command injection.",
        "risk": "Remote code execution.",
        "fix": "Pass arguments as a list.",
    }
    payload.update(overrides)
    return payload
