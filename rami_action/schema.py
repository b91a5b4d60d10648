"""Wire contract for the Rami actions API."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReviewStatus(StrEnum):
    """Review status reported by the service."""

    CLEAN = "clean"
    BLOCKED = "blocked"
    ERROR = "error"
    IN_PROGRESS = "in_progress"
    NOT_FOUND = "not_found"

    @property
    def is_terminal(self) -> bool:
        """Return whether polling should stop at this status."""
        return self not in (ReviewStatus.IN_PROGRESS, ReviewStatus.NOT_FOUND)


class Severity(StrEnum):
    """Known issue severities, most severe first."""

    BLOCKING = "blocking"
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


ERROR_SEVERITIES = frozenset({Severity.BLOCKING, Severity.CRITICAL})


def parse_severity(value: str | None) -> Severity | None:
    """Parse a severity case-insensitively, returning None when unknown."""
    if not value:
        return None
    try:
        return Severity(value.strip().lower())
    except ValueError:
        return None


class ReviewRequest(BaseModel):
    """Body of a submit-review call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pr_url: str | None = None
    pr_number: int | None = Field(default=None, ge=1)
    repository: str | None = None
    fail_on: str | None = None
    post_comments: bool | None = None

    @model_validator(mode="after")
    def validate_target(self) -> ReviewRequest:
        """Require a pull request reference."""
        if self.pr_url is None and self.pr_number is None:
            raise ValueError("ReviewRequest needs pr_url or pr_number.")
        return self


class StatusQuery(BaseModel):
    """Query of a get-status call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pr_number: int = Field(ge=1)
    fail_on: str | None = None

    def to_params(self) -> dict[str, str]:
        params = {"pr_number": str(self.pr_number)}
        if self.fail_on:
            params["fail_on"] = self.fail_on
        return params


class ReviewIssue(BaseModel):
    """One finding flagged by the review."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    file_path: str = Field(min_length=1)
    line_number: int = Field(ge=1)
    severity: str | None = None
    category: str = ""
    description: str = ""
    problem: str = ""
    risk: str = ""
    fix: str = ""
    suggested_code: str | None = None

    @property
    def severity_level(self) -> Severity | None:
        return parse_severity(self.severity)

    @property
    def is_error_level(self) -> bool:
        """Return whether the issue should be reported as an error annotation."""
        return self.severity_level in ERROR_SEVERITIES


class ReviewOutputs(BaseModel):
    """Fixed-shape counters exposed as pipeline outputs."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    status: str = ""
    total_issues: int = Field(default=0, ge=0)
    blocking_count: int = Field(default=0, ge=0)
    high_count: int = Field(default=0, ge=0)
    medium_count: int = Field(default=0, ge=0)
    low_count: int = Field(default=0, ge=0)
    files_reviewed: int = Field(default=0, ge=0)
    review_url: str = ""


class ReviewOutcome(BaseModel):
    """Review result returned by both the review and status endpoints."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    status: ReviewStatus
    pr_url: str = ""
    summary: str = ""
    outputs: ReviewOutputs | None = None
    issues: tuple[ReviewIssue, ...] | None = None
    annotations: tuple[str, ...] | None = None
    error: str | None = None

    @model_validator(mode="after")
    def validate_status_fields(self) -> ReviewOutcome:
        """Enforce the fields each status must carry."""
        if self.status is ReviewStatus.ERROR and not self.error:
            raise ValueError("error status requires an error message")
        if self.status in (ReviewStatus.CLEAN, ReviewStatus.BLOCKED) and self.outputs is None:
            raise ValueError(f"{self.status} status requires outputs")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def resolved_outputs(self) -> ReviewOutputs:
        """Return outputs, zeroed with the current status when the service sent none."""
        if self.outputs is not None:
            return self.outputs
        return ReviewOutputs(status=self.status.value)


class CallbackRequest(BaseModel):
    """Body of a register-callback call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pr_number: int = Field(ge=1)


class CallbackResponse(BaseModel):
    """Result of a register-callback call."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    registered: bool
    expires_at: str | None = None
    message: str | None = None
