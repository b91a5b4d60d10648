"""Markdown job summary rendering."""

from __future__ import annotations

from rami_action.schema import ReviewOutcome

STATUS_LABELS = {
    "clean": "Clean",
    "blocked": "Blocked",
    "error": "Error",
    "in_progress": "Timed out (in progress)",
    "not_found": "Timed out (not found)",
}


def _escape_cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")


def render_markdown_summary(outcome: ReviewOutcome) -> str:
    """Render a job summary for the step summary page."""
    outputs = outcome.resolved_outputs
    label = STATUS_LABELS.get(outcome.status.value, outcome.status.value)
    lines = ["## Rami review", "", f"Status: `{label}`", ""]
    if outcome.summary:
        lines.extend([outcome.summary, ""])

    lines.append("| Blocking | High | Medium | Low | Total | Files reviewed |")
    lines.append("| --- | --- | --- | --- | --- | --- |")
    lines.append(
        f"| {outputs.blocking_count} | {outputs.high_count} | {outputs.medium_count} "
        f"| {outputs.low_count} | {outputs.total_issues} | {outputs.files_reviewed} |"
    )
    if outputs.review_url:
        lines.extend(["", f"[View review]({outputs.review_url})"])

    if not outcome.issues:
        return "\n".join(lines)

    lines.extend(["", "### Issues", ""])
    for issue in outcome.issues:
        location = f"{issue.file_path}:{issue.line_number}"
        severity = issue.severity or "unknown"
        lines.append(
            f"- **{severity} / {issue.category or 'general'}** at `{location}`: "
            f"{_escape_cell(issue.description)}"
        )
    return "\n".join(lines)
