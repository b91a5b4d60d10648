"""Typer CLI for the Rami review gate."""

from __future__ import annotations

import logging
from typing import Annotated, Any

import typer

from rami_action.actions import GitHubActionsSink
from rami_action.config import ActionConfigError, load_settings
from rami_action.runner import run_action

app = typer.Typer(help="Gate a CI pipeline on the result of a Rami code review.")

PrNumberOption = Annotated[
    int | None, typer.Option("--pr-number", help="Pull request number (defaults to the workflow event).")
]
FailOnOption = Annotated[
    str | None, typer.Option("--fail-on", help="Lowest severity that blocks: blocking|critical|high|medium|low.")
]
ApiUrlOption = Annotated[str | None, typer.Option("--api-url", help="Override the Rami API base URL.")]
MaxWaitOption = Annotated[
    float | None, typer.Option("--max-wait-seconds", help="Total time budget for status polling.")
]
IntervalOption = Annotated[
    float | None, typer.Option("--poll-interval-seconds", help="Pause between status polls.")
]
VerboseOption = Annotated[bool, typer.Option(help="Enable debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _run(overrides: dict[str, Any], *, submit: bool) -> None:
    sink = GitHubActionsSink()
    try:
        settings = load_settings(overrides)
    except ActionConfigError as error:
        sink.set_failed(str(error))
        raise typer.Exit(code=1) from error

    verdict = run_action(settings, sink=sink, submit=submit)
    raise typer.Exit(code=verdict.exit_code)


@app.command("status")
def status_command(
    pr_number: PrNumberOption = None,
    fail_on: FailOnOption = None,
    api_url: ApiUrlOption = None,
    max_wait_seconds: MaxWaitOption = None,
    poll_interval_seconds: IntervalOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Wait for the webhook-triggered review of a pull request and report it."""
    _configure_logging(verbose)
    _run(
        {
            "pr_number": pr_number,
            "fail_on": fail_on,
            "api_url": api_url,
            "max_wait_seconds": max_wait_seconds,
            "poll_interval_seconds": poll_interval_seconds,
        },
        submit=False,
    )


@app.command("review")
def review_command(
    pr_number: PrNumberOption = None,
    pr_url: Annotated[str | None, typer.Option("--pr-url", help="Pull request URL.")] = None,
    repository: Annotated[
        str | None, typer.Option("--repository", help="Repository in owner/repo format.")
    ] = None,
    fail_on: FailOnOption = None,
    post_comments: Annotated[
        bool | None,
        typer.Option(
            "--post-comments/--no-post-comments",
            help="Ask the service to post review comments on the pull request.",
        ),
    ] = None,
    api_url: ApiUrlOption = None,
    max_wait_seconds: MaxWaitOption = None,
    poll_interval_seconds: IntervalOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Submit a review request, wait for it to finish and report it."""
    _configure_logging(verbose)
    _run(
        {
            "pr_number": pr_number,
            "pr_url": pr_url,
            "repository": repository,
            "fail_on": fail_on,
            "post_comments": post_comments,
            "api_url": api_url,
            "max_wait_seconds": max_wait_seconds,
            "poll_interval_seconds": poll_interval_seconds,
        },
        submit=True,
    )
