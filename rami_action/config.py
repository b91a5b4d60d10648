"""Settings resolution from action inputs, environment and CLI overrides."""

from __future__ import annotations

import math
import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from rami_action.actions import get_input, resolve_pull_request_context
from rami_action.poller import DEFAULT_MAX_WAIT_SECONDS, DEFAULT_POLL_INTERVAL_SECONDS, PollConfig

DEFAULT_API_URL = "https://rami.reviews"
DEFAULT_AUDIENCE = "https://rami.reviews"
DEFAULT_FAIL_ON = "low"
PR_URL_NUMBER_PATTERN = re.compile(r"/pull/(?P<number>\d+)(?:/|$)")

API_URL_ENV_VAR = "RAMI_API_URL"
AUDIENCE_ENV_VAR = "RAMI_AUDIENCE"
TOKEN_ENV_VAR = "RAMI_TOKEN"
MAX_WAIT_ENV_VAR = "RAMI_MAX_WAIT_SECONDS"
POLL_INTERVAL_ENV_VAR = "RAMI_POLL_INTERVAL_SECONDS"

TRUE_VALUES = frozenset({"true", "True", "TRUE"})
FALSE_VALUES = frozenset({"false", "False", "FALSE"})


class ActionConfigError(ValueError):
    """Raised when inputs or environment values are invalid."""


@dataclass(frozen=True, slots=True)
class ActionSettings:
    """Resolved configuration for one invocation."""

    api_url: str = DEFAULT_API_URL
    audience: str = DEFAULT_AUDIENCE
    token: str | None = None
    fail_on: str = DEFAULT_FAIL_ON
    post_comments: bool | None = None
    pr_number: int | None = None
    pr_url: str | None = None
    repository: str | None = None
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    @property
    def poll_config(self) -> PollConfig:
        return PollConfig(
            max_wait_seconds=self.max_wait_seconds,
            poll_interval_seconds=self.poll_interval_seconds,
        )


def parse_bool_input(name: str, value: str) -> bool | None:
    """Parse a YAML 1.2 core-schema boolean input; empty means unset."""
    if not value:
        return None
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ActionConfigError(
        f"Input '{name}' must be one of true|True|TRUE|false|False|FALSE, got '{value}'."
    )


def _parse_seconds(name: str, value: str | float | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        seconds = float(value)
    except ValueError as error:
        raise ActionConfigError(f"{name} must be a number of seconds, got '{value}'.") from error
    if not math.isfinite(seconds):
        raise ActionConfigError(f"{name} must be a finite number of seconds, got '{value}'.")
    if seconds < 0:
        raise ActionConfigError(f"{name} must be non-negative, got '{value}'.")
    return seconds


def _parse_pr_number(value: str | int | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except ValueError as error:
        raise ActionConfigError(f"Invalid PR number '{value}'. Expected a positive integer.") from error
    if number < 1:
        raise ActionConfigError(f"Invalid PR number '{value}'. Expected a positive integer.")
    return number


def pr_number_from_url(pr_url: str | None) -> int | None:
    """Extract the pull request number from a ``.../pull/<n>`` URL."""
    if not pr_url:
        return None
    match = PR_URL_NUMBER_PATTERN.search(pr_url)
    if match is None:
        return None
    return int(match.group("number"))


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def load_settings(
    overrides: Mapping[str, Any] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    input_reader: Callable[[str], str] | None = None,
    load_env_file: bool = True,
) -> ActionSettings:
    """
    Resolve settings by precedence:
      1. CLI overrides
      2. Action inputs (INPUT_*)
      3. RAMI_* environment variables (``.env`` is loaded without overriding)
      4. Built-in defaults; the PR number falls back to the workflow event
    """
    if load_env_file and environ is None:
        load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    env = os.environ if environ is None else environ
    read_input = input_reader or (lambda name: get_input(name, environ=env))
    cli = dict(overrides or {})

    api_url = _first(cli.get("api_url"), read_input("api_url"), env.get(API_URL_ENV_VAR))
    audience = _first(cli.get("audience"), env.get(AUDIENCE_ENV_VAR))
    fail_on = _first(cli.get("fail_on"), read_input("fail_on"))
    post_comments = cli.get("post_comments")
    if post_comments is None:
        post_comments = parse_bool_input("post_comments", read_input("post_comments"))

    pr_url = _first(cli.get("pr_url"), read_input("pr_url"))
    pr_number = _parse_pr_number(_first(cli.get("pr_number"), read_input("pr_number")))
    repository = _first(cli.get("repository"), read_input("repository"))
    if pr_number is None:
        pr_number = pr_number_from_url(pr_url)
    if pr_number is None or repository is None:
        context = resolve_pull_request_context(environ=env)
        pr_number = pr_number if pr_number is not None else context.number
        repository = repository or context.repository

    max_wait = _parse_seconds(
        "max_wait_seconds",
        _first(cli.get("max_wait_seconds"), read_input("max_wait_seconds"), env.get(MAX_WAIT_ENV_VAR)),
        DEFAULT_MAX_WAIT_SECONDS,
    )
    interval = _parse_seconds(
        "poll_interval_seconds",
        _first(
            cli.get("poll_interval_seconds"),
            read_input("poll_interval_seconds"),
            env.get(POLL_INTERVAL_ENV_VAR),
        ),
        DEFAULT_POLL_INTERVAL_SECONDS,
    )
    if interval <= 0:
        raise ActionConfigError("poll_interval_seconds must be positive.")

    return ActionSettings(
        api_url=api_url or DEFAULT_API_URL,
        audience=audience or DEFAULT_AUDIENCE,
        token=_first(cli.get("token"), env.get(TOKEN_ENV_VAR)),
        fail_on=str(fail_on).strip().lower() if fail_on else DEFAULT_FAIL_ON,
        post_comments=post_comments,
        pr_number=pr_number,
        pr_url=pr_url,
        repository=repository,
        max_wait_seconds=max_wait,
        poll_interval_seconds=interval,
    )
