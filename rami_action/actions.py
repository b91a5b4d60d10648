"""GitHub Actions pipeline surface: inputs, outputs, annotations and identity."""

from __future__ import annotations

import json
import os
import sys
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Protocol

import httpx

ID_TOKEN_REQUEST_URL_ENV_VAR = "ACTIONS_ID_TOKEN_REQUEST_URL"
ID_TOKEN_REQUEST_TOKEN_ENV_VAR = "ACTIONS_ID_TOKEN_REQUEST_TOKEN"
OUTPUT_FILE_ENV_VAR = "GITHUB_OUTPUT"
STEP_SUMMARY_ENV_VAR = "GITHUB_STEP_SUMMARY"
EVENT_PATH_ENV_VAR = "GITHUB_EVENT_PATH"
REPOSITORY_ENV_VAR = "GITHUB_REPOSITORY"


class IdentityTokenError(RuntimeError):
    """Raised when an OIDC identity token cannot be obtained."""


@dataclass(frozen=True, slots=True)
class AnnotationProperties:
    """Location and title attached to an annotation."""

    file: str | None = None
    line: int | None = None
    title: str | None = None


@dataclass(frozen=True, slots=True)
class PullRequestContext:
    """Pull request that triggered the workflow."""

    number: int | None
    repository: str | None


class PipelineSink(Protocol):
    """Everything the review gate writes back to the pipeline."""

    def info(self, message: str) -> None: ...

    def warning(self, message: str, properties: AnnotationProperties | None = None) -> None: ...

    def error(self, message: str, properties: AnnotationProperties | None = None) -> None: ...

    def set_output(self, name: str, value: object) -> None: ...

    def append_summary(self, markdown: str) -> None: ...

    def set_failed(self, message: str) -> None: ...


def escape_data(value: str) -> str:
    """Escape a workflow command message."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    """Escape a workflow command property value."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_command(
    command: str,
    message: str,
    properties: AnnotationProperties | None = None,
) -> str:
    """Render a ``::command key=value::message`` workflow command."""
    pairs: list[str] = []
    if properties is not None:
        if properties.file:
            pairs.append(f"file={escape_property(properties.file)}")
        if properties.line is not None:
            pairs.append(f"line={properties.line}")
        if properties.title:
            pairs.append(f"title={escape_property(properties.title)}")
    rendered_properties = f" {','.join(pairs)}" if pairs else ""
    return f"::{command}{rendered_properties}::{escape_data(message)}"


class GitHubActionsSink:
    """PipelineSink that speaks the GitHub Actions runner protocol."""

    def __init__(
        self,
        *,
        environ: Mapping[str, str] | None = None,
        stream: IO[str] | None = None,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        self._stream = stream or sys.stdout

    def _write(self, line: str) -> None:
        self._stream.write(f"{line}\n")
        self._stream.flush()

    def info(self, message: str) -> None:
        self._write(message)

    def warning(self, message: str, properties: AnnotationProperties | None = None) -> None:
        self._write(format_command("warning", message, properties))

    def error(self, message: str, properties: AnnotationProperties | None = None) -> None:
        self._write(format_command("error", message, properties))

    def set_output(self, name: str, value: object) -> None:
        rendered = value if isinstance(value, str) else json.dumps(value)
        output_path = self._environ.get(OUTPUT_FILE_ENV_VAR)
        if not output_path:
            self._write(f"::set-output name={escape_property(name)}::{escape_data(rendered)}")
            return
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        with Path(output_path).open("a", encoding="utf-8") as handle:
            handle.write(f"{name}<<{delimiter}\n{rendered}\n{delimiter}\n")

    def append_summary(self, markdown: str) -> None:
        summary_path = self._environ.get(STEP_SUMMARY_ENV_VAR)
        if not summary_path:
            return
        with Path(summary_path).open("a", encoding="utf-8") as handle:
            handle.write(f"{markdown}\n")

    def set_failed(self, message: str) -> None:
        self.error(message)


def get_input(name: str, *, environ: Mapping[str, str] | None = None) -> str:
    """Read an action input the way the runner exposes it (``INPUT_<NAME>``)."""
    env = os.environ if environ is None else environ
    key = f"INPUT_{name.replace(' ', '_').upper()}"
    return env.get(key, "").strip()


def fetch_id_token(
    audience: str,
    *,
    environ: Mapping[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Request a short-lived OIDC token for ``audience`` from the Actions runtime."""
    env = os.environ if environ is None else environ
    request_url = env.get(ID_TOKEN_REQUEST_URL_ENV_VAR)
    request_token = env.get(ID_TOKEN_REQUEST_TOKEN_ENV_VAR)
    missing = [
        name
        for name, value in (
            (ID_TOKEN_REQUEST_URL_ENV_VAR, request_url),
            (ID_TOKEN_REQUEST_TOKEN_ENV_VAR, request_token),
        )
        if not value
    ]
    if missing:
        raise IdentityTokenError(
            f"Unable to get an OIDC token: {', '.join(missing)} is not set. "
            "Add `permissions: id-token: write` to the workflow."
        )

    with httpx.Client(transport=transport, timeout=30.0) as client:
        response = client.get(
            request_url,
            params={"audience": audience},
            headers={"Authorization": f"Bearer {request_token}"},
        )
    if not response.is_success:
        raise IdentityTokenError(
            f"OIDC token request failed with status {response.status_code}: {response.text}"
        )
    try:
        payload: Any = response.json()
    except ValueError as error:
        raise IdentityTokenError("OIDC token response was not valid JSON.") from error
    token = payload.get("value") if isinstance(payload, dict) else None
    if not isinstance(token, str) or not token:
        raise IdentityTokenError("OIDC token response did not include a token value.")
    return token


def resolve_pull_request_context(
    *,
    environ: Mapping[str, str] | None = None,
) -> PullRequestContext:
    """Read the triggering pull request number and repository from the runner."""
    env = os.environ if environ is None else environ
    repository = env.get(REPOSITORY_ENV_VAR) or None
    event_path = env.get(EVENT_PATH_ENV_VAR)
    if not event_path or not Path(event_path).is_file():
        return PullRequestContext(number=None, repository=repository)

    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return PullRequestContext(number=None, repository=repository)
    if not isinstance(payload, dict):
        return PullRequestContext(number=None, repository=repository)

    number: object = None
    pull_request = payload.get("pull_request")
    if isinstance(pull_request, dict):
        number = pull_request.get("number")
    if number is None and isinstance(payload.get("issue"), dict):
        issue = payload["issue"]
        if "pull_request" in issue:
            number = issue.get("number")

    if not isinstance(number, int) or isinstance(number, bool) or number < 1:
        number = None
    return PullRequestContext(number=number, repository=repository)
