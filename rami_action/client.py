"""Rami actions API wrapper and failure classification."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from rami_action.schema import (
    CallbackRequest,
    CallbackResponse,
    ReviewOutcome,
    ReviewRequest,
    ReviewStatus,
    StatusQuery,
)

REVIEW_ENDPOINT = "/api/v1/actions/review"
STATUS_ENDPOINT = "/api/v1/actions/status"
CALLBACK_ENDPOINT = "/api/v1/actions/callback"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Quota, plan and server-side unavailability: no verdict rather than a failed pipeline.
SKIPPABLE_STATUS_CODES = frozenset({402, 403, 429, 500, 502, 503, 504})

logger = logging.getLogger(__name__)


class RamiApiError(RuntimeError):
    """Raised when a Rami API request returns a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        endpoint: str,
        body: str = "",
        should_skip: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
        self.body = body
        self.should_skip = should_skip


class RamiResponseError(RuntimeError):
    """Raised when a successful response body cannot be decoded."""

    def __init__(self, message: str, *, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class ReviewFailedError(RuntimeError):
    """Raised when the service reports ``status: error`` in a 2xx body."""


def should_skip_status(status_code: int) -> bool:
    """Return whether a failed status check should end without a verdict."""
    return status_code in SKIPPABLE_STATUS_CODES


def normalize_base_url(base_url: str) -> str:
    """Strip a single trailing slash from the configured endpoint."""
    if base_url.endswith("/"):
        return base_url[:-1]
    return base_url


def _decode_json(response: httpx.Response, endpoint: str) -> dict[str, Any]:
    """Decode a JSON object body."""
    try:
        payload = response.json()
    except ValueError as error:
        raise RamiResponseError(
            f"Rami API returned invalid JSON for '{endpoint}'.",
            endpoint=endpoint,
        ) from error
    if not isinstance(payload, dict):
        raise RamiResponseError(
            f"Expected JSON object in Rami response for '{endpoint}'.",
            endpoint=endpoint,
        )
    return payload


def _raise_for_application_error(payload: dict[str, Any], *, prefix: str) -> None:
    """Raise ReviewFailedError when the body reports an error status."""
    if payload.get("status") != ReviewStatus.ERROR.value:
        return
    detail = payload.get("error") or payload.get("summary") or "unknown error"
    raise ReviewFailedError(f"{prefix}: {detail}")


def _parse_outcome(payload: dict[str, Any], endpoint: str) -> ReviewOutcome:
    try:
        return ReviewOutcome.model_validate(payload)
    except ValidationError as error:
        raise RamiResponseError(
            f"Unexpected review payload from '{endpoint}': {error}",
            endpoint=endpoint,
        ) from error


class RamiClient:
    """Authenticated client for the Rami actions endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = normalize_base_url(base_url)
        self._http = httpx.Client(
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout_seconds,
            transport=transport,
        )

    def __enter__(self) -> RamiClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    def close(self) -> None:
        self._http.close()

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    def _post(self, endpoint: str, body: BaseModel) -> httpx.Response:
        logger.debug("POST %s", endpoint)
        return self._http.post(
            self._url(endpoint),
            headers={"Content-Type": "application/json"},
            content=body.model_dump_json(exclude_none=True),
        )

    def submit_review(self, request: ReviewRequest) -> ReviewOutcome:
        """Create a review. Every HTTP failure here is fatal."""
        response = self._post(REVIEW_ENDPOINT, request)
        if not response.is_success:
            raise RamiApiError(
                f"Rami API request failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
                endpoint=REVIEW_ENDPOINT,
                body=response.text,
            )
        payload = _decode_json(response, REVIEW_ENDPOINT)
        _raise_for_application_error(payload, prefix="Rami review failed")
        return _parse_outcome(payload, REVIEW_ENDPOINT)

    def get_status(self, query: StatusQuery) -> ReviewOutcome:
        """Fetch the current review status for a pull request."""
        logger.debug("GET %s pr_number=%s", STATUS_ENDPOINT, query.pr_number)
        response = self._http.get(self._url(STATUS_ENDPOINT), params=query.to_params())
        if not response.is_success:
            raise RamiApiError(
                f"Rami API request failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
                endpoint=STATUS_ENDPOINT,
                body=response.text,
                should_skip=should_skip_status(response.status_code),
            )
        payload = _decode_json(response, STATUS_ENDPOINT)
        _raise_for_application_error(payload, prefix="Rami status check failed")
        return _parse_outcome(payload, STATUS_ENDPOINT)

    def register_callback(self, request: CallbackRequest) -> CallbackResponse:
        """Ask the service to re-trigger the workflow once the review is clean."""
        response = self._post(CALLBACK_ENDPOINT, request)
        if not response.is_success:
            raise RamiApiError(
                f"Rami callback registration failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
                endpoint=CALLBACK_ENDPOINT,
                body=response.text,
            )
        payload = _decode_json(response, CALLBACK_ENDPOINT)
        try:
            return CallbackResponse.model_validate(payload)
        except ValidationError as error:
            raise RamiResponseError(
                f"Unexpected callback payload from '{CALLBACK_ENDPOINT}': {error}",
                endpoint=CALLBACK_ENDPOINT,
            ) from error
