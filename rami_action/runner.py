"""Review gate orchestration: poll-only and submit-then-poll entry points."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import httpx

from rami_action.actions import IdentityTokenError, PipelineSink, fetch_id_token
from rami_action.client import RamiApiError, RamiClient, RamiResponseError, ReviewFailedError
from rami_action.config import ActionConfigError, ActionSettings, pr_number_from_url
from rami_action.outcome import Verdict, VerdictKind, apply_outcome
from rami_action.poller import StatusPoller
from rami_action.schema import ReviewOutcome, ReviewRequest, StatusQuery

PRICING_URL = "https://rami.reviews/pricing"
MISSING_PR_MESSAGE = (
    "Could not determine PR number. This action must run on pull_request events "
    "or be given pr_number."
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str], RamiClient]
TokenProvider = Callable[[str], str]


def _default_client_factory(base_url: str, token: str) -> RamiClient:
    return RamiClient(base_url, token)


def _await_outcome(
    client: RamiClient,
    poller: StatusPoller,
    settings: ActionSettings,
    *,
    submit: bool,
    sink: PipelineSink,
) -> ReviewOutcome:
    """Return the final outcome, submitting first when asked to."""
    pr_number = settings.pr_number
    if submit:
        request = ReviewRequest(
            pr_url=settings.pr_url,
            pr_number=pr_number,
            repository=settings.repository,
            fail_on=settings.fail_on,
            post_comments=settings.post_comments,
        )
        submitted = client.submit_review(request)
        if submitted.is_terminal:
            return submitted
        pr_number = pr_number or pr_number_from_url(submitted.pr_url)
        if pr_number is None:
            raise ActionConfigError(MISSING_PR_MESSAGE)
        sink.info(f"Review submitted ({submitted.status}); waiting for completion...")

    result = poller.run(StatusQuery(pr_number=pr_number, fail_on=settings.fail_on))
    return result.outcome


def run_action(
    settings: ActionSettings,
    *,
    sink: PipelineSink,
    submit: bool = False,
    token_provider: TokenProvider = fetch_id_token,
    client_factory: ClientFactory = _default_client_factory,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Verdict:
    """Run one invocation and return its verdict.

    Every failure is handled here. A skippable status-check failure on the
    first call ends neutrally with a warning; everything else fails.
    """
    poller: StatusPoller | None = None
    try:
        if settings.pr_number is None and not (submit and settings.pr_url):
            raise ActionConfigError(MISSING_PR_MESSAGE)

        target = f"#{settings.pr_number}" if settings.pr_number else settings.pr_url
        if submit:
            sink.info(f"Requesting review for PR {target}...")
        else:
            sink.info(f"Checking review status for PR {target}...")
        sink.info(f"Fail on: {settings.fail_on}")

        token = settings.token or token_provider(settings.audience)
        with client_factory(settings.api_url, token) as client:
            poller = StatusPoller(
                client,
                settings.poll_config,
                sink=sink,
                clock=clock,
                sleep=sleep,
            )
            outcome = _await_outcome(client, poller, settings, submit=submit, sink=sink)
            verdict = apply_outcome(
                outcome,
                registrar=client,
                pr_number=settings.pr_number or pr_number_from_url(outcome.pr_url),
                sink=sink,
                max_wait_seconds=settings.max_wait_seconds,
            )
    except RamiApiError as error:
        initial_call = not submit and poller is not None and poller.attempts <= 1
        if error.should_skip and initial_call:
            return _skip(error, sink)
        verdict = Verdict(VerdictKind.FAILED, str(error))
    except (
        ReviewFailedError,
        RamiResponseError,
        IdentityTokenError,
        ActionConfigError,
        httpx.HTTPError,
    ) as error:
        verdict = Verdict(VerdictKind.FAILED, str(error))

    if verdict.kind is VerdictKind.FAILED:
        logger.debug("Invocation failed: %s", verdict.message)
        sink.set_failed(verdict.message)
    return verdict


def _skip(error: RamiApiError, sink: PipelineSink) -> Verdict:
    message = f"Skipping Rami review: {error}"
    sink.warning(message)
    sink.info(
        "This may be due to plan limitations or quota. "
        f"Visit {PRICING_URL} for details."
    )
    return Verdict(VerdictKind.SKIPPED, message)
