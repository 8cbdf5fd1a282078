"""
Quote acquisition: the pricing state machine and the session that owns the quote key.

Every change to the selected variant or a condition answer bumps a
generation counter. Requests remember the generation they started under and
their responses are dropped if it has moved on, so a price is never shown for
inputs the user has already changed.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Coroutine
from enum import Enum
from typing import Any

from reprice.client.models import ConditionAnswers, Quote
from reprice.client.pricing import (
    BackendStatus,
    PricingClientProtocol,
    PricingOutcome,
    PricingResponse,
)

logger = logging.getLogger(__name__)

MAX_RETRIES = 6
BASE_RETRY_DELAY = 2.0
MAX_RETRY_DELAY = 30.0

WARMING_UP_MESSAGE = "AI service is warming up ({attempt}/{max_retries}). Retrying in {seconds}s..."
STILL_WARMING_MESSAGE = "AI service is still warming up. Please try again in a moment."
UNSUPPORTED_MESSAGE = "AI pricing is unavailable right now. Please try again later."
FAILED_MESSAGE = "AI pricing failed. Please try again."


class QuoteState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    READY = "ready"
    WARMING_UP = "warming_up"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


def next_delay(attempt: int) -> float:
    """Seconds to wait before retry number `attempt` (1-based)."""
    return min(BASE_RETRY_DELAY * 2 ** (attempt - 1), MAX_RETRY_DELAY)


def build_quote_payload(model_name: str, variant: str | None, answers: ConditionAnswers) -> dict:
    if not answers.is_complete:
        raise ValueError("All condition answers are required before pricing")
    return {
        "model_name": f"{model_name} {variant}" if variant else model_name,
        "turns_on": answers.turns_on,
        "screen_condition": answers.screen_condition.display_name,
        "has_box": answers.has_box,
        "has_bill": answers.has_bill,
        "is_under_warranty": answers.under_warranty,
    }


def build_quote_key(model_name: str, variant: str | None, answers: ConditionAnswers) -> str:
    payload = build_quote_payload(model_name, variant, answers)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


class QuoteSession:
    """Quote state for one phone on the sell flow.

    Input setters (`select_variant`, `answer`, `activate`) are synchronous and
    must be called from inside the running event loop: they invalidate the
    current quote at once and schedule the pricing request in the background.
    """

    def __init__(
        self,
        pricing: PricingClientProtocol,
        model_name: str,
        variant: str | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._pricing = pricing
        self._sleep = sleep
        self.model_name = model_name
        self.variant = variant
        self.answers = ConditionAnswers()

        self.state = QuoteState.IDLE
        self.quote: Quote | None = None
        self.quote_key: str | None = None
        self.retry_attempt = 0
        self.message: str | None = None
        self.backend_status = BackendStatus.UNKNOWN
        self.pricing_supported = pricing.is_supported()
        if not self.pricing_supported:
            self.state = QuoteState.UNSUPPORTED

        self._active = False
        self._generation = 0
        self._quoted_key: str | None = None
        self._requesting = False
        self._retry_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    # -- inputs ---------------------------------------------------------

    def activate(self) -> None:
        """Enter the quote step: probe the backend and price the current inputs."""
        if self._active:
            return
        self._active = True
        self._inputs_changed()
        self._spawn(self._probe_health())

    def deactivate(self) -> None:
        self._active = False
        self._cancel_retry()

    def select_variant(self, variant: str | None) -> None:
        if variant == self.variant:
            return
        self.variant = variant
        self._inputs_changed()

    def answer(self, **fields: Any) -> None:
        updated = ConditionAnswers.model_validate({**self.answers.model_dump(), **fields})
        if updated == self.answers:
            return
        self.answers = updated
        self._inputs_changed()

    def payload(self) -> dict:
        return build_quote_payload(self.model_name, self.variant, self.answers)

    def _inputs_changed(self) -> None:
        self._invalidate()
        if self._active and self.quote_key is not None:
            self._spawn(self.request_quote())

    def _invalidate(self) -> None:
        self._cancel_retry()
        self._generation += 1
        self._requesting = False
        self._quoted_key = None
        self.quote = None
        self.retry_attempt = 0
        self.message = None
        self.quote_key = (
            build_quote_key(self.model_name, self.variant, self.answers)
            if self.answers.is_complete
            else None
        )
        if self.state is not QuoteState.UNSUPPORTED:
            self.state = QuoteState.IDLE

    # -- requests -------------------------------------------------------

    async def request_quote(self) -> Quote | None:
        """Fetch a quote for the current inputs unless one is already held or pending."""
        if not self.pricing_supported or self._requesting or self.quote_key is None:
            return None
        if self.quote is not None and self._quoted_key == self.quote_key:
            return self.quote

        generation = self._generation
        key = self.quote_key
        payload = self.payload()
        self.state = QuoteState.REQUESTING
        self._requesting = True
        try:
            response = await self._pricing.calculate_with_fallback(payload)
        finally:
            if generation == self._generation:
                self._requesting = False

        if generation != self._generation:
            logger.debug("Discarding pricing response for a superseded quote key")
            return None
        self._apply(response, key, generation)
        return self.quote

    async def retry(self) -> Quote | None:
        """Manual retry after a failure or an exhausted warm-up."""
        self._cancel_retry()
        self._generation += 1
        self._requesting = False
        self._quoted_key = None
        self.quote = None
        self.retry_attempt = 0
        self.message = None
        return await self.request_quote()

    def _apply(self, response: PricingResponse, key: str, generation: int) -> None:
        if response.outcome is PricingOutcome.READY:
            self.quote = response.quote
            self._quoted_key = key
            self.retry_attempt = 0
            self.message = None
            self.state = QuoteState.READY
            self.backend_status = BackendStatus.READY
        elif response.outcome is PricingOutcome.WARMING_UP:
            self._schedule_retry(generation)
        elif response.outcome is PricingOutcome.NOT_FOUND:
            logger.warning("Pricing is not served by any known base URL; disabling quotes")
            self._cancel_retry()
            self.pricing_supported = False
            self._pricing.mark_unsupported()
            self.quote = None
            self.message = UNSUPPORTED_MESSAGE
            self.state = QuoteState.UNSUPPORTED
            self.backend_status = BackendStatus.DOWN
        else:
            logger.error("Pricing failed (status=%s): %s", response.status_code, response.detail)
            self.quote = None
            self.message = FAILED_MESSAGE
            self.state = QuoteState.FAILED

    def _schedule_retry(self, generation: int) -> None:
        self.state = QuoteState.WARMING_UP
        self.backend_status = BackendStatus.INITIALIZING
        self.retry_attempt += 1
        attempt = self.retry_attempt
        self._cancel_retry()

        if attempt > MAX_RETRIES:
            self.message = STILL_WARMING_MESSAGE
            return

        delay = next_delay(attempt)
        self.message = WARMING_UP_MESSAGE.format(
            attempt=attempt, max_retries=MAX_RETRIES, seconds=max(1, round(delay)),
        )
        logger.info("Pricing service warming up, retry %d/%d in %.0fs", attempt, MAX_RETRIES, delay)
        self._retry_task = self._spawn(self._retry_later(delay, generation))

    async def _retry_later(self, delay: float, generation: int) -> None:
        await self._sleep(delay)
        if generation != self._generation:
            return
        self._retry_task = None
        await self.request_quote()

    async def _probe_health(self) -> None:
        # Input changes do not invalidate backend status; close() cancels this task.
        status = await self._pricing.check_health()
        if self._active and self.backend_status is BackendStatus.UNKNOWN:
            self.backend_status = status

    # -- lifecycle ------------------------------------------------------

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background quote task failed", exc_info=task.exception())

    def _cancel_retry(self) -> None:
        if self._retry_task is not None:
            self._retry_task.cancel()
            self._retry_task = None

    async def wait_idle(self) -> None:
        """Wait until no request or scheduled retry is outstanding."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        """Tear down: cancel the retry timer and every background request."""
        self._active = False
        self._generation += 1
        self._retry_task = None
        for task in list(self._tasks):
            task.cancel()
