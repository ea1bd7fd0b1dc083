from typing import Optional

import httpx
from loguru import logger
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.errors import EventFetchFailed
from src.models.signup import RaidEvent

RAID_HELPER_API_BASE = "https://raid-helper.dev/api/v2"

# Define common HTTP status codes that warrant a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def is_retryable(exc: BaseException) -> bool:
    """Transport failures (status None) and transient HTTP statuses are retried."""
    if not isinstance(exc, EventFetchFailed):
        return False
    return exc.status is None or exc.status in RETRYABLE_STATUS_CODES


class EventResolver:
    """Fetches Raid-Helper events by id."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_base: str = RAID_HELPER_API_BASE,
        timeout: float = 10.0,
        retry_attempts: int = 3,
        backoff_seconds: float = 1.0,
    ):
        self.api_base = api_base.rstrip("/")
        self.retry_attempts = retry_attempts
        self.backoff_seconds = backoff_seconds
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )

    async def fetch_event(self, event_id: str) -> RaidEvent:
        """Performs exactly one request; any failure raises EventFetchFailed."""
        url = f"{self.api_base}/events/{event_id}"
        logger.debug(f"Fetching Raid-Helper event {event_id}", url=url)
        try:
            response = await self.client.get(url)
        except httpx.RequestError as e:
            # Network errors and timeouts carry no status
            raise EventFetchFailed(None, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise EventFetchFailed(response.status_code, response.text)

        try:
            return RaidEvent.model_validate(response.json())
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            detail = e.errors()[0]["msg"] if isinstance(e, ValidationError) else str(e)
            raise EventFetchFailed(response.status_code, f"Unusable payload: {detail}") from e

    async def fetch_event_with_retry(self, event_id: str) -> RaidEvent:
        """fetch_event wrapped in exponential backoff for transient failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(
                multiplier=self.backoff_seconds, min=self.backoff_seconds, max=10
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=self._log_retry,
            reraise=True,  # Reraise the EventFetchFailed after max attempts
        )
        return await retrying(self.fetch_event, event_id)

    def _log_retry(self, retry_state) -> None:
        event_id = retry_state.args[0] if retry_state.args else "?"
        logger.warning(
            f"Retrying Raid-Helper event {event_id} after {retry_state.outcome.exception()} "
            f"(attempt {retry_state.attempt_number + 1}/{self.retry_attempts})"
        )

    async def close(self):
        """Closes the underlying HTTP client."""
        await self.client.aclose()
        logger.info("Closed Raid-Helper HTTP client")
