"""HTTP client helpers for fetching exported herd snapshots."""

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from herdmetrics.core.config import settings

# =============================================================================
# Retry policy
# =============================================================================

MAX_RETRIES = 3
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 10


# =============================================================================
# Exceptions
# =============================================================================


class RetryableError(Exception):
    """Timeout, dropped connection or 5xx from the export host; retried with backoff."""

    pass


class SnapshotFetchError(Exception):
    """Non-retryable error while downloading a herd snapshot."""

    pass


# =============================================================================
# Requests
# =============================================================================


async def http_get(url: str, params: dict | None = None, timeout: float | None = None) -> httpx.Response:
    """Make a single GET request without retry.

    For most use cases, prefer `http_get_with_retry()` which handles transient errors.

    Args:
        url: URL to fetch
        params: Optional query parameters
        timeout: Request timeout in seconds (defaults to settings.snapshot_timeout)

    Returns:
        The successful response

    Raises:
        httpx.HTTPStatusError: If the server answers with an error status
    """
    async with httpx.AsyncClient() as client:
        response = await client.get(
            url,
            params=params,
            headers={"Accept": "application/json"},
            timeout=timeout or settings.snapshot_timeout,
            follow_redirects=True,
        )
        response.raise_for_status()
        return response


@retry(
    retry=retry_if_exception_type(RetryableError),
    stop=stop_after_attempt(MAX_RETRIES),
    wait=wait_exponential_jitter(initial=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS, jitter=2),
    reraise=True,
)
async def http_get_with_retry(url: str, params: dict | None = None, timeout: float | None = None) -> httpx.Response:
    """GET a URL with automatic retry on transient errors.

    Retries on:
    - Timeouts
    - Connection errors
    - HTTP 5xx errors

    After MAX_RETRIES failures, the last RetryableError is re-raised.

    Raises:
        RetryableError: If all retries fail
        SnapshotFetchError: On client errors (4xx), which are never retried
    """
    try:
        return await http_get(url, params=params, timeout=timeout)
    except httpx.TimeoutException as e:
        raise RetryableError(f"Request timed out: {e}") from e
    except httpx.ConnectError as e:
        raise RetryableError(f"Connection failed: {e}") from e
    except httpx.HTTPStatusError as e:
        body = e.response.text[:500]
        if e.response.status_code >= 500:
            # 5xx is transient on the export host
            raise RetryableError(f"HTTP {e.response.status_code}: {body}") from e
        # 4xx will not change on retry
        raise SnapshotFetchError(f"HTTP {e.response.status_code}: {body}") from e
