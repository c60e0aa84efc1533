"""Single-page fetch against the fleet backend."""

import base64
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config.config_loader import EndpointConfig
from ..config.logging_config import get_logger
from ..config.settings import config
from ..errors import (
    MalformedResponseError,
    NetworkOrServerError,
    RateLimitedError,
    UnauthorizedError,
)
from ..filters.criteria import FilterCriteria
from ..filters.translator import QueryTranslator
from .envelope import PageResponse, parse_envelope

logger = get_logger("retrieval")

# Upper bound for a single backoff wait between rate-limited attempts
MAX_BACKOFF_SECONDS = 30


def create_client(base_url: Optional[str] = None, **kwargs: Any) -> httpx.AsyncClient:
    """
    Create an HTTP client bound to the backend base URL.

    Args:
        base_url: API root (defaults to config.api.base_url).
        **kwargs: Passed through to httpx.AsyncClient (e.g. transport).

    Returns:
        Configured httpx.AsyncClient; the caller owns closing it.
    """
    headers = {"Accept": "application/json"}
    headers.update(kwargs.pop("headers", {}) or {})
    return httpx.AsyncClient(base_url=base_url or config.api.base_url, headers=headers, **kwargs)


def _decode_jwt_payload(token: str) -> Optional[Dict[str, Any]]:
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(segment.encode("ascii")))
    except (ValueError, UnicodeError):
        return None
    return payload if isinstance(payload, dict) else None


def is_token_expired(token: str, now: Optional[float] = None) -> bool:
    """
    Check a JWT's exp claim.

    Opaque tokens, and JWTs without a numeric exp, are never considered
    expired; the backend decides for them.
    """
    payload = _decode_jwt_payload(token)
    if payload is None:
        return False
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return False
    return exp <= (time.time() if now is None else now)


def _error_detail(response: httpx.Response) -> Optional[str]:
    """Backend-supplied error message, if the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("message", "detail", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class PagedFetcher:
    """Fetches one page of one endpoint, translating failures into typed errors."""

    def __init__(
        self,
        endpoint: EndpointConfig,
        client: httpx.AsyncClient,
        translator: Optional[QueryTranslator] = None,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            endpoint: Endpoint configuration (path and parameter names).
            client: Shared HTTP client.
            translator: Query translator (built from the endpoint if omitted).
            max_attempts: Attempts for rate-limited requests (config.api.max_attempts).
            backoff_seconds: Exponential backoff multiplier (config.api.backoff_seconds).
            sleep: Coroutine used between retries; asyncio.sleep when omitted.
        """
        self.endpoint = endpoint
        self.client = client
        self.translator = translator or QueryTranslator.from_endpoint(endpoint)
        self.max_attempts = max_attempts if max_attempts is not None else config.api.max_attempts
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else config.api.backoff_seconds
        )
        self._sleep = sleep
        self._request_count = 0

    @property
    def request_count(self) -> int:
        """Number of HTTP requests sent, retries included."""
        return self._request_count

    async def fetch_page(
        self,
        criteria: FilterCriteria,
        page: int,
        limit: int,
        token: Optional[str],
    ) -> PageResponse:
        """
        Fetch a single page.

        Args:
            criteria: Canonical filter criteria.
            page: 1-based page number.
            limit: Page size.
            token: Session token sent as a Bearer credential.

        Returns:
            PageResponse for the page.

        Raises:
            UnauthorizedError: Token expired, rejected, or session force-logged-out.
            MalformedResponseError: Body is not JSON or has no record list.
            RateLimitedError: HTTP 429 after all retry attempts.
            NetworkOrServerError: Transport failure or other error status.
        """
        if token and is_token_expired(token):
            raise UnauthorizedError("Session token has expired", status_code=401)

        params = self.translator.to_query_params(criteria, page, limit)
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        retry_kwargs: Dict[str, Any] = {}
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=MAX_BACKOFF_SECONDS),
            retry=retry_if_exception_type(RateLimitedError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
            **retry_kwargs,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._get(params, headers)

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response is not valid JSON: {e}")

        result = parse_envelope(payload)
        logger.debug(
            f"{self.endpoint.name} page {page}: {len(result.docs)} records "
            f"(total_pages={result.total_pages}, total_count={result.total_count})"
        )
        return result

    async def _get(self, params: Dict[str, str], headers: Dict[str, str]) -> httpx.Response:
        """Send one GET and raise the typed error for a failed status."""
        logger.debug(f"GET {self.endpoint.path} params={params}")
        self._request_count += 1
        try:
            response = await self.client.get(self.endpoint.path, params=params, headers=headers)
        except httpx.RequestError as e:
            raise NetworkOrServerError(f"Request to {self.endpoint.path} failed: {e}") from e

        status = response.status_code
        if status < 400:
            return response

        detail = _error_detail(response)
        if status == 401:
            raise UnauthorizedError(detail or "Unauthorized", status_code=status, detail=detail)
        if status == 429:
            raise RateLimitedError("Rate limit exceeded", status_code=status, detail=detail)
        raise NetworkOrServerError(
            f"{self.endpoint.path} returned HTTP {status}", status_code=status, detail=detail
        )
