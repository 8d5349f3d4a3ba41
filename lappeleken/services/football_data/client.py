"""
HTTP client for the football-data.org v4 API.

Free tier: 25 requests per rolling minute, enforced client-side by a
sliding-window limiter. Authentication via the X-Auth-Token header.

Error mapping:
- no API key                 -> invalid_configuration
- rate limiter exhausted/429 -> rate_limited
- transport failure/timeout  -> network_error
- other non-2xx              -> server_error(code)
- open circuit breaker       -> server_error(503)
- body is not JSON           -> decoding_error
"""
import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lappeleken.core import metrics
from lappeleken.core.circuit_breaker import CircuitBreakerError, football_data_breaker, guarded_call
from lappeleken.core.logging import get_logger
from lappeleken.services.football_data.errors import FootballDataError
from lappeleken.services.football_data.rate_limiter import SlidingWindowRateLimiter

logger = get_logger(__name__)

FOOTBALL_DATA_API_BASE = "https://api.football-data.org/v4"


def _raise_for_server_error(response: httpx.Response) -> httpx.Response:
    """Server-side failures; run through the circuit breaker."""
    if response.status_code >= 500:
        raise FootballDataError.server(response.status_code, response.text[:200])
    return response


class FootballDataClient:
    """
    Thin async client with rate limiting, optional retries, a circuit
    breaker and a TTL response cache.

    Args:
        api_key: football-data.org API token
        base_url: API root (default v4)
        timeout: Per-request timeout in seconds
        retry_attempts: Attempts for transport errors (1 = no retry)
        rate_limiter: Shared limiter; a 25/min limiter is created if None
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = FOOTBALL_DATA_API_BASE,
        timeout: float = 30.0,
        retry_attempts: int = 1,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._cache: Dict[str, Tuple[Any, datetime]] = {}  # key -> (data, expiry)
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                headers=self._get_headers(),
                transport=self._transport,
            )
        return self._client

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "X-Auth-Token": self.api_key,
        }

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # Cache

    def _get_cache_key(self, endpoint: str, params: Optional[Dict[str, Any]]) -> str:
        if not params:
            return endpoint
        query = ",".join(f"{k}={v}" for k, v in sorted(params.items()))
        return f"{endpoint}?{query}"

    async def get_cached(self, key: str) -> Optional[Any]:
        async with self._lock:
            if key in self._cache:
                data, expiry = self._cache[key]
                if datetime.now() < expiry:
                    return data
                del self._cache[key]
        return None

    async def set_cache(self, key: str, data: Any, ttl: int) -> None:
        """Store ``data`` for ``ttl`` seconds, dropping every expired entry first."""
        now = datetime.now()
        async with self._lock:
            expired = [k for k, (_, expiry) in self._cache.items() if expiry <= now]
            for k in expired:
                del self._cache[k]
            self._cache[key] = (data, now + timedelta(seconds=ttl))

    async def clear_cache(self) -> None:
        async with self._lock:
            self._cache.clear()

    # Requests

    async def get_json(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        cache_ttl: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        GET ``endpoint`` and decode the JSON body.

        Args:
            endpoint: Path relative to the API root, e.g. "matches/123"
            params: Query parameters
            cache_ttl: Cache the decoded body for this many seconds

        Raises:
            FootballDataError: on any failure (see module docstring)
        """
        cache_key = self._get_cache_key(endpoint, params)
        if cache_ttl:
            cached = await self.get_cached(cache_key)
            if cached is not None:
                logger.debug(f"Using cached response for {cache_key}")
                return cached

        try:
            data = await self._request(endpoint, params)
        except FootballDataError as e:
            metrics.football_data_requests_failure_total.labels(error_type=e.kind.value).inc()
            logger.warning(f"football-data.org request failed: {endpoint} ({e})")
            raise

        metrics.football_data_requests_success_total.inc()
        if cache_ttl:
            await self.set_cache(cache_key, data, cache_ttl)
        return data

    async def _request(self, endpoint: str, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not self.api_key.strip():
            raise FootballDataError.invalid_configuration("FOOTBALL_DATA_API_KEY is not set")

        if not await self.rate_limiter.acquire():
            raise FootballDataError.rate_limited("client-side limit of "
                                                 f"{self.rate_limiter.max_calls} calls/minute reached")

        stats = self.rate_limiter.get_usage_stats()
        logger.debug(f"API request ({stats['current']}/{stats['max']}): {endpoint}")

        response = await self._send(endpoint, params)

        if response.status_code == 429:
            raise FootballDataError.rate_limited("HTTP 429 from football-data.org")

        try:
            guarded_call(football_data_breaker, _raise_for_server_error, response)
        except CircuitBreakerError:
            raise FootballDataError.server(503, "football-data.org circuit breaker is open")

        if response.status_code >= 400:
            raise FootballDataError.server(response.status_code, response.text[:200])

        try:
            return response.json()
        except ValueError as e:
            raise FootballDataError.decoding(str(e))

    async def _send(self, endpoint: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        client = await self._get_client()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=1, min=2, max=10),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    return await client.get(f"/{endpoint.lstrip('/')}", params=params)
        except httpx.TransportError as e:
            raise FootballDataError.network(f"{type(e).__name__}: {e}")
