"""Tests for the football-data.org HTTP client.

Test Strategy:
1. Successful requests: auth header, path, query params
2. Error mapping: missing key, 429, 4xx, 5xx, bad JSON, transport failure
3. Circuit breaker opens after repeated server errors
4. Client-side rate limiting refuses calls without touching the network
5. TTL response cache

All requests go through httpx.MockTransport; nothing leaves the process.
"""
import httpx
import pytest

from lappeleken.core.circuit_breaker import DEFAULT_FAIL_MAX, football_data_breaker
from lappeleken.services.football_data.client import FootballDataClient
from lappeleken.services.football_data.errors import ApiErrorKind, FootballDataError, user_friendly_message
from lappeleken.services.football_data.rate_limiter import SlidingWindowRateLimiter


class Recorder:
    """MockTransport handler that records requests and returns a canned response."""

    def __init__(self, status_code=200, json=None, text=None, exc=None):
        self.status_code = status_code
        self.json = json if json is not None else {"matches": []}
        self.text = text
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json)


def make_client(handler, api_key="test-key", **kwargs) -> FootballDataClient:
    return FootballDataClient(api_key=api_key, transport=httpx.MockTransport(handler), **kwargs)


# Success
# ─────────────────────────────────────────────────────────────

class TestRequests:

    async def test_get_json_sends_token_and_params(self):
        """Should call the v4 path with the auth header and query params."""
        handler = Recorder(json={"matches": [{"id": 1}]})
        client = make_client(handler)

        data = await client.get_json("matches", params={"status": "SCHEDULED"})

        assert data == {"matches": [{"id": 1}]}
        request = handler.requests[0]
        assert request.url.path == "/v4/matches"
        assert request.url.params["status"] == "SCHEDULED"
        assert request.headers["X-Auth-Token"] == "test-key"
        await client.close()

    async def test_close_resets_client(self):
        client = make_client(Recorder())
        await client.get_json("matches")

        await client.close()

        assert client._client is None


# Errors
# ─────────────────────────────────────────────────────────────

class TestErrorMapping:

    async def test_missing_api_key(self):
        """Should fail with invalid_configuration before any request."""
        handler = Recorder()
        client = make_client(handler, api_key="  ")

        with pytest.raises(FootballDataError) as exc_info:
            await client.get_json("matches")

        assert exc_info.value.kind == ApiErrorKind.INVALID_CONFIGURATION
        assert handler.requests == []

    async def test_http_429(self):
        client = make_client(Recorder(status_code=429))

        with pytest.raises(FootballDataError) as exc_info:
            await client.get_json("matches")

        assert exc_info.value.kind == ApiErrorKind.RATE_LIMITED

    @pytest.mark.parametrize("status_code", [400, 403, 404])
    async def test_client_errors(self, status_code):
        client = make_client(Recorder(status_code=status_code, text="nope"))

        with pytest.raises(FootballDataError) as exc_info:
            await client.get_json("matches/1")

        assert exc_info.value.kind == ApiErrorKind.SERVER_ERROR
        assert exc_info.value.status_code == status_code

    async def test_server_error(self):
        client = make_client(Recorder(status_code=502, text="bad gateway"))

        with pytest.raises(FootballDataError) as exc_info:
            await client.get_json("matches/1")

        assert exc_info.value.status_code == 502
        assert "temporarily unavailable" in exc_info.value.user_message

    async def test_invalid_json(self):
        client = make_client(Recorder(text="<html>not json</html>"))

        with pytest.raises(FootballDataError) as exc_info:
            await client.get_json("matches")

        assert exc_info.value.kind == ApiErrorKind.DECODING_ERROR

    async def test_transport_failure(self):
        client = make_client(Recorder(exc=httpx.ConnectError("connection refused")))

        with pytest.raises(FootballDataError) as exc_info:
            await client.get_json("matches")

        assert exc_info.value.kind == ApiErrorKind.NETWORK_ERROR
        assert "ConnectError" in exc_info.value.detail

    async def test_breaker_opens_after_repeated_server_errors(self):
        """Should report 503 once the circuit breaker is open."""
        client = make_client(Recorder(status_code=500, text="boom"))

        for _ in range(DEFAULT_FAIL_MAX):
            with pytest.raises(FootballDataError):
                await client.get_json("matches")

        assert football_data_breaker.current_state == "open"
        with pytest.raises(FootballDataError) as exc_info:
            await client.get_json("matches")
        assert exc_info.value.status_code == 503

    def test_user_messages(self):
        assert "wait a moment" in FootballDataError.rate_limited().user_message
        assert "internet connection" in FootballDataError.network().user_message
        assert "problem with your request" in FootballDataError.server(404).user_message
        assert "restart the app" in FootballDataError.invalid_configuration().user_message
        assert user_friendly_message(RuntimeError("x")) == "An unexpected error occurred. Please try again."

    def test_error_string_includes_status(self):
        assert str(FootballDataError.server(500, "oops")) == "server_error(500): oops"


# Rate limiting and cache
# ─────────────────────────────────────────────────────────────

class TestRateLimitingAndCache:

    async def test_client_side_limit_refuses_without_request(self):
        """Should raise rate_limited when no slot frees up within max_wait."""
        handler = Recorder()
        limiter = SlidingWindowRateLimiter(max_calls=1, window_seconds=60, clock=lambda: 100.0)
        client = make_client(handler, rate_limiter=limiter)

        await client.get_json("matches")
        with pytest.raises(FootballDataError) as exc_info:
            await client.get_json("matches")

        assert exc_info.value.kind == ApiErrorKind.RATE_LIMITED
        assert len(handler.requests) == 1

    async def test_cached_response_skips_request(self):
        handler = Recorder(json={"matches": []})
        client = make_client(handler)

        await client.get_json("matches", params={"status": "LIVE"}, cache_ttl=60)
        await client.get_json("matches", params={"status": "LIVE"}, cache_ttl=60)

        assert len(handler.requests) == 1

    async def test_cache_key_includes_params(self):
        handler = Recorder()
        client = make_client(handler)

        await client.get_json("matches", params={"status": "LIVE"}, cache_ttl=60)
        await client.get_json("matches", params={"status": "SCHEDULED"}, cache_ttl=60)

        assert len(handler.requests) == 2

    async def test_clear_cache(self):
        handler = Recorder()
        client = make_client(handler)
        await client.get_json("matches", cache_ttl=60)

        await client.clear_cache()
        await client.get_json("matches", cache_ttl=60)

        assert len(handler.requests) == 2

    async def test_expired_entry_is_dropped(self):
        client = make_client(Recorder())
        await client.set_cache("k", {"v": 1}, ttl=-1)

        assert await client.get_cached("k") is None

    async def test_write_purges_other_expired_entries(self):
        """Should not let expired keys that are never read again pile up."""
        client = make_client(Recorder())
        await client.set_cache("matches/1", {"v": 1}, ttl=-1)
        await client.set_cache("players:1", {"v": 2}, ttl=-1)
        await client.set_cache("matches?status=LIVE", {"v": 3}, ttl=60)

        await client.set_cache("matches/2", {"v": 4}, ttl=60)

        assert set(client._cache) == {"matches?status=LIVE", "matches/2"}
