import asyncio
import time

import httpx

from gameshelf_app.metadata.providers.base import RateLimiter
from gameshelf_app.metadata.providers.wikidata import WikidataProvider


CELESTE_ROWS = [{
    "game": {"type": "uri", "value": "http://www.wikidata.org/entity/Q28737413"},
    "gameLabel": {"type": "literal", "value": "Celeste"},
    "wikidataId": {"type": "literal", "value": "Q28737413"},
}]


def _sequence_handler(*outcomes):
    """Answer each request with the next outcome; the last one repeats."""
    calls = []

    def handler(request):
        outcome = outcomes[min(len(calls), len(outcomes) - 1)]
        calls.append(request)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome == 200:
            return httpx.Response(200, json={"head": {"vars": []}, "results": {"bindings": CELESTE_ROWS}})
        return httpx.Response(outcome, text="error")

    return handler, calls


def _provider(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WikidataProvider(client=client, rate_limit=0, max_retries=3, retry_delay=0)


def test_rate_limited_request_is_retried():
    handler, calls = _sequence_handler(429, 200)

    candidates = asyncio.run(_provider(handler).fetch("Celeste"))

    assert [c.title for c in candidates] == ["Celeste"]
    assert len(calls) == 2


def test_server_error_is_retried():
    handler, calls = _sequence_handler(503, 200)

    candidates = asyncio.run(_provider(handler).fetch("Celeste"))

    assert [c.title for c in candidates] == ["Celeste"]
    assert len(calls) == 2


def test_persistent_server_error_gives_empty_list():
    handler, calls = _sequence_handler(503)

    assert asyncio.run(_provider(handler).fetch("Celeste")) == []
    assert len(calls) == 3


def test_connection_error_is_retried():
    handler, calls = _sequence_handler(httpx.ConnectError("connection refused"), 200)

    candidates = asyncio.run(_provider(handler).fetch("Celeste"))

    assert [c.title for c in candidates] == ["Celeste"]
    assert len(calls) == 2


def test_client_error_is_not_retried():
    handler, calls = _sequence_handler(404, 200)

    assert asyncio.run(_provider(handler).fetch("Celeste")) == []
    assert len(calls) == 1


def test_rate_limiter_spaces_requests():
    limiter = RateLimiter(600)

    async def acquire_twice():
        await limiter.acquire()
        await limiter.acquire()

    start = time.monotonic()
    asyncio.run(acquire_twice())

    assert limiter.min_interval == 0.1
    assert time.monotonic() - start >= 0.09


def test_rate_limiter_disabled():
    limiter = RateLimiter(0)

    asyncio.run(limiter.acquire())

    assert limiter.min_interval == 0.0
    assert limiter.last_request == 0.0
