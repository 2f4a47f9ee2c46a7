"""
tests/test_http_fetcher.py

Purpose:
    Response mapping of the default HTTP fetcher and custom fetcher loading.
"""

from __future__ import annotations

import httpx
import pytest

from matchenricher.core.errors import ConfigurationError
from matchenricher.core.fetch import FetchError, HttpStatsFetcher, is_network_error, load_fetcher
from matchenricher.core.records import Found, NotFound, NotFoundTransient

URL = "https://stats.example/match/1"


def _fetcher(status: int, **kwargs) -> HttpStatsFetcher:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, **kwargs)

    return HttpStatsFetcher(transport=httpx.MockTransport(handler))


async def _fetch(fetcher: HttpStatsFetcher, score: str = "2 : 1"):
    async with fetcher:
        return await fetcher(score, URL, home_team="Arsenal", away_team="Chelsea")


@pytest.mark.asyncio
async def test_json_object_is_found() -> None:
    result = await _fetch(_fetcher(200, json={"score": "2:1", "shots": [10, 4]}))

    assert result == Found({"score": "2:1", "shots": [10, 4]})


@pytest.mark.asyncio
async def test_payload_without_score_is_found() -> None:
    assert await _fetch(_fetcher(200, json={"shots": [1, 1]})) == Found({"shots": [1, 1]})


@pytest.mark.asyncio
async def test_score_mismatch_leaves_match_absent() -> None:
    assert await _fetch(_fetcher(200, json={"score": "0 : 0"})) is None


@pytest.mark.asyncio
async def test_awarded_score_suffix_is_ignored() -> None:
    result = await _fetch(_fetcher(200, json={"score": "3:0"}), score="3 : 0 AWD")

    assert isinstance(result, Found)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 410])
async def test_missing_page_is_not_found(status: int) -> None:
    assert await _fetch(_fetcher(status)) == NotFound()


@pytest.mark.asyncio
async def test_no_content_is_transient() -> None:
    assert await _fetch(_fetcher(204)) == NotFoundTransient()
    assert await _fetch(_fetcher(200, content=b"  ")) == NotFoundTransient()


@pytest.mark.asyncio
async def test_server_error_is_not_a_network_error() -> None:
    with pytest.raises(FetchError) as exc_info:
        await _fetch(_fetcher(503))

    assert exc_info.value.status_code == 503
    assert not is_network_error(exc_info.value)


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [b"<html>blocked</html>", b"[1, 2]"])
async def test_non_object_body_raises(content: bytes) -> None:
    with pytest.raises(FetchError):
        await _fetch(_fetcher(200, content=content))


@pytest.mark.asyncio
async def test_transport_failure_propagates_as_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = HttpStatsFetcher(transport=httpx.MockTransport(handler))

    with pytest.raises(httpx.ConnectError) as exc_info:
        await _fetch(fetcher)

    assert is_network_error(exc_info.value)


def test_load_fetcher_resolves_import_path() -> None:
    fetch = load_fetcher("matchenricher.core.fetch.http_fetcher:HttpStatsFetcher")

    assert isinstance(fetch, HttpStatsFetcher)


@pytest.mark.parametrize("import_path", ["no_colon", "matchenricher.missing:fetch", "matchenricher:missing"])
def test_load_fetcher_rejects_bad_paths(import_path: str) -> None:
    with pytest.raises(ConfigurationError):
        load_fetcher(import_path)
