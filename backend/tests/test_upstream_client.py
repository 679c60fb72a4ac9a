from __future__ import annotations

import asyncio

import httpx

from upstream.client import UpstreamClient

from upstream_fakes import BASE_URL, FakeUpstream, raise_connect_error


def test_get_json_success_and_request_paths():
    fake = FakeUpstream({"/Analytics/block/7": {"blockId": 7, "samples": 3}})

    async def run():
        client = fake.client()
        try:
            return await client.block_analytics(7)
        finally:
            await client.close()

    res = asyncio.run(run())
    assert res.ok
    assert res.status_code == 200
    assert res.data == {"blockId": 7, "samples": 3}
    assert fake.calls == ["/api/Analytics/block/7"]


def test_failures_become_result_values():
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    fake = FakeUpstream(
        {
            "/Analytics/block/1": 500,
            "/Analytics/block/2": timeout,
            "/Analytics/block/3": raise_connect_error,
            "/Analytics/block/4": not_json,
        }
    )

    async def run():
        client = fake.client()
        try:
            return [await client.block_analytics(i) for i in (1, 2, 3, 4, 5)]
        finally:
            await client.close()

    results = asyncio.run(run())
    assert [r.ok for r in results] == [False] * 5
    assert [r.status_code for r in results] == [500, 504, 502, 502, 404]
    assert all(r.error for r in results)


def test_base_url_and_timeout_come_from_environment(monkeypatch):
    monkeypatch.setenv("EXPLORER_API_URL", "http://example.test/api/")
    monkeypatch.setenv("EXPLORER_API_TIMEOUT_S", "3.5")
    client = UpstreamClient()
    assert client.base_url == "http://example.test/api"
    assert client.timeout == 3.5

    monkeypatch.setenv("EXPLORER_API_TIMEOUT_S", "soon")
    assert UpstreamClient(BASE_URL).timeout == 10.0
