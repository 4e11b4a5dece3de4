import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from loguru import logger

from v4swap.logging import RedisLogSink
from v4swap.models.swap import SwapParams


class _FakeRedis:
    def __init__(self, fail_ping: bool = False) -> None:
        self.fail_ping = fail_ping
        self.items: list[str] = []
        self.trims: list[tuple[str, int, int]] = []

    def ping(self):
        if self.fail_ping:
            raise ConnectionError("redis down")
        return True

    def rpush(self, key, value):
        self.items.append(value)

    def ltrim(self, key, start, end):
        self.trims.append((key, start, end))


def _message(text: str, **extra):
    record = {
        "time": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "level": SimpleNamespace(name="INFO"),
        "message": text,
        "name": "v4swap.pipelines.swap.orchestrator",
        "function": "_emit",
        "line": 1,
        "extra": extra,
    }
    return SimpleNamespace(record=record)


def test_redis_sink_pushes_capped_entries():
    client = _FakeRedis()
    sink = RedisLogSink("v4swap:logs:test", max_entries=10, client=client)

    sink.write(_message("[building_quote] Fetching quote", attempt_id="abc", SWAP_PROGRESS=True))

    payload = json.loads(client.items[0])
    assert payload["message"] == "[building_quote] Fetching quote"
    assert payload["attempt_id"] == "abc"
    assert payload["source"] == "v4swap.pipelines.swap.orchestrator:_emit:1"
    assert client.trims == [("v4swap:logs:test", -10, -1)]


def test_plain_records_have_no_attempt_id():
    entry = RedisLogSink.to_entry(_message("UniswapV4Client initialized").record)
    assert "attempt_id" not in entry


def test_redis_sink_disabled_when_unreachable():
    client = _FakeRedis(fail_ping=True)
    sink = RedisLogSink("v4swap:logs:test", max_entries=10, client=client)

    sink.write(_message("ignored"))
    assert client.items == []


@pytest.mark.asyncio
async def test_progress_records_are_logged_with_attempt_id(make_orchestrator, eth_token, usdt_token):
    captured = []
    sink_id = logger.add(lambda message: captured.append(message.record["extra"]), level="INFO")
    try:
        attempt = await make_orchestrator().run(SwapParams(sell=eth_token, buy=usdt_token, amount=10**18))
    finally:
        logger.remove(sink_id)

    progress = [extra for extra in captured if extra.get("SWAP_PROGRESS")]
    assert len(progress) == len(attempt.progress)
    assert {extra["attempt_id"] for extra in progress} == {attempt.attempt_id}
