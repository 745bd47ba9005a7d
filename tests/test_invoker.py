import asyncio
import logging
import time

import pytest

from jp_address_api.address_data import AddressDataUnavailableError
from jp_address_api.invoker import ParseFailure, ParseSuccess, ParseTimeout, invoke


@pytest.mark.asyncio
async def test_async_parser_success():
    async def parse(text):
        return {"rest": text}

    result = await invoke(parse, "東京都", 1.0)
    assert isinstance(result, ParseSuccess)
    assert result.address == {"rest": "東京都"}
    assert result.elapsed_ms >= 0


@pytest.mark.asyncio
async def test_sync_parser_runs_in_thread():
    def parse(text):
        return text.upper()

    result = await invoke(parse, "tokyo", 1.0)
    assert isinstance(result, ParseSuccess)
    assert result.address == "TOKYO"


@pytest.mark.asyncio
async def test_async_parser_timeout_is_cancelled():
    cancelled = asyncio.Event()

    async def parse(text):
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    result = await invoke(parse, "東京都", 0.05)
    assert isinstance(result, ParseTimeout)
    assert result.elapsed_ms == pytest.approx(50.0)
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_sync_parser_timeout_stops_waiting():
    def parse(text):
        time.sleep(0.3)
        return text

    start = time.perf_counter()
    result = await invoke(parse, "東京都", 0.05)
    assert isinstance(result, ParseTimeout)
    assert time.perf_counter() - start < 0.3


@pytest.mark.asyncio
async def test_parser_exception_becomes_failure():
    async def parse(text):
        raise RuntimeError("parser exploded")

    result = await invoke(parse, "東京都", 1.0)
    assert isinstance(result, ParseFailure)
    assert result.message == "parser exploded"


@pytest.mark.asyncio
async def test_exception_without_message_uses_class_name():
    def parse(text):
        raise KeyError()

    result = await invoke(parse, "東京都", 1.0)
    assert isinstance(result, ParseFailure)
    assert result.message == "KeyError"


@pytest.mark.asyncio
async def test_unexpected_exception_is_logged_with_traceback(caplog):
    async def parse(text):
        raise RuntimeError("parser exploded")

    with caplog.at_level(logging.WARNING, logger="jp_address_api.invoker"):
        await invoke(parse, "東京都", 1.0)
    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.exc_info is not None
    assert record.error == "parser exploded"


@pytest.mark.asyncio
async def test_data_source_error_is_logged_as_warning(caplog):
    async def parse(text):
        raise AddressDataUnavailableError("Address data source unreachable")

    with caplog.at_level(logging.WARNING, logger="jp_address_api.invoker"):
        result = await invoke(parse, "東京都", 1.0)
    assert isinstance(result, ParseFailure)
    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert not record.exc_info
