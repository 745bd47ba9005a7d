"""
Deadline-bounded calls into the address parser.

Coroutine parsers are cancelled cooperatively when the deadline passes.
Synchronous parsers run in a worker thread that cannot be interrupted: on
timeout the caller stops waiting, but the thread keeps running until the
parser returns and its result is dropped. That leaked work is bounded only by
the parser itself.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Union

from jp_address_api.address_data import AddressDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParseSuccess:
    address: Any
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class ParseTimeout:
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class ParseFailure:
    message: str
    elapsed_ms: float


InvokeResult = Union[ParseSuccess, ParseTimeout, ParseFailure]


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


async def _call(parse: Callable[[str], Any], text: str) -> Any:
    if inspect.iscoroutinefunction(parse):
        return await parse(text)
    result = await asyncio.to_thread(parse, text)
    if inspect.isawaitable(result):
        return await result
    return result


async def invoke(parse: Callable[[str], Any], text: str, deadline: float) -> InvokeResult:
    """
    Run ``parse(text)`` for at most ``deadline`` seconds.

    Never raises for parser errors: exceptions become ``ParseFailure`` carrying
    the exception message. A timeout reports the deadline as elapsed time.
    """
    start = time.perf_counter()
    try:
        address = await asyncio.wait_for(_call(parse, text), timeout=deadline)
    except asyncio.TimeoutError:
        return ParseTimeout(elapsed_ms=deadline * 1000)
    except Exception as exc:
        message = str(exc) or exc.__class__.__name__
        if isinstance(exc, AddressDataError):
            logger.warning("Address parser raised %s", exc.__class__.__name__, extra={"error": message})
        else:
            logger.exception("Unexpected error in address parser", extra={"error": message})
        return ParseFailure(message=message, elapsed_ms=_elapsed_ms(start))
    return ParseSuccess(address=address, elapsed_ms=_elapsed_ms(start))
