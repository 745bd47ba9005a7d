"""Request pipeline shared by the GET and POST parse routes."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from jp_address_api.config import ServiceConfig
from jp_address_api.invoker import ParseFailure, ParseSuccess, ParseTimeout, invoke
from jp_address_api.metrics import MetricsRegistry, Outcome
from jp_address_api.validators import validate_address

logger = logging.getLogger(__name__)

MISSING_ADDRESS_ERROR = "Missing 'address' parameter"
TIMEOUT_ERROR = "Request timeout"


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _serialize_address(address: Any) -> Any:
    if hasattr(address, "to_dict"):
        return address.to_dict()
    return address


def _response(
    *, success: bool, start: float, result: Any = None, error: Optional[str] = None
) -> Dict[str, Any]:
    return {
        "success": success,
        "result": result,
        "error": error,
        "processing_time_ms": _elapsed_ms(start),
    }


async def handle_parse_request(
    address: Optional[str],
    *,
    method: str,
    parse: Callable[[str], Any],
    metrics: MetricsRegistry,
    config: ServiceConfig,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate ``address``, parse it under the configured deadline and record
    the outcome in ``metrics``.

    Domain failures (missing or invalid input, timeout, parser error) are
    returned in-band with ``success: False``; this function does not raise
    for them.
    """
    start = time.perf_counter()
    metrics.record_request(method)
    log_extra = {"method": method, "request_id": request_id}

    if address is None:
        metrics.record_outcome(Outcome.VALIDATION_ERROR)
        logger.warning(
            "parse_request_failed reason=missing_address_parameter method=%s",
            method,
            extra={**log_extra, "event": "parse_request_failed", "reason": "missing_address_parameter"},
        )
        return _response(success=False, start=start, error=MISSING_ADDRESS_ERROR)

    address = address.strip()
    reason = validate_address(address, max_length=config.max_address_length)
    if reason is not None:
        metrics.record_outcome(Outcome.VALIDATION_ERROR)
        logger.warning(
            "parse_request_failed reason=validation_failed method=%s error=%s",
            method,
            reason,
            extra={**log_extra, "event": "parse_request_failed", "reason": "validation_failed", "error": reason},
        )
        return _response(success=False, start=start, error=reason)

    logger.info(
        "parse_request_started method=%s address_length=%d",
        method,
        len(address),
        extra={**log_extra, "event": "parse_request_started"},
    )
    outcome = await invoke(parse, address, config.request_timeout)

    if isinstance(outcome, ParseTimeout):
        metrics.record_outcome(Outcome.TIMEOUT)
        logger.error(
            "parse_request_timeout method=%s timeout_secs=%s",
            method,
            config.request_timeout,
            extra={**log_extra, "event": "parse_request_timeout"},
        )
        return _response(success=False, start=start, error=TIMEOUT_ERROR)

    if isinstance(outcome, ParseFailure):
        metrics.record_outcome(Outcome.PARSE_FAILURE)
        logger.warning(
            "parse_request_failed reason=parse_failed method=%s error=%s",
            method,
            outcome.message,
            extra={**log_extra, "event": "parse_request_failed", "reason": "parse_failed", "error": outcome.message},
        )
        return _response(success=False, start=start, error=outcome.message)

    if not isinstance(outcome, ParseSuccess):
        raise TypeError(f"unexpected invoke result: {outcome!r}")
    metrics.record_outcome(Outcome.SUCCESS, outcome.elapsed_ms)
    response = _response(success=True, start=start, result=_serialize_address(outcome.address))
    logger.info(
        "parse_request_completed method=%s parse_time_ms=%.2f total_time_ms=%d",
        method,
        outcome.elapsed_ms,
        response["processing_time_ms"],
        extra={**log_extra, "event": "parse_request_completed"},
    )
    return response
