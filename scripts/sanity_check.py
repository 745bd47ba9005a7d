"""Minimal live sanity checks for the address parser and pipeline."""

from __future__ import annotations

import asyncio
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from jp_address_api.config import default_config  # noqa: E402
from jp_address_api.exposition import render_metrics  # noqa: E402
from jp_address_api.metrics import MetricsRegistry  # noqa: E402
from jp_address_api.parser import AddressParser  # noqa: E402
from jp_address_api.pipeline import handle_parse_request  # noqa: E402

# Override via env to try other inputs against the live data source.
SAMPLE_ADDRESS = os.getenv("JP_ADDRESS_SAMPLE", "東京都渋谷区神宮前1-1-1")


async def main() -> None:
    parser = AddressParser()
    registry = MetricsRegistry()
    try:
        print("Direct parse:", (await parser.parse(SAMPLE_ADDRESS)).to_dict())
        for method, address in (("GET", SAMPLE_ADDRESS), ("POST", ""), ("GET", None)):
            result = await handle_parse_request(
                address, method=method, parse=parser.parse, metrics=registry, config=default_config
            )
            print(f"{method} {address!r}:", result)
    finally:
        await parser.aclose()
    print(render_metrics(registry.snapshot()))


if __name__ == "__main__":
    asyncio.run(main())
