import os
import sys

import pytest

# Ensure repository root is on sys.path before importing project modules.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from jp_address_api.metrics import default_metrics  # noqa: E402
from jp_address_api.parser import ParsedAddress  # noqa: E402


@pytest.fixture(autouse=True)
def reset_metrics():
    default_metrics.reset()
    yield
    default_metrics.reset()


class StubParser:
    """Parser double returning a fixed, fully populated address."""

    def __init__(self):
        self.calls = []
        self.closed = False

    async def parse(self, text):
        self.calls.append(text)
        return ParsedAddress(prefecture="東京都", city="渋谷区", town="神宮前一丁目", rest="1-1")

    async def aclose(self):
        self.closed = True


@pytest.fixture
def stub_parser():
    return StubParser()
