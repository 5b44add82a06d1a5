from __future__ import annotations

import pytest

from tests._helpers import FakeFetcher


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()
