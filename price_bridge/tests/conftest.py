"""Shared fixtures."""

from decimal import Decimal

import pytest

from price_bridge.tests.fakes import FakeFetcher, FakeLedgerClient


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient(nonce=7)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            "eth": Decimal("2345.6789"),
            "dot": Decimal("5.12"),
            "ksm": Decimal("31.5"),
            "btc": Decimal("64000"),
        }
    )
