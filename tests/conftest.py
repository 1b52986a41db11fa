import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from engine.state_store import StateStore  # noqa: E402
from signal_router import SignalRouter  # noqa: E402

from helpers import FakeClock, FakeMarket, RecordingHandler  # noqa: E402


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def market(monkeypatch):
    """Fake candle source wired into the scan loop and admin calculators."""
    import admin
    import scan_loop

    fake = FakeMarket()
    monkeypatch.setattr(scan_loop, "calculate_indicators", fake.calculate)
    monkeypatch.setattr(admin, "calculate_indicators", fake.calculate)
    return fake


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def router(handler):
    return SignalRouter(handlers=[handler])


@pytest.fixture
def clock():
    return FakeClock()
