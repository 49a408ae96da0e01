import pytest

from itinerary_optimizer import config


@pytest.fixture(autouse=True)
def offline_airports(monkeypatch):
    """Keep tests off the network; the fixed airport table is used instead."""
    monkeypatch.setattr(config, "USE_REMOTE_AIRPORTS", False)
