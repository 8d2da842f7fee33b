"""Shared fixtures for the my_ping tests. No raw socket or root needed."""

import pytest

from tests.helpers import FakeClock, FakeSocket


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_socket():
    return FakeSocket()
