"""Shared fixtures: a fake clock so no test ever really sleeps."""

import pytest


class FakeClock:
    """Epoch clock whose sleep advances time instead of blocking."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
