"""Shared fixtures for the sporangia test suite"""

import asyncio

import pytest

from sporangia.common.timebase import ManualClock
from sporangia.config import EngineConfig
from sporangia.net.builder import NetBuilder


async def _settle(rounds: int = 10):
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    """Awaitable that lets scheduled tasks run up to their next suspension point"""
    return _settle


@pytest.fixture
def manual_tb():
    return ManualClock()


@pytest.fixture
def fast_config():
    """Short, distinct stage delays so tests can tell the stages apart"""
    return EngineConfig(start_delay=2, irrigation_delay=3, drying_delay=4)


@pytest.fixture
def cyclic_net():
    """One place, one transition that gives back what it takes: always enabled."""
    b = NetBuilder("cyclic")
    b.place("p", tokens=1)
    b.transition("spin")
    b.arc("p", "spin").arc("p")
    return b.build()
