"""
Shared fixtures: a clock that only moves on request, a seeded random
source, and an Argon2 hasher with minimal cost so tests stay fast.
"""

import random

import pytest

from credvault.auth.hashing import HashPort
from credvault.clock import ManualClock
from credvault.integration.event_logger import EventLogger
from credvault.record import AuthServices, CredentialRecord
from credvault.store import InMemoryRecordStore


START_TIME = 1_700_000_000
PASSWORD = "Sup3rSecret!"


class SeededRandomSource:
    """Deterministic stand-in for the OS random generator."""

    def __init__(self, seed: int = 1234):
        self._rng = random.Random(seed)

    def token_bytes(self, n: int) -> bytes:
        return bytes(self._rng.getrandbits(8) for _ in range(n))


def fast_hasher(**overrides) -> HashPort:
    params = {'time_cost': 1, 'memory_cost': 8, 'parallelism': 1}
    params.update(overrides)
    return HashPort(**params)


@pytest.fixture
def clock():
    return ManualClock(START_TIME)


@pytest.fixture
def rng():
    return SeededRandomSource()


@pytest.fixture
def hasher():
    return fast_hasher()


@pytest.fixture
def events(clock):
    return EventLogger(clock=clock)


@pytest.fixture
def services(clock, rng, hasher, events):
    return AuthServices.create(clock=clock, random_source=rng,
                               hasher=hasher, events=events)


@pytest.fixture
def record(services):
    return CredentialRecord.create("alice@example.com", PASSWORD,
                                   services=services)


@pytest.fixture
def store(services):
    return InMemoryRecordStore(services=services)
