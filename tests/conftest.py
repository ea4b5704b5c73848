"""Shared fixtures: a plaintext-stub system and a small-key Paillier provider."""
import pytest

from policylab import PolicySimulationSystem, RecordingSink, SystemConfig
from policylab.Homo.provider import PaillierProvider, PlaintextProvider


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def plain_system(sink):
    return PolicySimulationSystem(PlaintextProvider(), sink=sink, config=SystemConfig(backend="plain"))


@pytest.fixture(scope="session")
def paillier_provider():
    # 32-bit primes keep key generation fast; N is still ~64 bits
    return PaillierProvider.setup(key_bits=32, threshold=2, committee_size=3)
