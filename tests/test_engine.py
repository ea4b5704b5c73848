"""Aggregation engine over the plaintext stub provider."""
import pytest

from policylab import AlreadyRevealed, InvalidPolicy, PolicySimulationSystem, RevealPending, SystemConfig, TargetKind
from policylab.events import SimulationCompleted
from policylab.Homo.provider import PlaintextProvider
from policylab.Homo.reduce import homomorphic_sum

from helpers import propose, register


def effect(system, policy_id):
    return system.provider.decrypt(system.store.policy(policy_id).effect_index)


def expected_partial(tax, hf, ei, health, education):
    return (hf * health + ei * education + (10000 - tax)) // 100


def test_reference_scenario(plain_system, sink):
    register(plain_system, health=80, education=90)
    register(plain_system, health=60, education=70)
    pid = propose(plain_system, 1000, 50, 50)

    plain_system.simulate(pid)

    assert effect(plain_system, pid) == (4000 + 4500 + 9000) // 100 + (3000 + 3500 + 9000) // 100
    assert effect(plain_system, pid) == 330
    assert sink.events[-1] == SimulationCompleted(pid)


def test_simulation_is_deterministic(plain_system):
    register(plain_system, health=33, education=71)
    register(plain_system, health=12, education=5)
    pid = propose(plain_system, 250, 7, 3)

    plain_system.simulate(pid)
    first = effect(plain_system, pid)
    plain_system.simulate(pid)
    assert effect(plain_system, pid) == first


def test_rerun_includes_new_citizen(plain_system):
    register(plain_system, health=80, education=90)
    pid = propose(plain_system, 1000, 50, 50)
    plain_system.simulate(pid)
    before = effect(plain_system, pid)

    register(plain_system, health=60, education=70)
    assert effect(plain_system, pid) == before  # not incremental
    plain_system.simulate(pid)

    assert effect(plain_system, pid) == before + expected_partial(1000, 50, 50, 60, 70)


def test_division_floors_each_partial(plain_system):
    register(plain_system, health=1, education=0)
    register(plain_system, health=1, education=0)
    pid = propose(plain_system, 9950, 1, 0)  # each partial is 51/100
    plain_system.simulate(pid)
    assert effect(plain_system, pid) == 0


def test_no_citizens_gives_zero(plain_system):
    pid = propose(plain_system, 1000, 50, 50)
    plain_system.simulate(pid)
    assert effect(plain_system, pid) == 0


@pytest.mark.parametrize("bad_id", [0, 2, 99])
def test_invalid_policy(plain_system, sink, bad_id):
    propose(plain_system, 1, 1, 1)
    emitted = len(sink.events)
    with pytest.raises(InvalidPolicy):
        plain_system.simulate(bad_id)
    assert len(sink.events) == emitted


def test_revealed_policy_cannot_be_resimulated(plain_system):
    register(plain_system, health=1, education=1)
    pid = propose(plain_system, 1, 1, 1)
    plain_system.store.finalize_reveal(TargetKind.POLICY, pid, [1, 1, 1, 0])
    with pytest.raises(AlreadyRevealed):
        plain_system.simulate(pid)


class CountingProvider(PlaintextProvider):
    def __init__(self):
        self.multiplies = 0

    def multiply(self, a, b):
        self.multiplies += 1
        return super().multiply(a, b)


def test_revealed_policy_is_rejected_before_any_work():
    provider = CountingProvider()
    system = PolicySimulationSystem(provider, config=SystemConfig(backend="plain"))
    for _ in range(3):
        register(system, health=5, education=5)
    pid = propose(system, 1, 1, 1)
    system.request_reveal(TargetKind.POLICY, pid)
    system.oracle.fulfil_all()

    with pytest.raises(AlreadyRevealed):
        system.simulate(pid)
    assert provider.multiplies == 0


def test_policy_with_reveal_in_flight_cannot_be_resimulated(plain_system, sink):
    register(plain_system, health=80, education=90)
    pid = propose(plain_system, 1000, 50, 50)
    plain_system.simulate(pid)
    request_id = plain_system.request_reveal(TargetKind.POLICY, pid)
    emitted = len(sink.events)

    register(plain_system, health=60, education=70)
    with pytest.raises(RevealPending) as excinfo:
        plain_system.simulate(pid)
    assert excinfo.value.request_id == request_id
    assert len(sink.events) == emitted + 1  # only the registration

    plain_system.oracle.fulfil(request_id)

    view = plain_system.get_policy(pid)
    assert view.values["effect_index"] == effect(plain_system, pid) == 175


def test_tree_sum_matches_sequential_sum():
    provider = PlaintextProvider()
    values = list(range(1, 12))
    cts = [provider.encrypt(v) for v in values]
    assert provider.decrypt(homomorphic_sum(provider, cts)) == sum(values)
    assert provider.decrypt(homomorphic_sum(provider, cts[:1])) == 1
    assert provider.decrypt(homomorphic_sum(provider, [])) == 0


def test_plain_provider_wraps_like_uint64():
    p = PlaintextProvider()
    assert p.decrypt(p.subtract(p.encrypt(1), p.encrypt(2))) == 2**64 - 1
    assert p.decrypt(p.multiply(p.encrypt(2**63), p.encrypt(2))) == 0
    with pytest.raises(ValueError):
        p.divide(p.encrypt(1), 0)
    with pytest.raises(ValueError):
        p.encrypt(-1)
