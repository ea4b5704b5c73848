"""Full flow on the Paillier backend with threshold decryption."""
from policylab import PolicySimulationSystem, RecordingSink, SystemConfig, TargetKind
from policylab.events import (
    CitizenRegistered,
    DecryptionCompleted,
    DecryptionRequested,
    PolicyProposed,
    SimulationCompleted,
)

from helpers import propose, register


def test_policy_simulation_and_reveal(paillier_provider):
    sink = RecordingSink()
    system = PolicySimulationSystem(paillier_provider, sink=sink, config=SystemConfig(key_bits=32, threshold=2, committee_size=3))
    assert system.is_available()

    register(system, 52000, 80, 90, 7)
    register(system, 38000, 60, 70, 6)
    pid = propose(system, 1000, 50, 50, name="Care and schools", category="Social")

    system.simulate(pid)
    system.oracle.fulfil(system.request_reveal(TargetKind.POLICY, pid))

    view = system.get_policy(pid)
    assert view.revealed is True
    assert view.values == {
        "tax_rate": 1000,
        "healthcare_funding": 50,
        "education_investment": 50,
        "effect_index": ((50 * 80 + 50 * 90 + 9000) // 100) + ((50 * 60 + 50 * 70 + 9000) // 100),
    }

    system.oracle.fulfil(system.request_reveal(TargetKind.CITIZEN, 2))
    assert system.get_citizen(2).values == {
        "income": 38000, "health": 60, "education": 70, "satisfaction": 6,
    }
    assert system.get_citizen(1).revealed is False

    assert sink.events == [
        CitizenRegistered(1),
        CitizenRegistered(2),
        PolicyProposed(pid),
        SimulationCompleted(pid),
        DecryptionRequested(TargetKind.POLICY, pid),
        DecryptionCompleted(TargetKind.POLICY, pid),
        DecryptionRequested(TargetKind.CITIZEN, 2),
        DecryptionCompleted(TargetKind.CITIZEN, 2),
    ]


def test_setup_builds_plain_backend():
    system = PolicySimulationSystem.setup(SystemConfig(backend="plain"))
    assert system.provider.scheme == "plain"
    assert system.config.backend == "plain"
