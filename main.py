import time
import structlog

from policylab import PolicySimulationSystem, SystemConfig, TargetKind
from policylab.events import LoggingSink, FanoutSink, RecordingSink

CITIZENS = [
    # income, health, education, satisfaction
    (52000, 80, 90, 7),
    (38000, 60, 70, 6),
]
POLICY = {"tax_rate": 1000, "healthcare_funding": 50, "education_investment": 50}


def print_stage(title: str):
    print("\n" + "=" * 10 + f" {title} " + "=" * 10)


def log(role: str, msg: str, duration: float = None):
    if duration is None:
        print(f"[{role}] {msg}")
    else:
        print(f"[{role}] {msg} took {duration:.4f}s")


def setup_system(k: int, t: int, d: int):
    start = time.time()
    recorder = RecordingSink()
    system = PolicySimulationSystem.setup(
        SystemConfig(key_bits=k, threshold=t, committee_size=d),
        sink=FanoutSink(recorder, LoggingSink()),
    )
    log("TA", f"Paillier keys ({k}-bit primes), λ shared {t}-of-{d}", time.time() - start)
    return system, recorder


def register_citizens(system: PolicySimulationSystem):
    start = time.time()
    ids = []
    for income, health, education, satisfaction in CITIZENS:
        ids.append(system.register_citizen(
            system.encrypt(income), system.encrypt(health),
            system.encrypt(education), system.encrypt(satisfaction),
        ))
    log("Citizens", f"registered ids {ids}", time.time() - start)
    return ids


def propose_policy(system: PolicySimulationSystem) -> int:
    policy_id = system.propose_policy(
        system.encrypt(POLICY["tax_rate"]),
        system.encrypt(POLICY["healthcare_funding"]),
        system.encrypt(POLICY["education_investment"]),
        name="Universal care + schools", category="Social", creator="demo",
    )
    log("Proposer", f"policy {policy_id} submitted")
    return policy_id


def reveal(system: PolicySimulationSystem, kind: TargetKind, target_id: int):
    start = time.time()
    request_id = system.request_reveal(kind, target_id)
    log("Protocol", f"{kind.value} {target_id} -> request {request_id}")
    system.oracle.fulfil(request_id)
    log("Oracle", "threshold decryption + proof delivered", time.time() - start)


def expected_effect() -> int:
    return sum(
        (POLICY["healthcare_funding"] * health
         + POLICY["education_investment"] * education
         + (10000 - POLICY["tax_rate"])) // 100
        for _, health, education, _ in CITIZENS
    )


if __name__ == "__main__":
    structlog.configure(logger_factory=structlog.PrintLoggerFactory())

    print_stage("System setup")
    system, recorder = setup_system(k=64, t=3, d=5)

    print_stage("Register citizens and propose policy")
    register_citizens(system)
    policy_id = propose_policy(system)

    print_stage("Simulate under encryption")
    start = time.time()
    system.simulate(policy_id)
    log("Engine", f"effect index of policy {policy_id} recomputed", time.time() - start)

    print_stage("Reveal")
    reveal(system, TargetKind.POLICY, policy_id)
    reveal(system, TargetKind.CITIZEN, 1)

    print_stage("Results")
    view = system.get_policy(policy_id)
    print(f"policy {policy_id}: {view.values} (revealed={view.revealed})")
    print(f"expected effect index: {expected_effect()}")
    print(f"citizen 1: {system.get_citizen(1).values}")
    print(f"events: {[type(e).__name__ for e in recorder.events]}")
    system.close()
