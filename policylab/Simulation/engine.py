# policylab/Simulation/engine.py
"""
Encrypted policy-effect aggregation.

For policy P and every registered citizen c:

    partial(c) = (P.healthcare_funding * c.health
                  + P.education_investment * c.education
                  + (BASE - P.tax_rate)) / SCALE

and ``effect_index = Σ partial(c)``, all under encryption. Each run recomputes
from the whole current population and replaces the previous result.
"""
import time
from typing import Callable, List, Optional

import structlog

from policylab.errors import AlreadyRevealed, InvalidPolicy, RevealPending
from policylab.events import EventSink, NullSink, SimulationCompleted, TargetKind
from policylab.Homo.provider import Ciphertext, HomomorphicProvider
from policylab.Homo.reduce import homomorphic_sum
from policylab.Records.store import CitizenRecord, EncryptedRecordStore, PolicyRecord

logger = structlog.get_logger()

BASE = 10000   # basis points
SCALE = 100


class AggregationEngine:
    def __init__(self, store: EncryptedRecordStore, provider: HomomorphicProvider,
                 sink: Optional[EventSink] = None, base: int = BASE, scale: int = SCALE,
                 pending_reveal: Optional[Callable[[TargetKind, int], Optional[str]]] = None):
        self.store = store
        self.provider = provider
        self.sink = sink or NullSink()
        self.base = base
        self.scale = scale
        # lookup of an outstanding reveal request for a record, if any
        self.pending_reveal = pending_reveal

    def contribution(self, policy: PolicyRecord, citizen: CitizenRecord,
                     tax_headroom: Ciphertext) -> Ciphertext:
        p = self.provider
        health_term = p.multiply(policy.healthcare_funding, citizen.health)
        education_term = p.multiply(policy.education_investment, citizen.education)
        total = p.add(p.add(health_term, education_term), tax_headroom)
        return p.divide(total, self.scale)

    def _check_mutable(self, policy: PolicyRecord) -> None:
        if policy.revealed:
            raise AlreadyRevealed(TargetKind.POLICY.value, policy.id)
        if self.pending_reveal is not None:
            request_id = self.pending_reveal(TargetKind.POLICY, policy.id)
            if request_id is not None:
                raise RevealPending(TargetKind.POLICY.value, policy.id, request_id)

    def simulate_policy_effect(self, policy_id: int) -> Ciphertext:
        """
        Recompute and store the encrypted effect index of ``policy_id``.

        Cost is linear in the number of citizens with two ciphertext products
        each; registrations are not blocked while it runs and citizens added
        mid-run may be left out.
        A revealed policy, or one with a reveal in flight, is left untouched.
        """
        if not 1 <= policy_id <= self.store.policy_count():
            raise InvalidPolicy(policy_id)

        start = time.time()
        with self.store.lock:
            policy = self.store.policy(policy_id)
            self._check_mutable(policy)
            citizens = self.store.citizens()

        # BASE - taxRate is the same for every citizen
        tax_headroom = self.provider.subtract(self.provider.encrypt(self.base), policy.tax_rate)
        partials: List[Ciphertext] = [
            self.contribution(policy, citizen, tax_headroom) for citizen in citizens
        ]
        total_effect = homomorphic_sum(self.provider, partials)

        with self.store.lock:
            self._check_mutable(policy)
            self.store.set_effect_index(policy_id, total_effect)
            self.sink.emit(SimulationCompleted(policy_id))
        logger.info(
            "Simulation completed",
            policy_id=policy_id,
            citizens=len(citizens),
            duration=round(time.time() - start, 4),
        )
        return total_effect
