# policylab/system.py
from typing import Dict, List, Optional

import structlog

from policylab.config import SystemConfig
from policylab.events import EventSink, NullSink, TargetKind
from policylab.Homo.provider import Ciphertext, HomomorphicProvider, PaillierProvider, PlaintextProvider
from policylab.Oracle.gateway import DecryptionOracle
from policylab.Oracle.protocol import DecryptionOracleProtocol
from policylab.Records.store import EncryptedRecordStore, RecordView
from policylab.Simulation.engine import AggregationEngine

logger = structlog.get_logger()


class PolicySimulationSystem:
    """Store, engine and reveal protocol wired to one provider and oracle."""

    def __init__(self, provider: HomomorphicProvider, oracle: Optional[DecryptionOracle] = None,
                 sink: Optional[EventSink] = None, config: Optional[SystemConfig] = None):
        self.config = config or SystemConfig()
        self.provider = provider
        self.sink = sink or NullSink()
        self.oracle = oracle or DecryptionOracle(provider)
        self.store = EncryptedRecordStore(provider, self.sink)
        self.protocol = DecryptionOracleProtocol(self.store, self.oracle, self.sink,
                                                 reveal_ttl=self.config.reveal_ttl)
        self.engine = AggregationEngine(self.store, provider, self.sink,
                                        base=self.config.base, scale=self.config.scale,
                                        pending_reveal=self.protocol.pending_for)
        self.oracle.subscribe(self.protocol.on_oracle_response)

    @classmethod
    def setup(cls, config: Optional[SystemConfig] = None, sink: Optional[EventSink] = None) -> "PolicySimulationSystem":
        config = config or SystemConfig()
        if config.backend == "plain":
            provider: HomomorphicProvider = PlaintextProvider()
        else:
            provider = PaillierProvider.setup(config.key_bits, config.threshold, config.committee_size)
        logger.info("System ready", backend=config.backend)
        return cls(provider, sink=sink, config=config)

    def is_available(self) -> bool:
        return self.oracle.is_available()

    def encrypt(self, value: int) -> Ciphertext:
        """Client-side encryption under the system public key."""
        return self.provider.encrypt(value)

    def register_citizen(self, income: Ciphertext, health: Ciphertext,
                         education: Ciphertext, satisfaction: Ciphertext) -> int:
        return self.store.register_citizen(income, health, education, satisfaction)

    def propose_policy(self, tax_rate: Ciphertext, healthcare_funding: Ciphertext,
                       education_investment: Ciphertext, name: str = "",
                       category: str = "", creator: str = "") -> int:
        return self.store.register_policy(tax_rate, healthcare_funding, education_investment,
                                          name=name, category=category, creator=creator)

    def simulate(self, policy_id: int) -> Ciphertext:
        return self.engine.simulate_policy_effect(policy_id)

    def request_reveal(self, target_kind: TargetKind, target_id: int) -> str:
        return self.protocol.request_reveal(target_kind, target_id)

    def get_citizen(self, citizen_id: int) -> RecordView:
        return self.store.get_citizen(citizen_id)

    def get_policy(self, policy_id: int) -> RecordView:
        return self.store.get_policy(policy_id)

    def citizen_count(self) -> int:
        return self.store.citizen_count()

    def policy_count(self) -> int:
        return self.store.policy_count()

    def list_policies(self, category: Optional[str] = None, search: Optional[str] = None) -> List[RecordView]:
        return self.store.list_policies(category=category, search=search)

    def category_counts(self) -> Dict[str, int]:
        return self.store.category_counts()

    def save_snapshot(self, path):
        return self.store.save_snapshot(path)

    def close(self) -> None:
        self.oracle.shutdown()
