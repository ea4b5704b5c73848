# policylab/Records/store.py
"""
Encrypted record store.

Two append-only tables keyed by dense ids starting at 1 (0 is never valid),
one for citizens and one for policies. Records hold ciphertext handles until
a proof-checked reveal writes their cleartext, after which they are frozen.
"""
import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import structlog

from policylab.errors import AlreadyRevealed, NotFound
from policylab.events import CitizenRegistered, EventSink, NullSink, PolicyProposed, TargetKind
from policylab.Homo.provider import Ciphertext, HomomorphicProvider

logger = structlog.get_logger()

Cleartext = Tuple[int, int, int, int]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CitizenRecord:
    id: int
    income: Ciphertext
    health: Ciphertext
    education: Ciphertext
    satisfaction: Ciphertext
    created_at: datetime = field(default_factory=_now)
    revealed: bool = False
    cleartext: Cleartext = (0, 0, 0, 0)

    FIELDS = ("income", "health", "education", "satisfaction")

    def reveal_bundle(self) -> List[Ciphertext]:
        return [getattr(self, name) for name in self.FIELDS]


@dataclass
class PolicyRecord:
    id: int
    tax_rate: Ciphertext
    healthcare_funding: Ciphertext
    education_investment: Ciphertext
    effect_index: Ciphertext
    name: str = ""
    category: str = ""
    creator: str = ""
    created_at: datetime = field(default_factory=_now)
    revealed: bool = False
    cleartext: Cleartext = (0, 0, 0, 0)

    FIELDS = ("tax_rate", "healthcare_funding", "education_investment", "effect_index")

    def reveal_bundle(self) -> List[Ciphertext]:
        return [getattr(self, name) for name in self.FIELDS]


@dataclass(frozen=True)
class RecordView:
    """What the query surface returns: cleartext fields (zeros until revealed)."""
    kind: TargetKind
    id: int
    created_at: datetime
    revealed: bool
    values: Dict[str, int]
    name: str = ""
    category: str = ""
    creator: str = ""


def _view(kind: TargetKind, record) -> RecordView:
    extra = {}
    if kind is TargetKind.POLICY:
        extra = {"name": record.name, "category": record.category, "creator": record.creator}
    return RecordView(
        kind=kind,
        id=record.id,
        created_at=record.created_at,
        revealed=record.revealed,
        values=dict(zip(record.FIELDS, record.cleartext)),
        **extra,
    )


class EncryptedRecordStore:
    def __init__(self, provider: HomomorphicProvider, sink: Optional[EventSink] = None):
        self.provider = provider
        self.sink = sink or NullSink()
        self._lock = threading.RLock()
        self._citizens: List[CitizenRecord] = []
        self._policies: List[PolicyRecord] = []

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # -- registration -------------------------------------------------------

    def register_citizen(self, income: Ciphertext, health: Ciphertext,
                         education: Ciphertext, satisfaction: Ciphertext) -> int:
        with self._lock:
            citizen_id = len(self._citizens) + 1
            self._citizens.append(CitizenRecord(
                id=citizen_id, income=income, health=health,
                education=education, satisfaction=satisfaction,
            ))
            logger.info("Citizen registered", citizen_id=citizen_id)
            self.sink.emit(CitizenRegistered(citizen_id))
            return citizen_id

    def register_policy(self, tax_rate: Ciphertext, healthcare_funding: Ciphertext,
                        education_investment: Ciphertext, name: str = "",
                        category: str = "", creator: str = "") -> int:
        effect_index = self.provider.encrypt_zero()
        with self._lock:
            policy_id = len(self._policies) + 1
            self._policies.append(PolicyRecord(
                id=policy_id, tax_rate=tax_rate, healthcare_funding=healthcare_funding,
                education_investment=education_investment, effect_index=effect_index,
                name=name, category=category, creator=creator,
            ))
            logger.info("Policy proposed", policy_id=policy_id, category=category)
            self.sink.emit(PolicyProposed(policy_id))
            return policy_id

    # -- encrypted access (core only) ----------------------------------------

    def citizen(self, citizen_id: int) -> CitizenRecord:
        with self._lock:
            if not 1 <= citizen_id <= len(self._citizens):
                raise NotFound(TargetKind.CITIZEN.value, citizen_id)
            return self._citizens[citizen_id - 1]

    def policy(self, policy_id: int) -> PolicyRecord:
        with self._lock:
            if not 1 <= policy_id <= len(self._policies):
                raise NotFound(TargetKind.POLICY.value, policy_id)
            return self._policies[policy_id - 1]

    def record(self, kind: TargetKind, record_id: int):
        if kind is TargetKind.CITIZEN:
            return self.citizen(record_id)
        return self.policy(record_id)

    def citizens(self) -> List[CitizenRecord]:
        """Point-in-time copy of the citizen table, ids 1..count."""
        with self._lock:
            return list(self._citizens)

    def set_effect_index(self, policy_id: int, effect_index: Ciphertext) -> None:
        with self._lock:
            policy = self.policy(policy_id)
            if policy.revealed:
                raise AlreadyRevealed(TargetKind.POLICY.value, policy_id)
            policy.effect_index = effect_index

    def finalize_reveal(self, kind: TargetKind, record_id: int, values) -> None:
        with self._lock:
            record = self.record(kind, record_id)
            if record.revealed:
                raise AlreadyRevealed(kind.value, record_id)
            record.cleartext = tuple(values)
            record.revealed = True

    # -- query surface -------------------------------------------------------

    def get_citizen(self, citizen_id: int) -> RecordView:
        with self._lock:
            return _view(TargetKind.CITIZEN, self.citizen(citizen_id))

    def get_policy(self, policy_id: int) -> RecordView:
        with self._lock:
            return _view(TargetKind.POLICY, self.policy(policy_id))

    def citizen_count(self) -> int:
        with self._lock:
            return len(self._citizens)

    def policy_count(self) -> int:
        with self._lock:
            return len(self._policies)

    def list_policies(self, category: Optional[str] = None, search: Optional[str] = None) -> List[RecordView]:
        """Newest first; ``search`` matches name or category, case-insensitively."""
        with self._lock:
            policies = list(self._policies)
        if category is not None:
            policies = [p for p in policies if p.category == category]
        if search:
            term = search.lower()
            policies = [p for p in policies
                        if term in p.name.lower() or term in p.category.lower()]
        policies.sort(key=lambda p: (p.created_at, p.id), reverse=True)
        return [_view(TargetKind.POLICY, p) for p in policies]

    def category_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        with self._lock:
            for p in self._policies:
                counts[p.category] = counts.get(p.category, 0) + 1
        return counts

    # -- persistence ---------------------------------------------------------

    def snapshot(self) -> dict:
        def dump(kind: TargetKind, record) -> dict:
            return {
                "id": record.id,
                "created_at": record.created_at.isoformat(),
                "revealed": record.revealed,
                "cleartext": list(record.cleartext),
                "encrypted": {name: getattr(record, name).to_json() for name in record.FIELDS},
                **({"name": record.name, "category": record.category, "creator": record.creator}
                   if kind is TargetKind.POLICY else {}),
            }

        with self._lock:
            return {
                "citizens": [dump(TargetKind.CITIZEN, c) for c in self._citizens],
                "policies": [dump(TargetKind.POLICY, p) for p in self._policies],
            }

    def save_snapshot(self, path) -> Path:
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.snapshot(), f, ensure_ascii=False, indent=2)
        logger.info("Snapshot saved", path=str(path))
        return path
