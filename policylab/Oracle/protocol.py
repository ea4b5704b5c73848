# policylab/Oracle/protocol.py
"""
Two-phase reveal.

Phase 1 (``request_reveal``) ships a record's four ciphertexts to the oracle
and remembers ``request_id -> target``. Phase 2 (``finalize_reveal``) is the
oracle's callback: it checks the proof, writes the cleartext into the record
and consumes the request. The two phases share nothing but the pending map.

Field order is fixed:
    citizen: income, health, education, satisfaction
    policy:  tax_rate, healthcare_funding, education_investment, effect_index
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import structlog

from policylab.errors import AlreadyRevealed, InvalidProof, UnknownRequest
from policylab.events import (
    DecryptionCompleted,
    DecryptionExpired,
    DecryptionRequested,
    EventSink,
    NullSink,
    TargetKind,
)
from policylab.Oracle.gateway import DecryptionOracle
from policylab.Records.store import EncryptedRecordStore

logger = structlog.get_logger()

REVEAL_WIDTH = 4


@dataclass(frozen=True)
class PendingReveal:
    request_id: str
    target_kind: TargetKind
    target_id: int
    requested_at: float


class DecryptionOracleProtocol:
    def __init__(self, store: EncryptedRecordStore, oracle: DecryptionOracle,
                 sink: Optional[EventSink] = None, reveal_ttl: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.oracle = oracle
        self.sink = sink or NullSink()
        self.reveal_ttl = reveal_ttl
        self.clock = clock
        self._pending: Dict[str, PendingReveal] = {}
        self._by_target: Dict[Tuple[TargetKind, int], str] = {}
        # the store lock comes first whenever both are held
        self._lock = threading.RLock()

    def request_reveal(self, target_kind: TargetKind, target_id: int) -> str:
        target_kind = TargetKind(target_kind)
        with self.store.lock, self._lock:
            record = self.store.record(target_kind, target_id)
            if record.revealed:
                raise AlreadyRevealed(target_kind.value, target_id)

            self._expire_locked(self.clock())
            existing = self._by_target.get((target_kind, target_id))
            if existing is not None:
                logger.debug("Reveal already pending", target_kind=target_kind.value,
                             target_id=target_id, request_id=existing)
                return existing

            request_id = self.oracle.submit(record.reveal_bundle())
            entry = PendingReveal(request_id, target_kind, target_id, self.clock())
            self._pending[request_id] = entry
            self._by_target[(target_kind, target_id)] = request_id
            logger.info("Decryption requested", target_kind=target_kind.value,
                        target_id=target_id, request_id=request_id)
            self.sink.emit(DecryptionRequested(target_kind, target_id))
            return request_id

    def finalize_reveal(self, request_id: str, cleartext_values: Sequence[int], proof: bytes) -> None:
        with self.store.lock, self._lock:
            entry = self._pending.get(request_id)
            if entry is None:
                raise UnknownRequest(request_id)
            values = list(cleartext_values)
            if len(values) != REVEAL_WIDTH:
                raise InvalidProof(request_id, f"expected {REVEAL_WIDTH} cleartexts, got {len(values)}")
            if any(type(v) is not int for v in values):
                raise InvalidProof(request_id, "cleartexts must be plain integers")
            if not self.oracle.verify(request_id, values, proof):
                logger.warning("Rejected decryption callback", request_id=request_id,
                               target_kind=entry.target_kind.value, target_id=entry.target_id)
                raise InvalidProof(request_id)

            self.store.finalize_reveal(entry.target_kind, entry.target_id, values)
            self._drop(entry)
            logger.info("Decryption completed", target_kind=entry.target_kind.value,
                        target_id=entry.target_id, request_id=request_id)
            self.sink.emit(DecryptionCompleted(entry.target_kind, entry.target_id))

    def on_oracle_response(self, response) -> None:
        """Gateway callback adapter."""
        self.finalize_reveal(response.request_id, response.cleartexts, response.proof)

    def pending_requests(self) -> Dict[str, PendingReveal]:
        with self._lock:
            return dict(self._pending)

    def pending_for(self, target_kind: TargetKind, target_id: int) -> Optional[str]:
        with self._lock:
            self._expire_locked(self.clock())
            return self._by_target.get((TargetKind(target_kind), target_id))

    def expire_stale(self, now: Optional[float] = None) -> List[PendingReveal]:
        with self._lock:
            return self._expire_locked(self.clock() if now is None else now)

    def _drop(self, entry: PendingReveal) -> None:
        del self._pending[entry.request_id]
        self._by_target.pop((entry.target_kind, entry.target_id), None)

    def _expire_locked(self, now: float) -> List[PendingReveal]:
        if self.reveal_ttl is None:
            return []
        stale = [e for e in self._pending.values() if now - e.requested_at >= self.reveal_ttl]
        for entry in stale:
            self._drop(entry)
            self.oracle.cancel(entry.request_id)
            logger.warning("Decryption request expired", request_id=entry.request_id,
                           target_kind=entry.target_kind.value, target_id=entry.target_id)
            self.sink.emit(DecryptionExpired(entry.target_kind, entry.target_id))
        return stale
