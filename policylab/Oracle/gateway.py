# policylab/Oracle/gateway.py
"""
In-process decryption gateway.

Stands in for the external oracle: accepts ciphertext bundles, hands back a
fresh request id immediately, and later decrypts, signs and delivers the
result to whoever subscribed. Delivery happens on ``fulfil``/``fulfil_all``
or on the background worker started with ``start``.
"""
import hashlib
import itertools
import json
import queue
import secrets
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import multihash
import structlog
from cid import make_cid
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from policylab.errors import UnknownRequest
from policylab.Homo.provider import Ciphertext, HomomorphicProvider

logger = structlog.get_logger()


def compute_local_cid(data: bytes) -> str:
    mh_bytes = multihash.encode(hashlib.sha256(data).digest(), "sha2-256")
    # CIDv1 + dag-pb codec
    return str(make_cid(1, "dag-pb", mh_bytes))


def canonical_bytes(document) -> bytes:
    return json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")


@dataclass
class OracleJob:
    request_id: str
    ciphertexts: Tuple[Ciphertext, ...]
    submitted_at: float


@dataclass(frozen=True)
class OracleResponse:
    request_id: str
    cleartexts: Tuple[int, ...]
    proof: bytes


Callback = Callable[[OracleResponse], None]


class DecryptionOracle:
    def __init__(self, provider: HomomorphicProvider, signing_key: Optional[Ed25519PrivateKey] = None):
        self.provider = provider
        self._signing_key = signing_key or Ed25519PrivateKey.generate()
        self.public_key: Ed25519PublicKey = self._signing_key.public_key()
        self._jobs: "OrderedDict[str, OracleJob]" = OrderedDict()
        self._callbacks: List[Callback] = []
        self._seq = itertools.count(1)
        self._lock = threading.RLock()
        self._queue: "queue.Queue[str]" = queue.Queue()
        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._accepting = True

    def is_available(self) -> bool:
        return self._accepting

    def subscribe(self, callback: Callback) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def submit(self, ciphertexts: Sequence[Ciphertext]) -> str:
        """submit-decryption-request: returns at once with a fresh request id."""
        if not self._accepting:
            raise RuntimeError("decryption oracle is shut down")
        with self._lock:
            document = {
                "seq": next(self._seq),
                "nonce": secrets.token_hex(16),
                "ciphertexts": [c.to_json() for c in ciphertexts],
            }
            request_id = compute_local_cid(canonical_bytes(document))
            self._jobs[request_id] = OracleJob(request_id, tuple(ciphertexts), time.time())
        self._queue.put(request_id)
        logger.debug("Decryption request queued", request_id=request_id, size=len(ciphertexts))
        return request_id

    def pending(self) -> List[str]:
        with self._lock:
            return list(self._jobs)

    def cancel(self, request_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(request_id, None) is not None

    # -- proofs --------------------------------------------------------------

    def _message(self, request_id: str, cleartexts: Sequence[int]) -> bytes:
        return canonical_bytes({"request_id": request_id, "cleartexts": list(cleartexts)})

    def sign(self, request_id: str, cleartexts: Sequence[int]) -> bytes:
        return self._signing_key.sign(self._message(request_id, cleartexts))

    def verify(self, request_id: str, cleartexts: Sequence[int], proof: bytes) -> bool:
        try:
            self.public_key.verify(proof, self._message(request_id, cleartexts))
        except (InvalidSignature, TypeError, ValueError):
            return False
        return True

    # -- fulfilment ----------------------------------------------------------

    def fulfil(self, request_id: str, deliver: bool = True) -> OracleResponse:
        with self._lock:
            job = self._jobs.pop(request_id, None)
            callbacks = list(self._callbacks)
        if job is None:
            raise UnknownRequest(request_id)

        try:
            cleartexts = tuple(self.provider.decrypt_many(list(job.ciphertexts)))
        except Exception:
            with self._lock:
                self._jobs[request_id] = job
            self._queue.put(request_id)
            raise
        response = OracleResponse(request_id, cleartexts, self.sign(request_id, cleartexts))
        logger.info("Decryption fulfilled", request_id=request_id,
                    latency=round(time.time() - job.submitted_at, 4))
        if deliver:
            for callback in callbacks:
                callback(response)
        return response

    def fulfil_all(self, deliver: bool = True) -> List[OracleResponse]:
        return [self.fulfil(request_id, deliver) for request_id in self.pending()]

    # -- background worker -----------------------------------------------------

    def start(self, poll_interval: float = 0.1) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._stop.clear()
        self._worker = threading.Thread(
            target=self._run, args=(poll_interval,), name="decryption-oracle", daemon=True)
        self._worker.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._worker is not None:
            self._worker.join(timeout)
            self._worker = None

    def shutdown(self) -> None:
        self._accepting = False
        self.stop()

    def _run(self, poll_interval: float) -> None:
        while not self._stop.is_set():
            try:
                request_id = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                continue
            with self._lock:
                if request_id not in self._jobs:
                    continue  # cancelled or fulfilled by hand
            try:
                self.fulfil(request_id)
            except Exception:
                logger.exception("Oracle delivery failed", request_id=request_id)
                self._stop.wait(poll_interval)
