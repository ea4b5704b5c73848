# policylab/Homo/provider.py
"""
Homomorphic computation providers.

Everything above this module handles :class:`Ciphertext` handles only. A
provider supplies the operators over them; ``decrypt`` is key-holder side and
is called by the decryption gateway and nobody else.

Division is floor division by a public positive integer for every provider.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from secrets import randbelow
from typing import Any, List

import structlog

from policylab.Homo.paillier import Paillier, ThresholdCommittee
from policylab.Homo.utils import UINT64_MASK

logger = structlog.get_logger()


@dataclass(frozen=True)
class Ciphertext:
    """Opaque encrypted value. Equality compares handles, never plaintexts."""
    scheme: str
    payload: Any

    def to_json(self):
        if isinstance(self.payload, tuple):
            return {"scheme": self.scheme, "payload": [str(x) for x in self.payload]}
        return {"scheme": self.scheme, "payload": str(self.payload)}

    def __repr__(self) -> str:
        return f"Ciphertext({self.scheme}, #{hash(self) & 0xFFFF:04x})"


class HomomorphicProvider(ABC):
    scheme: str = ""

    @abstractmethod
    def encrypt(self, value: int) -> Ciphertext:
        ...

    def encrypt_zero(self) -> Ciphertext:
        return self.encrypt(0)

    @abstractmethod
    def add(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        ...

    @abstractmethod
    def subtract(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        ...

    @abstractmethod
    def multiply(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        ...

    @abstractmethod
    def divide(self, a: Ciphertext, divisor: int) -> Ciphertext:
        ...

    @abstractmethod
    def decrypt(self, c: Ciphertext) -> int:
        ...

    def decrypt_many(self, cs: List[Ciphertext]) -> List[int]:
        return [self.decrypt(c) for c in cs]

    def _check(self, *cs: Ciphertext) -> None:
        for c in cs:
            if not isinstance(c, Ciphertext) or c.scheme != self.scheme:
                raise TypeError(f"expected a {self.scheme!r} ciphertext, got {c!r}")

    @staticmethod
    def _check_divisor(divisor: int) -> None:
        if divisor <= 0:
            raise ValueError(f"divisor must be a positive integer, got {divisor}")


class PlaintextProvider(HomomorphicProvider):
    """uint64 arithmetic in the clear, wrapping mod 2^64. Test stub only."""
    scheme = "plain"

    def encrypt(self, value: int) -> Ciphertext:
        if not 0 <= value <= UINT64_MASK:
            raise ValueError(f"{value} is not a uint64")
        return Ciphertext(self.scheme, value)

    def add(self, a, b):
        self._check(a, b)
        return Ciphertext(self.scheme, (a.payload + b.payload) & UINT64_MASK)

    def subtract(self, a, b):
        self._check(a, b)
        return Ciphertext(self.scheme, (a.payload - b.payload) & UINT64_MASK)

    def multiply(self, a, b):
        self._check(a, b)
        return Ciphertext(self.scheme, (a.payload * b.payload) & UINT64_MASK)

    def divide(self, a, divisor):
        self._check(a)
        self._check_divisor(divisor)
        return Ciphertext(self.scheme, a.payload // divisor)

    def decrypt(self, c):
        self._check(c)
        return c.payload


class PaillierProvider(HomomorphicProvider):
    """
    Paillier backend.

    Addition and subtraction are native. Ciphertext products and division go
    through a blinded exchange with the key authority: it decrypts a value
    masked by fresh randomness, computes on it, and re-encrypts. Results are
    exact modulo N; floor division is exact while the plaintext is below N/2.
    """
    scheme = "paillier"

    def __init__(self, paillier: Paillier, committee: ThresholdCommittee | None = None):
        self.paillier = paillier
        self.committee = committee

    @classmethod
    def setup(cls, key_bits: int = 64, threshold: int = 3, committee_size: int = 5) -> "PaillierProvider":
        paillier = Paillier.keygen(key_bits)
        committee = ThresholdCommittee.deal(paillier, threshold, committee_size)
        return cls(paillier, committee)

    def _wrap(self, cipher) -> Ciphertext:
        return Ciphertext(self.scheme, cipher)

    def encrypt(self, value: int) -> Ciphertext:
        if not 0 <= value <= UINT64_MASK:
            raise ValueError(f"{value} is not a uint64")
        return self._wrap(self.paillier.encrypt(value))

    def add(self, a, b):
        self._check(a, b)
        return self._wrap(Paillier.homomorphic_add(a.payload, b.payload, self.paillier.n2))

    def subtract(self, a, b):
        self._check(a, b)
        return self._wrap(Paillier.homomorphic_subtract(a.payload, b.payload, self.paillier.n2))

    def _scale(self, a: Ciphertext, k: int) -> Ciphertext:
        return self._wrap(self.paillier.homomorphic_scalar_multiply(a.payload, k))

    def _authority_open(self, cipher) -> int:
        # the authority only ever sees blinded plaintexts here
        return self.paillier.strong_decrypt(cipher)

    def multiply(self, a, b):
        self._check(a, b)
        n = self.paillier.n
        r, s = randbelow(n), randbelow(n)
        a_blind = self.add(a, self._wrap(self.paillier.encrypt(r)))
        b_blind = self.add(b, self._wrap(self.paillier.encrypt(s)))
        blinded = (self._authority_open(a_blind.payload) * self._authority_open(b_blind.payload)) % n
        # (a+r)(b+s) - s·a - r·b - r·s = a·b
        out = self._wrap(self.paillier.encrypt(blinded))
        out = self.add(out, self._scale(a, -s))
        out = self.add(out, self._scale(b, -r))
        return self.subtract(out, self._wrap(self.paillier.encrypt((r * s) % n)))

    def divide(self, a, divisor):
        self._check(a)
        self._check_divisor(divisor)
        n = self.paillier.n
        bound = (n // 2) // divisor
        if bound < 1:
            raise ValueError(f"divisor {divisor} too large for modulus")
        # mask with a multiple of the divisor so floor((m + d·r)/d) = floor(m/d) + r
        r = randbelow(bound)
        blinded = self.add(a, self._wrap(self.paillier.encrypt(divisor * r)))
        quotient = self._authority_open(blinded.payload) // divisor
        return self.subtract(self._wrap(self.paillier.encrypt(quotient % n)),
                             self._wrap(self.paillier.encrypt(r)))

    def decrypt(self, c):
        return self.decrypt_many([c])[0]

    def decrypt_many(self, cs):
        self._check(*cs)
        ciphers = [c.payload for c in cs]
        if self.committee is not None:
            values = self.committee.decrypt_many(ciphers)
        else:
            values = [self.paillier.strong_decrypt(c) for c in ciphers]
        # reveal as uint64, matching the plaintext stub
        return [v & UINT64_MASK for v in values]
