# policylab/Homo/paillier.py
import random
from dataclasses import dataclass
from math import lcm
from typing import List, Tuple

import structlog

from policylab.errors import ThresholdError
from policylab.Homo.promise import PedersenVSS
from policylab.Homo.utils import modinv, L, rand_coprime, generate_strong_primes, find_g

logger = structlog.get_logger()

Cipher = Tuple[int, int]  # (C1, C2)


class Paillier:
    """
    Dual-trapdoor Paillier.

    Holds the authority's secrets: the strong key ``lambda_dec`` (decrypts any
    ciphertext from c1 alone) and the weak system key ``theta_ta`` behind the
    public key ``h_ta``.
    """
    def __init__(self, n: int, n2: int, g_core: int, lambda_dec: int, theta_ta: int, h_ta: int, mu: int):
        self.n = n
        self.n2 = n2
        self.g_core = g_core
        self.lambda_dec = lambda_dec
        self.theta_ta = theta_ta
        self.h_ta = h_ta
        self.mu = mu

    @classmethod
    def keygen(cls, k: int = 64) -> "Paillier":
        p, q = generate_strong_primes(k)
        lambda_dec = lcm(p - 1, q - 1)
        g_core, n, n2 = find_g(p, q)
        # μ = (L((1+N)^λ mod N^2))^{-1} mod N
        lu = L(pow((n + 1) % n2, lambda_dec, n2), n)
        mu = pow(lu, -1, n)
        theta_ta = random.randint(1, n // 4)
        h_ta = pow(g_core, theta_ta, n2)
        logger.debug("Paillier keys generated", modulus_bits=n.bit_length())
        return cls(n=n, n2=n2, g_core=g_core, lambda_dec=lambda_dec, theta_ta=theta_ta, h_ta=h_ta, mu=mu)

    def encrypt(self, m: int, h: int | None = None, r: int | None = None) -> Cipher:
        if not (0 <= m < self.n):
            raise ValueError("message m must be in [0, N)")
        if h is None:
            h = self.h_ta
        if r is None:
            r = rand_coprime(self.n)

        c1 = ((1 + m * self.n) % self.n2) * pow(h, r, self.n2) % self.n2
        c2 = pow(self.g_core, r, self.n2)
        return (c1, c2)

    def strong_decrypt(self, c: Cipher, lambda_override: int | None = None) -> int:
        c1, _ = c
        lam = lambda_override if lambda_override is not None else self.lambda_dec
        u = pow(c1, lam, self.n2)
        return (L(u, self.n) * self.mu) % self.n

    def weak_decrypt(self, c: Cipher, theta: int | None = None) -> int:
        c1, c2 = c
        if theta is None:
            theta = self.theta_ta
        inv = modinv(pow(c2, theta, self.n2), self.n2)
        return L((c1 * inv) % self.n2, self.n)

    def refresh(self, c: Cipher, h: int | None = None, r_prime: int | None = None) -> Cipher:
        """Re-randomise without changing the plaintext."""
        if h is None:
            h = self.h_ta
        if r_prime is None:
            r_prime = rand_coprime(self.n)
        c1, c2 = c
        c1p = (c1 * pow(h, r_prime, self.n2)) % self.n2
        c2p = (c2 * pow(self.g_core, r_prime, self.n2)) % self.n2
        return (c1p, c2p)

    def homomorphic_scalar_multiply(self, c: Cipher, k: int) -> Cipher:
        """E(m)^k = E(k·m); negative k works modulo N."""
        k %= self.n
        c1, c2 = c
        return (pow(c1, k, self.n2), pow(c2, k, self.n2))

    @staticmethod
    def homomorphic_add(ca: Cipher, cb: Cipher, n2: int) -> Cipher:
        """E(m1) * E(m2) = E(m1 + m2)"""
        c1a, c2a = ca
        c1b, c2b = cb
        return ((c1a * c1b) % n2, (c2a * c2b) % n2)

    @staticmethod
    def homomorphic_subtract(ca: Cipher, cb: Cipher, n2: int) -> Cipher:
        """E(m1) * E(m2)^{-1} = E(m1 - m2)"""
        c1a, c2a = ca
        c1b, c2b = cb
        return ((c1a * modinv(c1b, n2)) % n2,
                (c2a * modinv(c2b, n2)) % n2)


@dataclass
class FunctionNode:
    """Committee member holding one Pedersen share of λ."""
    id: int
    lambda_share: int
    v_i: int  # Pedersen blinding share

    def verify_share(self, vss: PedersenVSS, e0: int, es: List[int], t: int) -> bool:
        return vss.verify(self.id, self.lambda_share, self.v_i, e0, es, t)


class ThresholdCommittee:
    """
    λ split across ``size`` function nodes; any ``threshold`` verified shares
    decrypt.
    """
    def __init__(self, paillier: Paillier, vss: PedersenVSS, nodes: List[FunctionNode],
                 e0: int, es: List[int], threshold: int):
        self.paillier = paillier
        self.vss = vss
        self.nodes = nodes
        self.e0 = e0
        self.es = es
        self.threshold = threshold

    @classmethod
    def deal(cls, paillier: Paillier, threshold: int = 3, size: int = 5) -> "ThresholdCommittee":
        # q must exceed λ < N
        vss = PedersenVSS.keygen(paillier.n.bit_length() + 1)
        e0, es, shares = vss.share(paillier.lambda_dec, threshold, size)
        nodes = [FunctionNode(id=i, lambda_share=s_i, v_i=v_i) for (i, s_i, v_i) in shares]
        logger.info("Committee dealt", threshold=threshold, size=size)
        return cls(paillier, vss, nodes, e0, es, threshold)

    def verified_nodes(self) -> List[FunctionNode]:
        good = []
        for node in self.nodes:
            if node.verify_share(self.vss, self.e0, self.es, self.threshold):
                good.append(node)
            else:
                logger.warning("Rejected committee share", node_id=node.id)
        return good

    def recover_lambda(self) -> int:
        participants = self.verified_nodes()[:self.threshold]
        if len(participants) < self.threshold:
            raise ThresholdError(
                f"only {len(participants)} valid shares, need {self.threshold}")
        return self.vss.recover([(node.id, node.lambda_share) for node in participants])

    def decrypt_many(self, ciphers: List[Cipher]) -> List[int]:
        lam = self.recover_lambda()
        return [self.paillier.strong_decrypt(c, lam) for c in ciphers]

    def decrypt(self, cipher: Cipher) -> int:
        return self.decrypt_many([cipher])[0]
