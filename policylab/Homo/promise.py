# policylab/Homo/promise.py
import random
from typing import List, Tuple
from sympy import isprime, nextprime

from policylab.Homo.utils import modinv

Share = Tuple[int, int, int]  # (i, s_i, v_i)


class PedersenVSS:
    """Pedersen verifiable secret sharing over the order-q subgroup of Z*_p."""
    def __init__(self, p: int, q: int, alpha: int, beta: int):
        self.p = p
        self.q = q
        self.alpha = alpha
        self.beta = beta

    @classmethod
    def keygen(cls, min_q_bits: int = 256) -> "PedersenVSS":
        """
        Safe prime p = 2q + 1 with generators alpha, beta of the order-q subgroup.
        ``min_q_bits`` must exceed the bit length of any secret to be shared.
        """
        q = int(nextprime(1 << (min_q_bits - 1)))
        while not isprime(2 * q + 1):
            q = int(nextprime(q))
        p = 2 * q + 1

        def pick_generator() -> int:
            # project into the subgroup; reject the identity
            while True:
                g = random.randrange(2, p - 1)
                cand = pow(g, (p - 1) // q, p)
                if cand != 1:
                    return cand

        alpha = pick_generator()
        beta = pick_generator()
        while beta == alpha:
            beta = pick_generator()

        return cls(p, q, alpha, beta)

    def commit(self, a: int, b: int) -> int:
        """E(a,b) = α^a β^b mod p"""
        return (pow(self.alpha, a, self.p) * pow(self.beta, b, self.p)) % self.p

    def share(self, s: int, t: int, d: int) -> Tuple[int, List[int], List[Share]]:
        """
        Split secret ``s`` into ``d`` shares, any ``t`` of which recover it.

        Returns (e0, [e1..e_{t-1}], [(i, s_i, v_i), ...]).
        """
        if not 1 <= t <= d:
            raise ValueError(f"threshold {t} must be in [1, {d}]")
        if not 0 <= s < self.q:
            raise ValueError("secret does not fit in Z_q")
        v = random.randrange(1, self.q)
        # f(x) = s + a1 x + ... + a_{t-1} x^{t-1}
        a_coeffs = [s] + [random.randrange(0, self.q) for _ in range(t - 1)]
        # g(x) = v + b1 x + ... + b_{t-1} x^{t-1}
        b_coeffs = [v] + [random.randrange(0, self.q) for _ in range(t - 1)]

        e0 = self.commit(a_coeffs[0], b_coeffs[0])
        es = [self.commit(a_coeffs[j], b_coeffs[j]) for j in range(1, t)]

        shares = []
        for i in range(1, d + 1):
            si = sum(a_coeffs[j] * pow(i, j, self.q) for j in range(t)) % self.q
            vi = sum(b_coeffs[j] * pow(i, j, self.q) for j in range(t)) % self.q
            shares.append((i, si, vi))

        return e0, es, shares

    def verify(self, i: int, si: int, vi: int, e0: int, es: List[int], t: int) -> bool:
        """E(si,vi) ?= ∏_{j=0}^{t-1} E_j^{i^j}"""
        left = self.commit(si, vi)
        right = 1
        for j in range(t):
            ej = e0 if j == 0 else es[j - 1]
            right = (right * pow(ej, pow(i, j, self.q), self.p)) % self.p
        return left == right

    def recover(self, shares: List[Tuple[int, int]]) -> int:
        """Lagrange interpolation at x=0 over [(i, s_i), ...]."""
        xs = [i for (i, _) in shares]
        ys = [si for (_, si) in shares]

        def lagrange_basis_at_zero(k: int) -> int:
            xk = xs[k]
            num, den = 1, 1
            for j, xj in enumerate(xs):
                if j == k:
                    continue
                num = (num * xj) % self.q
                den = (den * (xj - xk)) % self.q
            return (num * modinv(den, self.q)) % self.q

        s = 0
        for k in range(len(xs)):
            s = (s + ys[k] * lagrange_basis_at_zero(k)) % self.q
        return s
