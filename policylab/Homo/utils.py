# policylab/Homo/utils.py
import random
from math import gcd
from secrets import randbelow
from sympy import randprime, isprime

UINT64_MASK = (1 << 64) - 1


def L(u: int, n: int) -> int:
    return (u - 1) // n


def modinv(a: int, mod: int) -> int:
    return pow(a, -1, mod)


def rand_coprime(modulus: int) -> int:
    # uniform r in Z*_modulus, used as encryption randomness
    if modulus <= 3:
        raise ValueError("modulus too small")
    while True:
        x = 2 + randbelow(modulus - 3)
        if gcd(x, modulus) == 1:
            return x


def generate_strong_primes(bit_length: int):
    """Two distinct safe primes p = 2p'+1, q = 2q'+1 of ``bit_length`` bits."""
    while True:
        p = int(randprime(2**(bit_length - 1), 2**bit_length))
        q = int(randprime(2**(bit_length - 1), 2**bit_length))
        if p != q and isprime((p - 1) // 2) and isprime((q - 1) // 2):
            return p, q


def find_g(p: int, q: int):
    """
    Pick g = -a^{2N} mod N^2 generating the subgroup of order 2p'q'.

    Returns (g, N, N^2).
    """
    N = p * q
    n2 = N * N
    p_ = (p - 1) // 2
    q_ = (q - 1) // 2
    order = 2 * p_ * q_

    while True:
        while True:
            a = random.randrange(2, n2 - 1)
            if gcd(a, n2) == 1:
                break
        g = (-pow(a, 2 * N, n2)) % n2
        if g == 1:
            continue
        if pow(g, order, n2) != 1:
            continue
        # order must be exactly 2p'q', not a proper divisor
        if any(pow(g, order // r, n2) == 1 for r in (2, p_, q_)):
            continue
        return g, N, n2

