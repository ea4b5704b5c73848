# policylab/Homo/reduce.py
from typing import List

from policylab.Homo.provider import Ciphertext, HomomorphicProvider


def homomorphic_sum(provider: HomomorphicProvider, ciphertexts: List[Ciphertext]) -> Ciphertext:
    """
    Balanced pairwise sum: each level adds neighbours, an odd tail moves up
    unchanged. Depth is log2(len) additions.
    """
    if not ciphertexts:
        return provider.encrypt_zero()

    current_level = list(ciphertexts)
    while len(current_level) > 1:
        next_level = []
        for i in range(0, len(current_level), 2):
            if i + 1 < len(current_level):
                next_level.append(provider.add(current_level[i], current_level[i + 1]))
            else:
                next_level.append(current_level[i])
        current_level = next_level
    return current_level[0]
