"""
Homomorphic building blocks: providers, Paillier keys, Pedersen VSS.
"""
from .paillier import Paillier, FunctionNode, ThresholdCommittee
from .promise import PedersenVSS
from .provider import Ciphertext, HomomorphicProvider, PlaintextProvider, PaillierProvider
from .reduce import homomorphic_sum

__all__ = [
    "Paillier", "FunctionNode", "ThresholdCommittee", "PedersenVSS",
    "Ciphertext", "HomomorphicProvider", "PlaintextProvider", "PaillierProvider",
    "homomorphic_sum",
]
