"""
policylab: privacy-preserving policy simulation.

Citizens contribute encrypted attributes, proposers submit encrypted policy
parameters, the engine aggregates under encryption and results only come out
through a proof-checked reveal:

    from policylab import PolicySimulationSystem, SystemConfig, TargetKind
"""
from .config import SystemConfig, load_config
from .errors import (
    AlreadyRevealed,
    ConfigError,
    InvalidPolicy,
    InvalidProof,
    NotFound,
    PolicyLabError,
    RevealPending,
    ThresholdError,
    UnknownRequest,
)
from .events import RecordingSink, TargetKind
from .system import PolicySimulationSystem

__all__ = [
    "SystemConfig", "load_config",
    "PolicyLabError", "NotFound", "InvalidPolicy", "AlreadyRevealed",
    "UnknownRequest", "InvalidProof", "RevealPending", "ThresholdError", "ConfigError",
    "RecordingSink", "TargetKind", "PolicySimulationSystem",
]
