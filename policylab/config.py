# policylab/config.py
import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from policylab.errors import ConfigError

BACKENDS = ("paillier", "plain")


@dataclass(frozen=True)
class SystemConfig:
    key_bits: int = 64          # bits per Paillier prime
    threshold: int = 3          # committee shares needed to decrypt
    committee_size: int = 5
    base: int = 10000
    scale: int = 100
    reveal_ttl: Optional[float] = None  # seconds; None keeps requests forever
    backend: str = "paillier"

    def __post_init__(self):
        for name in ("key_bits", "threshold", "committee_size", "base", "scale"):
            value = getattr(self, name)
            if type(value) is not int:
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if self.reveal_ttl is not None and (
                isinstance(self.reveal_ttl, bool) or not isinstance(self.reveal_ttl, (int, float))):
            raise ConfigError(f"reveal_ttl must be a number of seconds, got {self.reveal_ttl!r}")
        if not isinstance(self.backend, str):
            raise ConfigError(f"backend must be a string, got {self.backend!r}")
        if self.backend not in BACKENDS:
            raise ConfigError(f"backend must be one of {BACKENDS}, got {self.backend!r}")
        if self.key_bits < 16:
            raise ConfigError("key_bits must be at least 16")
        if not 1 <= self.threshold <= self.committee_size:
            raise ConfigError("need 1 <= threshold <= committee_size")
        if self.scale <= 0:
            raise ConfigError("scale must be positive")
        if self.base < 0:
            raise ConfigError("base must be non-negative")
        if self.reveal_ttl is not None and self.reveal_ttl <= 0:
            raise ConfigError("reveal_ttl must be positive when set")

    @classmethod
    def from_dict(cls, data: dict) -> "SystemConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"unknown config keys: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict:
        return asdict(self)


def load_config(path) -> SystemConfig:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be an object")
    return SystemConfig.from_dict(data)
