from .gateway import DecryptionOracle, OracleResponse, compute_local_cid
from .protocol import DecryptionOracleProtocol, PendingReveal

__all__ = [
    "DecryptionOracle", "OracleResponse", "compute_local_cid",
    "DecryptionOracleProtocol", "PendingReveal",
]
