# policylab/errors.py


class PolicyLabError(Exception):
    """Base class for every error raised by policylab."""


class NotFound(PolicyLabError):
    """id is 0 or beyond the current allocation counter."""

    def __init__(self, kind: str, record_id: int):
        super().__init__(f"{kind} {record_id} does not exist")
        self.kind = kind
        self.record_id = record_id


class InvalidPolicy(PolicyLabError):
    def __init__(self, policy_id: int):
        super().__init__(f"cannot simulate unknown policy {policy_id}")
        self.policy_id = policy_id


class AlreadyRevealed(PolicyLabError):
    def __init__(self, kind: str, record_id: int):
        super().__init__(f"{kind} {record_id} is already revealed")
        self.kind = kind
        self.record_id = record_id


class UnknownRequest(PolicyLabError):
    def __init__(self, request_id: str):
        super().__init__(f"no pending decryption request {request_id!r}")
        self.request_id = request_id


class InvalidProof(PolicyLabError):
    def __init__(self, request_id: str, reason: str = "proof verification failed"):
        super().__init__(f"{reason} for request {request_id!r}")
        self.request_id = request_id


class ThresholdError(PolicyLabError):
    """Fewer than t committee shares passed verification."""


class ConfigError(PolicyLabError, ValueError):
    pass


class RevealPending(PolicyLabError):
    """The record's ciphertexts are out with the oracle and must not change."""

    def __init__(self, kind: str, record_id: int, request_id: str):
        super().__init__(f"{kind} {record_id} has pending reveal {request_id!r}")
        self.kind = kind
        self.record_id = record_id
        self.request_id = request_id
