# policylab/events.py
"""
State transition events.

The core only ever calls ``sink.emit(event)``; dashboards, audit logs and the
like live behind an :class:`EventSink`.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Protocol

import structlog

logger = structlog.get_logger()


class TargetKind(str, Enum):
    CITIZEN = "citizen"
    POLICY = "policy"


@dataclass(frozen=True)
class CitizenRegistered:
    citizen_id: int


@dataclass(frozen=True)
class PolicyProposed:
    policy_id: int


@dataclass(frozen=True)
class SimulationCompleted:
    policy_id: int


@dataclass(frozen=True)
class DecryptionRequested:
    target_kind: TargetKind
    target_id: int


@dataclass(frozen=True)
class DecryptionCompleted:
    target_kind: TargetKind
    target_id: int


@dataclass(frozen=True)
class DecryptionExpired:
    target_kind: TargetKind
    target_id: int


class EventSink(Protocol):
    def emit(self, event) -> None:
        ...


class NullSink:
    def emit(self, event) -> None:
        pass


class RecordingSink:
    """Keeps every event in arrival order. Handy for tests and replays."""

    def __init__(self):
        self.events: List[object] = []

    def emit(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> List[object]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()


class LoggingSink:
    def emit(self, event) -> None:
        fields = {
            k: (v.value if isinstance(v, Enum) else v)
            for k, v in vars(event).items()
        }
        logger.info(type(event).__name__, **fields)


class FanoutSink:
    def __init__(self, *sinks: EventSink):
        self.sinks = list(sinks)

    def emit(self, event) -> None:
        for sink in self.sinks:
            sink.emit(event)
