# framing_results.py
"""
Explicit outcomes of framed reads and writes.
Every framing failure leaves the stream desynchronized; none is retryable.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class FailureKind(str, Enum):
    READ_SHORT = "read_short"
    WRITE_SHORT = "write_short"
    ALLOCATION_FAILURE = "allocation_failure"
    FRAME_TOO_LARGE = "frame_too_large"


class Phase(str, Enum):
    PREFIX = "prefix"
    PAYLOAD = "payload"


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    phase: Optional[Phase] = None
    expected: int = 0
    transferred: int = 0
    limit: Optional[int] = None

    ok = False

    @property
    def fatal(self) -> bool:
        # no resync marker exists on the wire
        return True

    def describe(self) -> str:
        where = f" ({self.phase.value})" if self.phase else ""
        if self.kind is FailureKind.FRAME_TOO_LARGE:
            return f"{self.kind.value}{where}: declared {self.expected} bytes exceeds limit of {self.limit}"
        if self.kind is FailureKind.ALLOCATION_FAILURE:
            return f"{self.kind.value}{where}: could not allocate {self.expected} bytes"
        return f"{self.kind.value}{where}: expected {self.expected} bytes, got {self.transferred}"

    def raise_error(self):
        raise FramingError(self)

    def unwrap(self):
        self.raise_error()


@dataclass(frozen=True)
class Success:
    value: Any

    ok = True

    def unwrap(self) -> Any:
        return self.value


Result = Union[Success, Failure]


class FramingError(Exception):
    def __init__(self, failure: Failure) -> None:
        super().__init__(failure.describe())
        self.failure = failure

    @property
    def kind(self) -> FailureKind:
        return self.failure.kind

    @property
    def phase(self) -> Optional[Phase]:
        return self.failure.phase

    @property
    def fatal(self) -> bool:
        return self.failure.fatal


def read_short(phase: Phase, expected: int, transferred: int) -> Failure:
    return Failure(FailureKind.READ_SHORT, phase, expected, transferred)


def write_short(phase: Phase, expected: int, transferred: int) -> Failure:
    return Failure(FailureKind.WRITE_SHORT, phase, expected, transferred)
