"""Records passed between the verifier engine and its callers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

from primality64 import U64_MAX


class ViolationMode(enum.Enum):
    STOP_AT_FIRST = "first"
    COLLECT_ALL = "all"


@dataclass(frozen=True)
class VerificationRequest:
    """One verification run: every prime in ``[range_start, range_end]``.

    ``range_start > range_end`` is accepted here and reported as an
    :class:`InvalidRange` outcome when the run starts; likewise a composite
    ``base`` becomes :class:`InvalidDomain`.
    """

    base: int
    range_end: int
    range_start: int = 2
    worker_count: int = 1
    violation_mode: ViolationMode = ViolationMode.STOP_AT_FIRST

    def __post_init__(self) -> None:
        if self.base < 2:
            raise ValueError(f"base must be >= 2, got {self.base}")
        if self.range_start < 2:
            raise ValueError(f"range_start must be >= 2, got {self.range_start}")
        if self.worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {self.worker_count}")
        for name in ("base", "range_start", "range_end"):
            if getattr(self, name) > U64_MAX:
                raise ValueError(f"{name} exceeds 2**64 - 1")

    @property
    def size(self) -> int:
        return max(0, self.range_end - self.range_start + 1)


@dataclass(frozen=True)
class WorkChunk:
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class Violation:
    prime: int
    digit_sum: int
    factorization: str


@dataclass(frozen=True)
class ProgressSnapshot:
    processed_count: int = 0
    prime_count: int = 0
    fraction_complete: float = 0.0


# ─────────────────────────────────────────────────────────────────────────────
# Terminal outcomes
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Completed:
    violations: tuple[Violation, ...]
    prime_count: int
    processed_count: int
    elapsed: float

    @property
    def holds(self) -> bool:
        return not self.violations


@dataclass(frozen=True)
class Stopped:
    prime_count: int
    processed_count: int
    violations: tuple[Violation, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InvalidDomain:
    reason: str


@dataclass(frozen=True)
class InvalidRange:
    reason: str


RunOutcome = Union[Completed, Stopped, InvalidDomain, InvalidRange]
