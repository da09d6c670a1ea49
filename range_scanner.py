#!/usr/bin/env python3
"""Chunk scanning workers and the shared progress aggregator.

A worker walks one :class:`~verifier_types.WorkChunk`, tests 2 explicitly
when the chunk covers it and then only odd candidates.  Every prime has its
digit sum classified; an invalid sum is posted as a violation.  Counters are
buffered locally and flushed to the output queue every ``batch_size``
integers and once more when the worker leaves its loop.

The worker only needs ``stop.is_set()`` and ``out.put()``, so the same
function runs under :class:`threading.Thread` (with ``threading.Event`` and
``queue.Queue``) and :class:`multiprocessing.Process` (with the context's
``Event`` and ``Queue``).

The run loop drains that queue into a :class:`ProgressAggregator`, which
owns the global counters, the recorded violations and the monotonic
progress fraction.
"""

from __future__ import annotations

import logging
import signal
import threading
import traceback
from typing import Callable, Optional

from digit_sum import digit_sum, factorization_string, is_valid_digit_sum
from primality64 import is_prime
from verifier_types import ProgressSnapshot, Violation, ViolationMode, WorkChunk

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 8_192

# message tags posted by workers
MSG_PROGRESS = "progress"
MSG_VIOLATION = "violation"
MSG_DONE = "done"
MSG_FAILED = "failed"


# ─────────────────────────────────────────────────────────────────────────────
# Worker
# ─────────────────────────────────────────────────────────────────────────────

def scan_chunk(
    chunk: WorkChunk,
    base: int,
    mode: ViolationMode,
    stop,
    out,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> None:
    """Scan ``chunk`` for primes whose base-``base`` digit sum is invalid.

    Posts ``(MSG_PROGRESS, index, processed, primes)`` deltas,
    ``(MSG_VIOLATION, index, Violation)`` records and finally
    ``(MSG_DONE, index)``.
    """
    start, end = chunk.start, chunk.end
    flushed = 0
    primes = 0

    def flush(n: int) -> None:
        nonlocal flushed, primes
        done = min(n, end + 1) - start
        if done > flushed or primes:
            out.put((MSG_PROGRESS, chunk.index, done - flushed, primes))
            flushed = done
            primes = 0

    # 2 is the only even candidate; after it, odd integers only
    n = start if (start == 2 or start % 2) else start + 1

    while n <= end:
        if stop.is_set():
            break
        step = 1 if n == 2 else 2
        if is_prime(n):
            primes += 1
            s = digit_sum(n, base)
            if not is_valid_digit_sum(s):
                out.put((MSG_VIOLATION, chunk.index,
                         Violation(n, s, factorization_string(s))))
                if mode is ViolationMode.STOP_AT_FIRST:
                    n += step
                    break
        n += step
        if min(n, end + 1) - start - flushed >= batch_size:
            flush(n)

    flush(n)
    out.put((MSG_DONE, chunk.index))


def run_worker(chunk, base, mode, stop, out, batch_size) -> None:
    """Thread/process entry point: report a crash instead of dying silently."""
    logger.debug("worker %d scanning [%d, %d]", chunk.index, chunk.start, chunk.end)
    try:
        scan_chunk(chunk, base, mode, stop, out, batch_size)
    except Exception:
        out.put((MSG_FAILED, chunk.index, traceback.format_exc()))
    else:
        logger.debug("worker %d finished", chunk.index)


def run_worker_process(chunk, base, mode, stop, out, batch_size) -> None:
    # Ctrl-C belongs to the parent, which cancels through ``stop``.
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    run_worker(chunk, base, mode, stop, out, batch_size)


# ─────────────────────────────────────────────────────────────────────────────
# Aggregator
# ─────────────────────────────────────────────────────────────────────────────

class ProgressAggregator:
    """Global counters and violation record for one run.

    All mutation happens under a single lock.  Listener callbacks are
    invoked while it is held, so events reach listeners in the order the
    state changed; the lock is re-entrant so a listener may call
    :meth:`close` (e.g. through ``BaseVerifier.cancel``).
    """

    def __init__(
        self,
        total: int,
        mode: ViolationMode,
        on_progress: Optional[Callable[[ProgressSnapshot], None]] = None,
        on_violation: Optional[Callable[[Violation], None]] = None,
    ) -> None:
        self.total = max(1, total)
        self.mode = mode
        self.on_progress = on_progress
        self.on_violation = on_violation
        self._lock = threading.RLock()
        self._processed = 0
        self._primes = 0
        self._fraction = 0.0
        self._violations: list[Violation] = []
        self._closed = False

    def add_progress(self, processed: int, primes: int) -> Optional[ProgressSnapshot]:
        """Fold a worker's batch into the totals and publish a snapshot."""
        with self._lock:
            if self._closed:
                return None
            self._processed += processed
            self._primes += primes
            raw = min(1.0, self._processed / self.total)
            if raw > self._fraction:
                self._fraction = raw
            snap = ProgressSnapshot(self._processed, self._primes, self._fraction)
            if self.on_progress is not None:
                self.on_progress(snap)
            return snap

    def report_violation(self, violation: Violation) -> bool:
        """Record ``violation``; return ``False`` when it is discarded."""
        with self._lock:
            if self._closed:
                return False
            if self.mode is ViolationMode.STOP_AT_FIRST and self._violations:
                return False
            self._violations.append(violation)
            logger.info("violation: p=%d S(p)=%d (%s)",
                        violation.prime, violation.digit_sum, violation.factorization)
            if self.on_violation is not None:
                self.on_violation(violation)
            return True

    def close(self) -> None:
        """Stop publishing; later batches and violations are dropped."""
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(self._processed, self._primes, self._fraction)

    @property
    def violations(self) -> tuple[Violation, ...]:
        with self._lock:
            return tuple(self._violations)
