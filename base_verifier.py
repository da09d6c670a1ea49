#!/usr/bin/env python3
"""Prime Base Verifier: digit-sum conjecture checker including prime powers.

For a prime base ``b``, every prime ``p`` is expected to have a base-``b``
digit sum ``S(p)`` that is 1, a prime, a prime power or a product of two
distinct primes.  :class:`BaseVerifier` scans ``[start, end]`` in parallel
and reports every prime for which that fails.

Examples
--------
    python3 base_verifier.py verify --base 31 --end 1e7 --workers 0
    python3 base_verifier.py verify --base 2 --end 20000 --all
    python3 base_verifier.py check 6143 --base 2
    python3 base_verifier.py selfcheck --limit 1000000
"""

from __future__ import annotations

import argparse
import logging
import os
import queue
import sys
import threading
import time
from multiprocessing import get_context
from typing import Callable, Optional

from tqdm import tqdm

import oracle_check
from digit_sum import classify, digit_sum, factorization_string
from primality64 import is_prime
from range_scanner import (
    DEFAULT_BATCH_SIZE,
    MSG_DONE,
    MSG_FAILED,
    MSG_PROGRESS,
    MSG_VIOLATION,
    ProgressAggregator,
    run_worker,
    run_worker_process,
)
from verifier_types import (
    Completed,
    InvalidDomain,
    InvalidRange,
    ProgressSnapshot,
    RunOutcome,
    Stopped,
    VerificationRequest,
    Violation,
    ViolationMode,
)
from work_partition import partition

logger = logging.getLogger(__name__)

DEFAULT_BASE = 31
DEFAULT_LIMIT = 1_000_000
BACKENDS = ("process", "thread")
POLL_INTERVAL = 0.1


class ScanWorkerError(RuntimeError):
    """A scanning worker raised or died before finishing its chunk."""


def check_request(request: VerificationRequest) -> Optional[RunOutcome]:
    """Return the rejecting outcome for ``request``, or ``None`` if it may run."""
    if not is_prime(request.base):
        return InvalidDomain(f"base {request.base} is not prime")
    if request.range_start > request.range_end:
        return InvalidRange(
            f"range start {request.range_start} exceeds end {request.range_end}"
        )
    return None


class _Run:
    """Shared state of one in-flight run."""

    def __init__(self, request, aggregator, stop, out) -> None:
        self.request = request
        self.aggregator = aggregator
        self.stop = stop
        self.out = out
        self.cancelled = False
        # every worker has reported done; a cancel can no longer cut the scan short
        self.drained = False


class BaseVerifier:
    """Start, cancel and observe verification runs.

    Listeners are plain callables invoked on the thread that drives the run
    (the caller's thread for :meth:`run`, a background thread for
    :meth:`start`).  ``on_outcome`` fires exactly once per run.
    """

    def __init__(
        self,
        on_progress: Optional[Callable[[ProgressSnapshot], None]] = None,
        on_violation: Optional[Callable[[Violation], None]] = None,
        on_outcome: Optional[Callable[[RunOutcome], None]] = None,
        backend: str = "process",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if backend not in BACKENDS:
            raise ValueError(f"unknown backend {backend!r}; choose from {BACKENDS}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.on_progress = on_progress
        self.on_violation = on_violation
        self.on_outcome = on_outcome
        self.backend = backend
        self.batch_size = batch_size
        # workers may be launched from the start() thread; forking a threaded
        # parent is unsafe, so processes always start fresh
        self._ctx = get_context("spawn") if backend == "process" else None

        self._lock = threading.Lock()
        self._active: Optional[_Run] = None
        self._thread: Optional[threading.Thread] = None
        self._finished = threading.Event()
        self._finished.set()
        self._outcome: Optional[RunOutcome] = None
        self._error: Optional[BaseException] = None

    # ------------------------------------------------------------------
    # public surface
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return not self._finished.is_set()

    def start(self, request: VerificationRequest) -> None:
        """Begin a run in the background; see :meth:`wait`."""
        run = self._begin(request)
        if run is None:
            return
        self._thread = threading.Thread(
            target=self._drive_in_background, args=(run,),
            name="base-verifier", daemon=True,
        )
        self._thread.start()

    def run(self, request: VerificationRequest) -> RunOutcome:
        """Run to completion on the calling thread and return the outcome."""
        run = self._begin(request)
        if run is not None:
            self._drive(run)
        if self._error is not None:
            raise self._error
        return self._outcome

    def wait(self, timeout: Optional[float] = None) -> Optional[RunOutcome]:
        """Block until the current run ends; ``None`` on timeout."""
        if not self._finished.wait(timeout):
            return None
        if self._error is not None:
            raise self._error
        return self._outcome

    def cancel(self) -> None:
        """Ask the active run to stop.  Idempotent; no-op when idle."""
        with self._lock:
            run = self._active
            if run is None or run.cancelled or run.drained:
                return
            run.cancelled = True
            run.stop.set()
        # outside self._lock: a progress listener holds the aggregator lock
        # and may itself be calling cancel()
        run.aggregator.close()
        logger.info("cancellation requested")

    # ------------------------------------------------------------------
    # run lifecycle
    # ------------------------------------------------------------------

    def _begin(self, request: VerificationRequest) -> Optional[_Run]:
        with self._lock:
            if self.running:
                raise RuntimeError("a verification run is already active")
            self._outcome = None
            self._error = None
            rejected = check_request(request)
            if rejected is None:
                run = self._new_run(request)
                self._active = run
                self._finished.clear()
        if rejected is not None:
            logger.warning("run rejected: %s", rejected.reason)
            self._publish(rejected)
            return None
        return run

    def _new_run(self, request: VerificationRequest) -> _Run:
        if self._ctx is not None:
            stop, out = self._ctx.Event(), self._ctx.Queue()
        else:
            stop, out = threading.Event(), queue.Queue()
        aggregator = ProgressAggregator(
            request.size, request.violation_mode,
            on_progress=self.on_progress, on_violation=self.on_violation,
        )
        return _Run(request, aggregator, stop, out)

    def _drive_in_background(self, run: _Run) -> None:
        try:
            self._drive(run)
        except Exception:
            logger.exception("verification run failed")

    def _drive(self, run: _Run) -> None:
        try:
            outcome = self._execute(run)
        except BaseException as exc:
            with self._lock:
                self._active = None
                self._error = exc
            self._finished.set()
            raise
        with self._lock:
            self._active = None
        self._publish(outcome)

    def _publish(self, outcome: RunOutcome) -> None:
        self._outcome = outcome
        self._finished.set()
        if self.on_outcome is not None:
            self.on_outcome(outcome)

    def _spawn(self, run: _Run, chunk):
        args = (chunk, run.request.base, run.request.violation_mode,
                run.stop, run.out, self.batch_size)
        if self._ctx is not None:
            return self._ctx.Process(
                target=run_worker_process, args=args,
                name=f"scan-{chunk.index}", daemon=True,
            )
        return threading.Thread(
            target=run_worker, args=args, name=f"scan-{chunk.index}", daemon=True,
        )

    def _execute(self, run: _Run) -> RunOutcome:
        request = run.request
        started = time.perf_counter()
        chunks = partition(request.range_start, request.range_end, request.worker_count)
        logger.info(
            "start: base=%d range=[%d, %d] workers=%d mode=%s backend=%s",
            request.base, request.range_start, request.range_end,
            len(chunks), request.violation_mode.value, self.backend,
        )

        workers = [self._spawn(run, chunk) for chunk in chunks]
        pending = {chunk.index for chunk in chunks}
        launched = []
        try:
            for w in workers:
                w.start()
                launched.append(w)
            while pending:
                try:
                    msg = run.out.get(timeout=POLL_INTERVAL)
                except queue.Empty:
                    self._check_alive(workers, pending)
                    continue
                tag = msg[0]
                if tag == MSG_PROGRESS:
                    run.aggregator.add_progress(msg[2], msg[3])
                elif tag == MSG_VIOLATION:
                    run.aggregator.report_violation(msg[2])
                elif tag == MSG_DONE:
                    pending.discard(msg[1])
                elif tag == MSG_FAILED:
                    raise ScanWorkerError(f"worker {msg[1]} failed:\n{msg[2]}")
            with self._lock:
                run.drained = True
        finally:
            run.stop.set()
            self._join(launched, run.out)

        agg = run.aggregator
        snap = agg.snapshot()
        if run.cancelled and snap.processed_count < request.size:
            logger.info("stopped after %d integers, %d primes",
                        snap.processed_count, snap.prime_count)
            return Stopped(snap.prime_count, snap.processed_count, agg.violations)

        elapsed = time.perf_counter() - started
        logger.info("done in %.2f s: %d primes, %d violation(s)",
                    elapsed, snap.prime_count, len(agg.violations))
        return Completed(agg.violations, snap.prime_count, snap.processed_count, elapsed)

    @staticmethod
    def _check_alive(workers, pending) -> None:
        for index, w in enumerate(workers):
            code = getattr(w, "exitcode", None)
            if index in pending and code not in (None, 0):
                raise ScanWorkerError(f"worker {index} exited with code {code}")

    @staticmethod
    def _join(workers, out) -> None:
        # keep the queue moving so process feeders can exit
        while any(w.is_alive() for w in workers):
            try:
                out.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                pass
        for w in workers:
            w.join()


# ─────────────────────────────────────────────────────────────────────────────
# Command-line interface
# ─────────────────────────────────────────────────────────────────────────────

def parse_count(s: str) -> int:
    """Accept ``1000000``, ``1_000_000`` or ``1e6``."""
    s = s.strip().lower().replace("_", "").replace(",", "")
    if "e" in s:
        coeff, expo = s.split("e", 1)
        return int(coeff) * 10 ** int(expo)
    return int(s)


def cmd_verify(args) -> int:
    workers = args.workers if args.workers > 0 else (os.cpu_count() or 1)
    mode = ViolationMode.COLLECT_ALL if args.all else ViolationMode.STOP_AT_FIRST
    try:
        request = VerificationRequest(
            base=args.base, range_start=args.start, range_end=args.end,
            worker_count=workers, violation_mode=mode,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"🚀 Start: base={request.base}, range=[{request.range_start:,} … "
          f"{request.range_end:,}], workers={workers}, mode={mode.value}")

    bar = tqdm(total=request.size, unit="n", unit_scale=True,
               desc=f"base {request.base}", disable=args.quiet)

    def on_progress(snap: ProgressSnapshot) -> None:
        bar.update(snap.processed_count - bar.n)
        bar.set_postfix(primes=f"{snap.prime_count:,}", refresh=False)

    def on_violation(v: Violation) -> None:
        tqdm.write(f"❌ Violation: p={v.prime}  S(p)={v.digit_sum}  ({v.factorization})")

    verifier = BaseVerifier(on_progress=on_progress, on_violation=on_violation,
                            backend=args.backend, batch_size=args.batch)
    verifier.start(request)
    try:
        outcome = None
        while outcome is None:
            outcome = verifier.wait(POLL_INTERVAL * 2)
    except KeyboardInterrupt:
        verifier.cancel()
        outcome = verifier.wait()
    finally:
        bar.close()

    if isinstance(outcome, (InvalidDomain, InvalidRange)):
        print(f"Cannot start: {outcome.reason}", file=sys.stderr)
        return 2
    if isinstance(outcome, Stopped):
        print(f"Stopped. {outcome.processed_count:,} integers scanned, "
              f"{outcome.prime_count:,} primes checked.")
        return 130
    if outcome.holds:
        print(f"✅ No violations found up to {request.range_end:,}.")
        print(f"Done in {outcome.elapsed:.2f} s – primes: {outcome.prime_count:,}")
        return 0
    print(f"{len(outcome.violations)} violation(s) in {outcome.elapsed:.2f} s:")
    for v in sorted(outcome.violations, key=lambda v: v.prime):
        print(f"  p={v.prime}  S(p)={v.digit_sum}  ({v.factorization})")
    return 1


def cmd_check(args) -> int:
    n = args.n
    try:
        prime = is_prime(n)
        s = digit_sum(n, args.base)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    kind = classify(s)
    print(f"Check {n}: {'prime' if prime else 'composite'}")
    print(f"S({n}) in base {args.base} = {s}: {kind.value} ({factorization_string(s)})")
    return 0


def cmd_selfcheck(args) -> int:
    print(f"Sieving up to {args.limit:,}…", end="", flush=True)
    low = oracle_check.check_against_sieve(args.limit)
    print(" done.")
    high = oracle_check.check_top_of_range(args.samples)
    for n in low + high:
        print(f"  mismatch: {n}")
    if low or high:
        print("❌ Oracle disagrees with the reference.")
        return 1
    print("✔️ Oracle agrees with the sieve and with sympy.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Prime Base Verifier: digit-sum conjecture including prime powers"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("verify", help="Scan a range for counterexamples")
    p.add_argument("--base", type=parse_count, default=DEFAULT_BASE,
                   help=f"Prime base (default {DEFAULT_BASE})")
    p.add_argument("--start", type=parse_count, default=2, help="First integer (default 2)")
    p.add_argument("--end", type=parse_count, default=DEFAULT_LIMIT,
                   help=f"Last integer (default {DEFAULT_LIMIT:,})")
    p.add_argument("--workers", type=int, default=0,
                   help="Worker count; 0 uses one per CPU (default 0)")
    p.add_argument("--all", action="store_true",
                   help="Collect every violation instead of stopping at the first")
    p.add_argument("--backend", choices=BACKENDS, default="process",
                   help="Run workers as processes or threads (default process)")
    p.add_argument("--batch", type=int, default=DEFAULT_BATCH_SIZE,
                   help=f"Integers per progress flush (default {DEFAULT_BATCH_SIZE})")
    p.add_argument("--quiet", action="store_true", help="No progress bar")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("check", help="Classify a single integer")
    p.add_argument("n", type=parse_count, help="Integer to check")
    p.add_argument("--base", type=parse_count, default=DEFAULT_BASE,
                   help=f"Base for the digit sum (default {DEFAULT_BASE})")
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("selfcheck", help="Cross-check the primality oracle")
    p.add_argument("--limit", type=parse_count, default=DEFAULT_LIMIT,
                   help=f"Sieve bound (default {DEFAULT_LIMIT:,})")
    p.add_argument("--samples", type=int, default=2000,
                   help="Integers tested just below 2**64 (default 2000)")
    p.set_defaults(func=cmd_selfcheck)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
