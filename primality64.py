#!/usr/bin/env python3
"""Deterministic primality testing for 64-bit unsigned integers.

Candidates are first screened against a short table of small primes.
Anything that survives goes through Miller--Rabin with a *fixed* witness
set, so the answer for a given ``n`` never changes from one call (or one
run) to the next and can be cached freely.

Witness sets
------------
``(2, 3, 5, 7, 11, 13)`` is exact for every ``n`` below
``3_474_749_660_383``, the smallest strong pseudoprime to all six bases.
From that bound up to ``2**64 - 1`` the first twelve primes are used, which
is exact over the whole 64-bit range.

Python integers are unbounded, so ``a * b`` is always the full
double-width product before it is reduced ``mod n``; no Montgomery or
split multiplication is needed for operands near ``2**64``.
"""

from __future__ import annotations

import argparse

U64_MAX = (1 << 64) - 1

SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)

WITNESSES = (2, 3, 5, 7, 11, 13)
WITNESS_BOUND = 3_474_749_660_383
WIDE_WITNESSES = SMALL_PRIMES


# ---------------------------------------------------------------------------
# Miller--Rabin primitives
# ---------------------------------------------------------------------------

def decompose(n: int) -> tuple[int, int]:
    """Return ``(d, s)`` with ``n - 1 == d * 2**s`` and ``d`` odd."""
    d, s = n - 1, 0
    while not (d & 1):
        d >>= 1
        s += 1
    return d, s


def is_strong_probable_prime(n: int, a: int, d: int, s: int) -> bool:
    """Return ``True`` if ``n`` passes the strong test for witness ``a``."""
    x = pow(a, d, n)
    if x == 1 or x == n - 1:
        return True
    for _ in range(s - 1):
        x = pow(x, 2, n)
        if x == n - 1:
            return True
    return False


def witnesses_for(n: int) -> tuple[int, ...]:
    return WITNESSES if n < WITNESS_BOUND else WIDE_WITNESSES


# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------

def is_prime(n: int) -> bool:
    """Return ``True`` if ``n`` is prime.

    ``n`` must lie in ``[0, 2**64 - 1]``; larger values raise ``ValueError``.
    """
    if n > U64_MAX:
        raise ValueError(f"{n} is outside the 64-bit unsigned range")
    if n < 2:
        return False
    for p in SMALL_PRIMES:
        if n == p:
            return True
        if n % p == 0:
            return False

    d, s = decompose(n)
    for a in witnesses_for(n):
        if a % n == 0:
            continue
        if not is_strong_probable_prime(n, a, d, s):
            return False
    return True


# ---------------------------------------------------------------------------

if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Deterministic 64-bit primality check"
    )
    parser.add_argument("n", type=int, help="Integer in [0, 2**64 - 1]")
    args = parser.parse_args()

    print(f"{args.n}: {'prime' if is_prime(args.n) else 'composite'}")
