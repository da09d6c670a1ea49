"""Base-``b`` digit sums and their classification.

A digit sum is *valid* when it is 1, a prime, a prime power or the product
of two distinct primes.  Everything else (``12 = 2^2 * 3``, ``30 = 2*3*5``,
``0``...) is a counterexample to the digit-sum conjecture.
"""

from __future__ import annotations

import enum
from functools import lru_cache

from sympy import factorint

from primality64 import is_prime


class DigitSumClass(enum.Enum):
    ONE = "one"
    PRIME = "prime"
    PRIME_POWER = "prime power"
    SEMIPRIME = "distinct semiprime"
    INVALID = "invalid"


# ─────────────────────────────────────────────────────────────────────────────
# Digit extraction
# ─────────────────────────────────────────────────────────────────────────────

def _check_base(base: int) -> None:
    if base < 2:
        raise ValueError(f"base must be >= 2, got {base}")


def digit_sum(n: int, base: int) -> int:
    """Return the sum of the base-``base`` digits of ``n``."""
    _check_base(base)
    s = 0
    while n > 0:
        n, r = divmod(n, base)
        s += r
    return s


def digits(n: int, base: int) -> list[int]:
    """Return the base-``base`` digits of ``n``, least significant first."""
    _check_base(base)
    out: list[int] = []
    while n > 0:
        n, r = divmod(n, base)
        out.append(r)
    return out


def from_digits(ds: list[int], base: int) -> int:
    """Inverse of :func:`digits`."""
    n = 0
    for d in reversed(ds):
        n = n * base + d
    return n


# ─────────────────────────────────────────────────────────────────────────────
# Factor-shape predicates
# ─────────────────────────────────────────────────────────────────────────────

def smallest_factor(n: int) -> int:
    """Return the smallest prime factor of ``n >= 2`` by trial division."""
    if n % 2 == 0:
        return 2
    f = 3
    while f * f <= n:
        if n % f == 0:
            return f
        f += 2
    return n


def is_semiprime_distinct(n: int) -> bool:
    """``n == p*q`` with ``p != q`` both prime."""
    if n < 6:
        return False
    f = smallest_factor(n)
    if f == n:
        return False
    m = n // f
    if m % f == 0:
        # repeated factor: p^2 * ... is a prime-power question, not ours
        return False
    return m != f and is_prime(m)


def is_prime_power(n: int) -> bool:
    """``n == p**k`` for a prime ``p`` and ``k >= 1``."""
    if n < 2:
        return False
    f = smallest_factor(n)
    while n % f == 0:
        n //= f
    return n == 1


@lru_cache(maxsize=1 << 16)
def is_valid_digit_sum(s: int) -> bool:
    return (
        s == 1
        or is_prime(s)
        or is_prime_power(s)
        or is_semiprime_distinct(s)
    )


def classify(s: int) -> DigitSumClass:
    """Return which branch of the valid set ``s`` falls into."""
    if s == 1:
        return DigitSumClass.ONE
    if is_prime(s):
        return DigitSumClass.PRIME
    if is_prime_power(s):
        return DigitSumClass.PRIME_POWER
    if is_semiprime_distinct(s):
        return DigitSumClass.SEMIPRIME
    return DigitSumClass.INVALID


def factorization_string(n: int) -> str:
    """Human-readable factorization, e.g. ``"12 = 2^2 * 3"``.

    Diagnostic only; classification never looks at it.
    """
    if n < 2:
        return str(n)
    parts = [
        f"{p}^{e}" if e > 1 else str(p)
        for p, e in sorted(factorint(n).items())
    ]
    return f"{n} = " + " * ".join(parts)
