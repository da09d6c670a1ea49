"""Cross-check the 64-bit primality oracle against independent references.

Below a sieve bound the reference is a numpy sieve of Eratosthenes; near
the top of the 64-bit range it is ``sympy.isprime``, together with a table
of strong pseudoprimes that defeat short witness sets.
"""

from __future__ import annotations

import numpy as np
from sympy import isprime as sympy_isprime

from primality64 import U64_MAX, is_prime

# smallest strong pseudoprimes to the first k prime bases (OEIS A014233)
STRONG_PSEUDOPRIMES = (
    2047,
    1_373_653,
    25_326_001,
    3_215_031_751,
    2_152_302_898_747,
    3_474_749_660_383,
    341_550_071_728_321,
    3_825_123_056_546_413_051,
)

CARMICHAEL = (561, 1105, 1729, 2465, 2821, 6601, 8911, 41041, 825265)


def sieve(limit: int) -> np.ndarray:
    """Boolean primality table for ``0..limit`` inclusive."""
    is_p = np.ones(max(limit, 1) + 1, dtype=bool)
    is_p[:2] = False
    for p in range(2, int(limit ** 0.5) + 1):
        if is_p[p]:
            is_p[p * p :: p] = False
    return is_p[: limit + 1]


def check_against_sieve(limit: int) -> list[int]:
    """Return every ``n <= limit`` where the oracle disagrees with the sieve."""
    table = sieve(limit)
    return [n for n in range(limit + 1) if is_prime(n) != bool(table[n])]


def check_top_of_range(samples: int = 2000) -> list[int]:
    """Return mismatches against sympy just below ``2**64`` and on the tables."""
    lo = max(0, U64_MAX - samples + 1)
    candidates = list(range(lo, U64_MAX + 1))
    candidates.extend(STRONG_PSEUDOPRIMES)
    candidates.extend(CARMICHAEL)
    return [n for n in candidates if is_prime(n) != sympy_isprime(n)]
