from __future__ import annotations

import pytest
from sympy import factorint, primerange

from digit_sum import (
    DigitSumClass,
    classify,
    digit_sum,
    digits,
    factorization_string,
    from_digits,
    is_prime_power,
    is_semiprime_distinct,
    is_valid_digit_sum,
)


def valid_by_factorint(s: int) -> bool:
    if s == 1:
        return True
    if s < 1:
        return False
    f = factorint(s)
    return len(f) == 1 or (len(f) == 2 and all(e == 1 for e in f.values()))


def test_digit_sum_examples():
    assert digit_sum(6143, 2) == 12
    assert digit_sum(100, 7) == 4  # 202 in base 7
    assert digit_sum(999, 10) == 27
    assert digit_sum(30, 31) == 30
    assert digit_sum(0, 10) == 0


def test_digit_sum_rejects_small_base():
    with pytest.raises(ValueError):
        digit_sum(10, 1)
    with pytest.raises(ValueError):
        digits(10, 0)


@pytest.mark.parametrize("base", [2, 3, 7, 10, 31, 2**32 + 15])
def test_digits_round_trip(base):
    for n in (1, 2, base - 1, base, base + 1, 6143, 10**12 + 39, 2**64 - 59):
        ds = digits(n, base)
        assert from_digits(ds, base) == n
        assert all(0 <= d < base for d in ds)
        assert sum(ds) == digit_sum(n, base)


def test_primes_are_prime_powers():
    for p in primerange(2, 2000):
        assert is_prime_power(p), p


def test_prime_powers():
    for n in (4, 8, 9, 27, 25, 2**20, 3**10, 7**5):
        assert is_prime_power(n), n
    for n in (0, 1, 6, 12, 36, 100, 2 * 3 * 5):
        assert not is_prime_power(n), n


def test_distinct_semiprimes():
    small = list(primerange(2, 60))
    for i, p in enumerate(small):
        assert not is_semiprime_distinct(p * p)
        for q in small[i + 1:]:
            assert is_semiprime_distinct(p * q), (p, q)


def test_not_distinct_semiprimes():
    for n in (0, 1, 2, 3, 4, 5, 7, 8, 12, 18, 30, 60, 101):
        assert not is_semiprime_distinct(n), n
    assert is_semiprime_distinct(6)


def test_valid_set_matches_factorint():
    for s in range(0, 3000):
        assert is_valid_digit_sum(s) == valid_by_factorint(s), s


def test_smallest_invalid_sums():
    invalid = [s for s in range(1, 50) if not is_valid_digit_sum(s)]
    assert invalid == [12, 18, 20, 24, 28, 30, 36, 40, 42, 44, 45, 48]


@pytest.mark.parametrize(
    "s, kind",
    [
        (1, DigitSumClass.ONE),
        (7, DigitSumClass.PRIME),
        (9, DigitSumClass.PRIME_POWER),
        (15, DigitSumClass.SEMIPRIME),
        (12, DigitSumClass.INVALID),
        (0, DigitSumClass.INVALID),
    ],
)
def test_classify(s, kind):
    assert classify(s) is kind
    assert (kind is not DigitSumClass.INVALID) == is_valid_digit_sum(s)


def test_factorization_string():
    assert factorization_string(12) == "12 = 2^2 * 3"
    assert factorization_string(30) == "30 = 2 * 3 * 5"
    assert factorization_string(7) == "7 = 7"
    assert factorization_string(1) == "1"
