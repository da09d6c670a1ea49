from __future__ import annotations

import pytest

from base_verifier import main, parse_count


@pytest.mark.parametrize(
    "text, value",
    [("1000000", 10**6), ("1_000_000", 10**6), ("1e6", 10**6), ("2E3", 2000), ("31", 31)],
)
def test_parse_count(text, value):
    assert parse_count(text) == value


def test_check_reports_classification(capsys):
    assert main(["check", "6143", "--base", "2"]) == 0
    out = capsys.readouterr().out
    assert "Check 6143: prime" in out
    assert "invalid (12 = 2^2 * 3)" in out


def test_check_rejects_base_one(capsys):
    assert main(["check", "10", "--base", "1"]) == 2


def test_verify_holds(capsys):
    code = main(["verify", "--base", "7", "--end", "100", "--workers", "2",
                 "--backend", "thread", "--quiet"])
    assert code == 0
    assert "No violations found up to 100" in capsys.readouterr().out


def test_verify_reports_violation(capsys):
    code = main(["verify", "--base", "2", "--end", "8191", "--workers", "3",
                 "--backend", "thread", "--quiet", "--all"])
    assert code == 1
    assert "p=6143  S(p)=12  (12 = 2^2 * 3)" in capsys.readouterr().out


def test_verify_non_prime_base(capsys):
    code = main(["verify", "--base", "4", "--end", "100", "--backend", "thread", "--quiet"])
    assert code == 2
    assert "base 4 is not prime" in capsys.readouterr().err


def test_verify_reversed_range(capsys):
    code = main(["verify", "--base", "7", "--start", "50", "--end", "10",
                 "--backend", "thread", "--quiet"])
    assert code == 2
    assert "exceeds end" in capsys.readouterr().err


def test_selfcheck(capsys):
    assert main(["selfcheck", "--limit", "5000", "--samples", "50"]) == 0
    assert "agrees" in capsys.readouterr().out
