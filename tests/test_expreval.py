"""
Tests for input coercion (literals, expressions, foreign integer types).

Run: pytest -v
"""

from __future__ import annotations

import gmpy2
import pytest

from montprime.expreval import coerce_int, parse_int_or_expr
from montprime.runtime import APPLY
from montprime.utility import InputFormatError, UserInputError

PARSE_CASES = [
    ("42", 42),
    ("  -7 ", -7),
    ("+13", 13),
    ("1_000_003", 1000003),
    ("1 000 003", 1000003),
    ("1,000,003", 1000003),
    ("1.000.003", 1000003),
    ("1\u202f000\u202f003", 1000003),
    ("0x1F", 31),
    ("-0x1F", -31),
    ("0b1011", 11),
    ("0o17", 15),
    ("2**89 - 1", 2**89 - 1),
    ("2**127-1", 2**127 - 1),
    ("(2**61 - 1) * (2**89 - 1)", (2**61 - 1) * (2**89 - 1)),
    ("10**100 + 267", 10**100 + 267),
    ("1e6+3", 1000003),
    ("3e2", 300),
    ("5!+1", 121),
    ("(2+3)! - 1", 119),
    ("2**100 % 7", pow(2, 100, 7)),
    ("2**(2**5) % 7", pow(2, 32, 7)),
    ("(2**10 // 3) % 7", (2**10 // 3) % 7),
    ("1 << 64 | 1", (1 << 64) | 1),
    ("-(3**5)", -243),
]


@pytest.mark.parametrize("text, expected", PARSE_CASES)
def test_parse_int_or_expr(text, expected):
    assert parse_int_or_expr(text) == expected


BAD_INPUTS = [
    "",
    "abc",
    "3.14",
    "1,23",
    "0xG1",
    "2**-1",
    "1/2",
    "1e-3",
    "7 // 0",
    "5 % 0",
    "3!!",
    "(3!)!",
    "!5",
    "__import__('os')",
    "x + 1",
    "[1, 2]",
    "1 + 2j",
]


@pytest.mark.parametrize("text", BAD_INPUTS)
def test_parse_rejects(text):
    with pytest.raises(InputFormatError):
        parse_int_or_expr(text)


def test_input_errors_are_user_and_value_errors():
    with pytest.raises(UserInputError):
        parse_int_or_expr("nope")
    with pytest.raises(ValueError):
        parse_int_or_expr("nope")


def test_digit_limit_from_profile():
    APPLY({"BEHAVIOUR": {"MAX_DIGITS": 50}})
    assert parse_int_or_expr("10**49") == 10**49
    with pytest.raises(InputFormatError, match="50 decimal digits"):
        parse_int_or_expr("10**60")
    with pytest.raises(InputFormatError):
        parse_int_or_expr("9" * 51)
    with pytest.raises(InputFormatError):
        parse_int_or_expr("100!")


def test_default_digit_limit_blocks_huge_powers():
    with pytest.raises(InputFormatError):
        parse_int_or_expr("2**10000000")


# ---------- coerce_int --------------------------------------------------------

def test_coerce_int_passthrough():
    big = 2**4000 + 1
    assert coerce_int(big) == big
    assert type(coerce_int(big)) is int
    assert coerce_int(-5) == -5


def test_coerce_int_foreign_integer_types():
    value = coerce_int(gmpy2.mpz(2) ** 200 + 1)
    assert value == 2**200 + 1
    assert type(value) is int


def test_coerce_int_strings():
    assert coerce_int("3847201213") == 3847201213


@pytest.mark.parametrize("bad", [True, False, 3.0, None, [1], {"n": 1}, b"12"])
def test_coerce_int_rejects(bad):
    with pytest.raises(InputFormatError):
        coerce_int(bad)


# ---------- size guards -------------------------------------------------------

def test_decimal_literals_beyond_int_str_limit():
    # 5000 digits, past the interpreter's default conversion limit
    expected = 7 * (10**5000 - 1) // 9
    assert parse_int_or_expr("7" * 5000) == expected
    assert parse_int_or_expr("-" + "7" * 5000) == -expected
    assert parse_int_or_expr("7" * 5000 + " + 1") == expected + 1


def test_literal_over_profile_limit_names_the_limit():
    APPLY({"BEHAVIOUR": {"MAX_DIGITS": 5000}})
    with pytest.raises(InputFormatError, match="5000 decimal digits"):
        parse_int_or_expr("7" * 5001)
    assert parse_int_or_expr("0" * 20 + "7" * 5000) > 0


@pytest.mark.parametrize("text", ["1 << 10**12", "3 << 10**10", "-1 << 10**12"])
def test_huge_shifts_are_rejected_before_shifting(text):
    with pytest.raises(InputFormatError, match="decimal digits"):
        parse_int_or_expr(text)


def test_products_are_checked_before_multiplying():
    APPLY({"BEHAVIOUR": {"MAX_DIGITS": 100}})
    assert parse_int_or_expr("10**40 * 10**40") == 10**80
    with pytest.raises(InputFormatError, match="100 decimal digits"):
        parse_int_or_expr("10**60 * 10**60")


def test_shifts_within_limit():
    assert parse_int_or_expr("1 << 100") == 2**100
    assert parse_int_or_expr("2**100 >> 98") == 4


@pytest.mark.parametrize("text", ["1 << -1", "8 >> -2"])
def test_negative_shift_count(text):
    with pytest.raises(InputFormatError):
        parse_int_or_expr(text)


def test_error_message_abbreviates_long_input():
    with pytest.raises(InputFormatError) as excinfo:
        parse_int_or_expr("9" * 5000 + "x")
    msg = str(excinfo.value)
    assert len(msg) < 200
    assert "5001 chars" in msg
