"""
Tests for the integer helpers in montprime.utility.

Run: pytest -v
"""

from __future__ import annotations

import math
import random

import pytest

from montprime.utility import (
    InvalidModulusError,
    binary_gcd,
    bit_length,
    dec_digits,
    invert_power_of_two,
    two_multiplicity,
)

# ---------- bit_length / two_multiplicity ------------------------------------

BIT_LENGTH_CASES = [
    (0, 0),
    (1, 1),
    (2, 2),
    (255, 8),
    (256, 9),
    (2**127 - 1, 127),
    (10**100, 333),
]


@pytest.mark.parametrize("n, expected", BIT_LENGTH_CASES)
def test_bit_length(n, expected):
    assert bit_length(n) == expected


def test_bit_length_rejects_negative():
    with pytest.raises(ValueError):
        bit_length(-1)


TWO_MULTIPLICITY_CASES = [
    (0, 0),      # defined as 0, never loops
    (1, 0),
    (2, 1),
    (12, 2),
    (96, 5),
    (2**200, 200),
    (3 * 2**77, 77),
    (-40, 3),    # sign ignored
]


@pytest.mark.parametrize("n, expected", TWO_MULTIPLICITY_CASES)
def test_two_multiplicity(n, expected):
    assert two_multiplicity(n) == expected


def test_two_multiplicity_decomposes_n_minus_one():
    n = 3215031751
    s = two_multiplicity(n - 1)
    d = (n - 1) >> s
    assert d & 1
    assert d << s == n - 1


# ---------- binary_gcd --------------------------------------------------------

GCD_CASES = [
    (0, 0),
    (0, 17),
    (17, 0),
    (12, 12),
    (6, 4),
    (4, 6),
    (9, 3),
    (3, 9),
    (5, 1),
    (1, 5),
    (48, 180),
    (2**40, 2**12 * 3),
    (91, 23),
    (91, 70),
    (14911, 13 * 37 * 1000),
    (2**89 - 1, 2**89 - 2),
]


@pytest.mark.parametrize("a, b", GCD_CASES)
def test_binary_gcd_matches_math_gcd(a, b):
    assert binary_gcd(a, b) == math.gcd(a, b)


def test_binary_gcd_random_large():
    rng = random.Random(1234)
    for _ in range(50):
        common = rng.getrandbits(64) | 1
        a = common * rng.getrandbits(200)
        b = common * rng.getrandbits(180) << rng.randrange(5)
        assert binary_gcd(a, b) == math.gcd(a, b)


def test_binary_gcd_rejects_negative():
    with pytest.raises(ValueError):
        binary_gcd(-4, 6)


# ---------- invert_power_of_two ----------------------------------------------

INVERSE_CASES = [
    (1, 3),
    (3, 7),
    (7, 91),
    (8, 255),
    (64, 2**61 - 1),
    (127, 2**127 - 1),
    (333, 10**100 + 267),
]


@pytest.mark.parametrize("exponent, modulus", INVERSE_CASES)
def test_invert_power_of_two(exponent, modulus):
    inv = invert_power_of_two(exponent, modulus)
    assert 0 <= inv < modulus
    assert (inv << exponent) % modulus == 1


def test_invert_power_of_two_zero_exponent():
    assert invert_power_of_two(0, 97) == 1


def test_invert_power_of_two_requires_odd_modulus():
    with pytest.raises(InvalidModulusError):
        invert_power_of_two(4, 100)


# ---------- dec_digits --------------------------------------------------------

@pytest.mark.parametrize("n", [0, 1, 9, 10, 99, 100, 999_999, 10**50 - 1, 10**50, -12345, 2**521 - 1])
def test_dec_digits(n):
    assert dec_digits(n) == len(str(abs(n)))
