"""
Tests for the Montgomery reduction context and reduced-domain arithmetic.

Run: pytest -v
"""

from __future__ import annotations

import random

import pytest

from montprime.context import MontgomeryContext
from montprime.montgomery import (
    create_context,
    from_montgomery,
    montgomery_multiply,
    montgomery_pow,
    montgomery_square,
    to_montgomery,
)
from montprime.utility import InvalidModulusError

MODULI = [
    3,
    7,
    91,
    255,
    257,
    3847201213,
    2**61 - 1,
    2**89 - 1,
    6282987234087503937,
    10**100 + 267,
    2**521 - 1,
]


# ---------- context -----------------------------------------------------------

@pytest.mark.parametrize("m", MODULI)
def test_context_invariants(m):
    ctx = create_context(m)
    assert isinstance(ctx, MontgomeryContext)
    assert ctx.modulus == m
    assert ctx.shift == m.bit_length()
    assert ctx.r == 1 << ctx.shift
    assert ctx.r // 2 <= m < ctx.r              # smallest power of two above m
    assert ctx.mask == ctx.r - 1
    assert (ctx.r * ctx.r_inverse) % m == 1
    assert (m * ctx.modulus_inverse + ctx.r * ctx.r_inverse) % ctx.r == 1
    assert (m * ctx.modulus_inverse) % ctx.r == 1


@pytest.mark.parametrize("m", [0, 2, 4, 100, 2**64, -7])
def test_context_rejects_even_or_non_positive(m):
    with pytest.raises(InvalidModulusError):
        create_context(m)


def test_context_is_immutable():
    ctx = create_context(91)
    with pytest.raises(AttributeError):
        ctx.modulus = 93  # type: ignore[misc]


# ---------- conversions -------------------------------------------------------

@pytest.mark.parametrize("m", MODULI)
def test_to_and_from_montgomery(m):
    ctx = create_context(m)
    for x in (0, 1, 2, m - 1, m // 2, m + 5):
        xm = to_montgomery(x, ctx)
        assert 0 <= xm < m
        assert xm == (x * ctx.r) % m
        assert from_montgomery(xm, ctx) == x % m


# ---------- multiply / square -------------------------------------------------

@pytest.mark.parametrize("m", MODULI)
def test_multiply_matches_plain_modular_product(m):
    ctx = create_context(m)
    rng = random.Random(m & 0xFFFF)
    for _ in range(25):
        a, b = rng.randrange(m), rng.randrange(m)
        prod = montgomery_multiply(to_montgomery(a, ctx), to_montgomery(b, ctx), ctx)
        assert 0 <= prod < m
        assert from_montgomery(prod, ctx) == (a * b) % m


def test_multiply_by_zero_short_circuits():
    ctx = create_context(3847201213)
    assert montgomery_multiply(0, to_montgomery(12345, ctx), ctx) == 0
    assert montgomery_multiply(to_montgomery(12345, ctx), 0, ctx) == 0


def test_multiply_extremes_stay_reduced():
    m = 2**89 - 1
    ctx = create_context(m)
    top = m - 1
    assert montgomery_multiply(top, top, ctx) < m
    assert montgomery_multiply(1, 1, ctx) < m


@pytest.mark.parametrize("m", MODULI)
def test_square_equals_self_multiply(m):
    ctx = create_context(m)
    x = to_montgomery(m // 3 + 1, ctx)
    assert montgomery_square(x, ctx) == montgomery_multiply(x, x, ctx)


# ---------- pow ---------------------------------------------------------------

POW_CASES = [
    (91, 23, 45),
    (91, 23, 0),
    (91, 0, 5),
    (3847201213, 2, 3847201212),
    (2**89 - 1, 3, 2**89 - 2),
    (10**100 + 267, 7, 10**100 + 266),
    (6282987234087503937, 5, 123456789012345),
]


@pytest.mark.parametrize("m, base, exponent", POW_CASES)
def test_pow_matches_builtin(m, base, exponent):
    ctx = create_context(m)
    res = montgomery_pow(to_montgomery(base, ctx), exponent, ctx)
    assert from_montgomery(res, ctx) == pow(base, exponent, m)


def test_pow_zero_exponent_is_montgomery_one():
    ctx = create_context(257)
    assert montgomery_pow(to_montgomery(5, ctx), 0, ctx) == to_montgomery(1, ctx)


def test_pow_rejects_negative_exponent():
    ctx = create_context(257)
    with pytest.raises(ValueError):
        montgomery_pow(to_montgomery(5, ctx), -1, ctx)


def test_fermat_on_prime_modulus():
    p = 2**127 - 1
    ctx = create_context(p)
    one = to_montgomery(1, ctx)
    for a in (2, 3, 10**20 + 39):
        assert montgomery_pow(to_montgomery(a, ctx), p - 1, ctx) == one
