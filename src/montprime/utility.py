# -----------------------------------------------------------------------------
#  Utility functions
#  Integer helpers shared by the Montgomery engine and the Miller-Rabin driver
# -----------------------------------------------------------------------------

from __future__ import annotations

import sys


# --- Errors --------------------------------------------------------------------

class UserInputError(Exception):
    pass


class InputFormatError(UserInputError, ValueError):
    """The input cannot be coerced to an integer."""


class InvalidBaseRangeError(UserInputError, ValueError):
    """An explicit Miller-Rabin base lies outside [2, n-2]."""


class InvalidBaseTypeError(UserInputError, TypeError):
    """The bases option was given but is not a sequence."""


class InvalidModulusError(ValueError):
    """A Montgomery context was requested for an even (or non-positive) modulus."""


# --- Bits & digits -------------------------------------------------------------

def bit_length(n: int) -> int:
    """Number of bits in the binary representation of n >= 0 (0 for n == 0)."""
    if n < 0:
        raise ValueError(f"bit_length requires a non-negative integer, got {n}")
    return n.bit_length()


def two_multiplicity(n: int) -> int:
    """
    Largest k such that 2**k divides n.

    The sign is ignored; n == 0 returns 0 rather than looping forever.
    """
    n = abs(n)
    if n == 0:
        return 0
    # lowest set bit isolated by n & -n
    return (n & -n).bit_length() - 1


def dec_digits(n: int) -> int:
    """Exact decimal digit count without str(); handles n >= 0."""
    n = abs(n)
    if n == 0:
        return 1
    # floor(log10(n)) ~= floor(bitlen*log10(2)), 0.30103 ~ log10(2)
    bl = n.bit_length()
    est = int((bl * 30103) // 100000)
    # bring into correct decade with at most a couple of steps
    p10 = 10 ** est
    if n < p10:
        while n < p10:
            est -= 1
            p10 //= 10
    else:
        p10 *= 10
        while n >= p10:
            est += 1
            p10 *= 10
    return est + 1


# --- gcd & inverses --------------------------------------------------------------

def binary_gcd(a: int, b: int) -> int:
    """
    gcd of two non-negative integers by Stein's algorithm.

    Only shifts, comparisons and subtraction are used:
      1) strip the factors of two shared by a and b (re-applied at the end)
      2) strip remaining twos from each operand, keep a >= b, subtract
      3) stop when the operands meet (or b reaches 1)
    """
    if a < 0 or b < 0:
        raise ValueError(f"binary_gcd requires non-negative integers, got ({a}, {b})")
    if a == b:
        return a
    if a == 0:
        return b
    if b == 0:
        return a

    shared_twos = 0
    while not ((a | b) & 1):
        shared_twos += 1
        a >>= 1
        b >>= 1

    while a != b and b > 1:
        # leftover twos cannot be part of the gcd any more
        while not a & 1:
            a >>= 1
        while not b & 1:
            b >>= 1

        if b > a:
            a, b = b, a
        elif a == b:
            break

        a -= b

    return b << shared_twos


def invert_power_of_two(exponent: int, odd_modulus: int) -> int:
    """
    Inverse of 2**exponent modulo an odd modulus.

    Right-shift inversion restricted to powers of two: start from 1 and halve
    `exponent` times, adding the modulus first whenever the value is odd.
    The result lies in [0, odd_modulus).
    """
    if not odd_modulus & 1:
        raise InvalidModulusError(f"modulus must be odd, got {odd_modulus}")
    if exponent < 0:
        raise ValueError(f"exponent must be non-negative, got {exponent}")

    inv = 1
    for _ in range(exponent):
        if inv & 1:
            inv += odd_modulus
        inv >>= 1
    return inv % odd_modulus


# --- Misc ----------------------------------------------------------------------

def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out


def set_int_str_limit(max_digits: int) -> None:
    """Raise the interpreter's int<->str conversion limit to at least max_digits."""
    current = sys.get_int_max_str_digits()
    if current == 0 or current >= max_digits:
        return  # 0 means unlimited
    sys.set_int_max_str_digits(max(int(max_digits), 4300))
