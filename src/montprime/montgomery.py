# -----------------------------------------------------------------------------
#  montgomery.py
#  Montgomery reduction context and reduced-domain arithmetic
# -----------------------------------------------------------------------------

"""
Numbers in Montgomery form represent x (mod m) as x*r (mod m), with r the
smallest power of two above m. Products are reduced with REDC, which only
needs masks and shifts by r, never a division by m.
"""

from __future__ import annotations

from montprime.context import MontgomeryContext
from montprime.utility import InvalidModulusError, bit_length, invert_power_of_two


def create_context(modulus: int) -> MontgomeryContext:
    """Build the reduction context for an odd modulus."""
    if modulus <= 0 or not modulus & 1:
        raise InvalidModulusError(f"modulus must be odd and positive, got {modulus}")

    shift = bit_length(modulus)
    r = 1 << shift

    r_inverse = invert_power_of_two(shift, modulus)
    # r*r_inverse - 1 is a multiple of modulus, so the division is exact
    modulus_inverse = r - (((r_inverse * r - 1) // modulus) % r)

    return MontgomeryContext(
        modulus=modulus,
        shift=shift,
        r=r,
        r_inverse=r_inverse,
        modulus_inverse=modulus_inverse,
    )


def to_montgomery(n: int, ctx: MontgomeryContext) -> int:
    return (n << ctx.shift) % ctx.modulus


def from_montgomery(n: int, ctx: MontgomeryContext) -> int:
    return (n * ctx.r_inverse) % ctx.modulus


def montgomery_multiply(a: int, b: int, ctx: MontgomeryContext) -> int:
    """
    REDC product of two numbers in Montgomery form.

    The result stays in Montgomery form and lies in [0, modulus).
    """
    if a == 0 or b == 0:
        return 0

    mask = ctx.mask
    t = a * b
    m = ((t & mask) * ctx.modulus_inverse) & mask
    product = (t - m * ctx.modulus) >> ctx.shift

    if product >= ctx.modulus:
        product -= ctx.modulus
    elif product < 0:
        product += ctx.modulus
    return product


def montgomery_square(a: int, ctx: MontgomeryContext) -> int:
    return montgomery_multiply(a, a, ctx)


def montgomery_pow(base: int, exponent: int, ctx: MontgomeryContext) -> int:
    """
    base**exponent with base in Montgomery form and exponent a plain integer.

    Right-to-left binary method: for each bit of the exponent (LSB first)
    multiply the result by the running power when the bit is set, then square
    the running power.
    """
    if exponent < 0:
        raise ValueError("negative exponents are not supported")

    result = to_montgomery(1, ctx)
    power = base
    e = exponent
    while e:
        if e & 1:
            result = montgomery_multiply(result, power, ctx)
        e >>= 1
        if e:
            power = montgomery_square(power, ctx)
    return result
