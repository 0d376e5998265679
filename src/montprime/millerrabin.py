# -----------------------------------------------------------------------------
#  millerrabin.py
#  Miller-Rabin probable-prime test on top of the Montgomery engine
# -----------------------------------------------------------------------------

from __future__ import annotations

import asyncio
import random
import sys
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from colorama import Fore, Style

from montprime.context import MontgomeryContext, PrimalityResult
from montprime.expreval import coerce_int
from montprime.fmt import abbr_int_fast
from montprime.montgomery import (
    create_context,
    from_montgomery,
    montgomery_pow,
    montgomery_square,
    to_montgomery,
)
from montprime.runtime import current as _rt_current
from montprime.utility import (
    InputFormatError,
    InvalidBaseRangeError,
    InvalidBaseTypeError,
    binary_gcd,
    bit_length,
    two_multiplicity,
)

# A source of uniformly random bits: randbits(k) -> int in [0, 2**k)
RandomBits = Callable[[int], int]


# ---------- Search state ------------------------------------------------------

class _State(Enum):
    PENDING = "pending"        # no witness yet, keep testing
    COMPOSITE = "composite"    # terminal, witness (and maybe divisor) known


@dataclass
class _Search:
    state: _State = _State.PENDING
    witness: int | None = None
    divisor: int | None = None

    def found(self, witness: int, divisor: int | None) -> None:
        self.state = _State.COMPOSITE
        self.witness = witness
        self.divisor = divisor

    @property
    def done(self) -> bool:
        return self.state is _State.COMPOSITE


# ---------- Helpers -----------------------------------------------------------

def adaptive_num_rounds(input_bits: int) -> int:
    """
    Rounds of testing for an input of the given bit length. The chance of a
    composite passing a random round shrinks quickly with size, so larger
    inputs need fewer rounds.
    """
    if input_bits > 1000:
        return 2
    if input_bits > 500:
        return 3
    if input_bits > 250:
        return 4
    if input_bits > 150:
        return 5
    return 6


def validate_bases(bases: Sequence[object] | None, n: int) -> list[int] | None:
    """
    Coerce explicit bases to int and check each lies in [2, n-2].

    None passes through; a non-sequence (or a str/bytes) raises
    InvalidBaseTypeError; an out-of-range base raises InvalidBaseRangeError.
    """
    if bases is None:
        return None
    if isinstance(bases, (str, bytes)) or not isinstance(bases, Sequence):
        raise InvalidBaseTypeError(
            f"invalid bases option (must be a list or tuple), got {type(bases).__name__}"
        )

    out: list[int] = []
    for b in bases:
        a = coerce_int(b)
        if not 2 <= a <= n - 2:
            raise InvalidBaseRangeError(f"invalid base (must be in the range [2, n-2]): {a}")
        out.append(a)
    return out


def random_base(n: int, randbits: RandomBits) -> int:
    """Draw a base uniformly from [2, n-2], redrawing out-of-range values."""
    bits = bit_length(n)
    while True:
        a = randbits(bits)
        if 2 <= a <= n - 2:
            return a


def _resolve_num_rounds(num_rounds: object, n_bits: int) -> int:
    if num_rounds is None:
        return adaptive_num_rounds(n_bits)
    if isinstance(num_rounds, bool) or not isinstance(num_rounds, int):
        raise InputFormatError(f"num_rounds must be an integer, got {type(num_rounds).__name__}")
    if num_rounds < 1:
        return adaptive_num_rounds(n_bits)
    return num_rounds


def _recover_divisor(x: int, n: int, ctx: MontgomeryContext) -> int | None:
    """gcd(x - 1, n) for x in Montgomery form; None when it is trivial."""
    g = binary_gcd(from_montgomery(x, ctx) - 1, n)
    return None if g == 1 else g


def _print_debug_round(index: int, base: int, status: str, dt_ms: float, detail: str | None = None) -> None:
    """One coloured line per round (to STDERR)."""
    if status == "PASS":
        stat = f"{Fore.GREEN}{Style.BRIGHT}PASS{Style.RESET_ALL}"
    elif status == "GCD":
        stat = f"{Fore.YELLOW}{Style.BRIGHT}GCD {Style.RESET_ALL}"
    else:  # "WIT "
        stat = f"{Fore.RED}{Style.BRIGHT}WIT {Style.RESET_ALL}"

    tm = f"{Style.DIM}[{dt_ms:8.2f} ms]{Style.RESET_ALL}"
    line = f"{tm} {stat}  round {index + 1}: base {abbr_int_fast(base)}"
    if detail:
        line += f" — {Style.DIM}{detail}{Style.RESET_ALL}"
    sys.stderr.write(line + "\n")
    sys.stderr.flush()


# ---------- Main API ----------------------------------------------------------

def primality_test(
    n: object,
    *,
    num_rounds: int | None = None,
    bases: Sequence[object] | None = None,
    find_divisor: bool = True,
    randbits: RandomBits | None = None,
) -> PrimalityResult:
    """
    Miller-Rabin test of n using Montgomery arithmetic.

      * n may be an int, a decimal/expression string, or any __index__ type;
        the sign is ignored for testing and kept on result.n
      * bases: explicit bases in [2, n-2], one round each (num_rounds ignored)
      * num_rounds: random bases to try; None or < 1 picks a size-based count
      * find_divisor: gcd checks that may report a non-trivial divisor
      * randbits: source of random bits, default random.getrandbits
    """
    value = coerce_int(n)
    sign = -1 if value < 0 else 1
    n_abs = -value if value < 0 else value

    # small special cases
    if n_abs < 2:
        return PrimalityResult(n=value, probable_prime=False)
    if n_abs < 4:
        return PrimalityResult(n=value, probable_prime=True)
    if not n_abs & 1:
        return PrimalityResult(n=value, probable_prime=False, divisor=2)

    n_bits = bit_length(n_abs)
    n_sub = n_abs - 1

    explicit = validate_bases(bases, n_abs)
    if explicit is not None:
        rounds = len(explicit)
    else:
        rounds = _resolve_num_rounds(num_rounds, n_bits)
        if randbits is None:
            randbits = random.getrandbits

    # n - 1 = d * 2**s with d odd
    s = two_multiplicity(n_sub)
    d = n_sub >> s

    ctx = create_context(n_abs)
    one_m = to_montgomery(1, ctx)
    n_sub_m = to_montgomery(n_sub, ctx)

    debug = bool(getattr(_rt_current(), "debug", False))
    search = _Search()

    for index in range(rounds):
        if search.done:
            break

        base = explicit[index] if explicit is not None else random_base(n_abs, randbits)
        t0 = time.perf_counter() if debug else 0.0

        if find_divisor:
            g = binary_gcd(n_abs, base)
            if g != 1:
                # a shared factor beats any Miller-Rabin witness
                search.found(base, g)
                if debug:
                    _print_debug_round(index, base, "GCD", (time.perf_counter() - t0) * 1000.0, f"gcd = {g}")
                continue

        x = montgomery_pow(to_montgomery(base, ctx), d, ctx)
        if x == one_m or x == n_sub_m:
            if debug:
                _print_debug_round(index, base, "PASS", (time.perf_counter() - t0) * 1000.0, "a^d = ±1")
            continue

        passed = False
        for i in range(s):
            y = montgomery_square(x, ctx)
            if y == one_m:
                # x is a square root of 1 other than ±1
                search.found(base, _recover_divisor(x, n_abs, ctx) if find_divisor else None)
                break
            if y == n_sub_m:
                passed = True
                break
            x = y
        else:
            # a^(n-1) was never reached as ±1 through the chain
            search.found(base, _recover_divisor(x, n_abs, ctx) if find_divisor else None)

        if debug:
            dt = (time.perf_counter() - t0) * 1000.0
            if passed:
                _print_debug_round(index, base, "PASS", dt, f"a^(d·2^{i + 1}) = -1")
            else:
                extra = f", divisor {abbr_int_fast(search.divisor)}" if search.divisor else ""
                _print_debug_round(index, base, "WIT", dt, f"witness{extra}")

    return PrimalityResult(
        n=sign * n_abs,
        probable_prime=not search.done,
        witness=search.witness,
        divisor=search.divisor,
    )


async def primality_test_async(n: object, **options) -> PrimalityResult:
    """Run primality_test in a worker thread so an event loop stays responsive."""
    return await asyncio.to_thread(primality_test, n, **options)
