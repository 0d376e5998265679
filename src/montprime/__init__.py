from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("montprime")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .context import MontgomeryContext, PrimalityResult
from .expreval import coerce_int
from .millerrabin import adaptive_num_rounds, primality_test, primality_test_async
from .montgomery import (
    create_context,
    from_montgomery,
    montgomery_multiply,
    montgomery_pow,
    montgomery_square,
    to_montgomery,
)
from .runtime import APPLY, CFG
from .utility import (
    InputFormatError,
    InvalidBaseRangeError,
    InvalidBaseTypeError,
    InvalidModulusError,
    UserInputError,
    binary_gcd,
    bit_length,
    invert_power_of_two,
    two_multiplicity,
)

__all__ = [
    "APPLY",
    "CFG",
    "InputFormatError",
    "InvalidBaseRangeError",
    "InvalidBaseTypeError",
    "InvalidModulusError",
    "MontgomeryContext",
    "PrimalityResult",
    "UserInputError",
    "__version__",
    "adaptive_num_rounds",
    "binary_gcd",
    "bit_length",
    "coerce_int",
    "create_context",
    "from_montgomery",
    "invert_power_of_two",
    "montgomery_multiply",
    "montgomery_pow",
    "montgomery_square",
    "primality_test",
    "primality_test_async",
    "to_montgomery",
    "two_multiplicity",
]
