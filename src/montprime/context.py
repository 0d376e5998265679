from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MontgomeryContext:
    modulus: int                     # odd, > 0
    shift: int                       # bit length of modulus, r = 2**shift
    r: int                           # smallest power of two above modulus
    r_inverse: int                   # r^-1 mod modulus
    modulus_inverse: int             # modulus*modulus_inverse + r*r_inverse = 1 (mod r)

    @property
    def mask(self) -> int:
        """r - 1, for reducing mod r with a bitwise and."""
        return self.r - 1


@dataclass(frozen=True)
class PrimalityResult:
    n: int                           # signed, as given by the caller
    probable_prime: bool
    witness: int | None = None       # base proving compositeness
    divisor: int | None = None       # non-trivial divisor of |n|, opportunistic

    @property
    def is_composite(self) -> bool:
        return not self.probable_prime
