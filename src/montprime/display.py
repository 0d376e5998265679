# src/montprime/display.py
from __future__ import annotations

from colorama import Fore, Style

from montprime.config import list_profiles_with_descriptions, read_current_profile
from montprime.context import PrimalityResult
from montprime.fmt import abbr_int_fast, format_duration, format_size
from montprime.runtime import CFG


def _abbr(n: int) -> str:
    threshold = int(CFG("DISPLAY.ABBREVIATE_DIGITS", 60))
    return abbr_int_fast(n, head=12, tail=12, threshold=threshold)


def format_result(result: PrimalityResult, *, elapsed: float | None = None,
                  verified: bool | None = None) -> list[str]:
    """Render a result as display lines (with ANSI colours)."""
    n = result.n
    lines = [f"{Style.BRIGHT}n = {_abbr(n)}{Style.RESET_ALL}  {Style.DIM}({format_size(n)}){Style.RESET_ALL}"]

    if result.is_composite:
        verdict = f"{Fore.RED}{Style.BRIGHT}composite{Style.RESET_ALL}"
    else:
        verdict = f"{Fore.GREEN}{Style.BRIGHT}probable prime{Style.RESET_ALL}"
    if elapsed is not None:
        verdict += f"  {Style.DIM}[{format_duration(elapsed)}]{Style.RESET_ALL}"
    lines.append(f"  verdict:  {verdict}")

    if result.witness is not None and CFG("DISPLAY.SHOW_WITNESS", True):
        lines.append(f"  witness:  {_abbr(result.witness)}")
    if result.divisor is not None:
        cofactor = abs(n) // result.divisor
        lines.append(f"  divisor:  {_abbr(result.divisor)} × {_abbr(cofactor)}")

    if verified is not None:
        if verified == result.probable_prime:
            lines.append(f"  sympy:    {Fore.GREEN}agrees{Style.RESET_ALL}")
        else:
            lines.append(f"  sympy:    {Fore.YELLOW}{Style.BRIGHT}disagrees "
                         f"(isprime = {verified}){Style.RESET_ALL}")
    return lines


def print_result(result: PrimalityResult, *, elapsed: float | None = None,
                 verified: bool | None = None) -> None:
    print("\n".join(format_result(result, elapsed=elapsed, verified=verified)))


def print_profiles_with_descriptions() -> None:
    pairs = list_profiles_with_descriptions()
    if not pairs:
        print("\nAvailable profiles: (none)")
        return

    current = read_current_profile()
    lines = []
    for name, desc in pairs:
        mark = "→" if current and name == current else " "
        lines.append(f"{mark} {name:13} — {desc}")
    print("\nAvailable profiles:\n  " + "\n  ".join(lines))
