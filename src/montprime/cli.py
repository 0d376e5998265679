# src/montprime/cli.py

"""
montprime - Miller-Rabin primality testing with Montgomery arithmetic

Description:
    Tests integers of any size for (probable) primality. Composite inputs are
    reported with a witness and, where one turns up, a non-trivial divisor.

usage: see montprime -h
"""

from __future__ import annotations

import argparse
import faulthandler
import os
import platform
import random
import re
import sys
import textwrap
import threading
import time
import traceback
from typing import NamedTuple

from colorama import Fore, Style
from colorama import init as colorama_init
from sympy import isprime

from montprime import __version__ as _ver
from montprime import config as CONFIG
from montprime.context import PrimalityResult
from montprime.display import print_profiles_with_descriptions, print_result
from montprime.expreval import parse_int_or_expr
from montprime.fmt import abbr_int_fast
from montprime.millerrabin import primality_test
from montprime.runtime import APPLY, CFG, ensure_runtime_deps
from montprime.runtime import current as _rt_current
from montprime.utility import UserInputError, flatten_dotted, set_int_str_limit, typename
from montprime.workspace import ensure_workspace_seeded, seed_workspace, workspace_dir

_COMMANDS = {"init", "where", "active", "profiles"}


# In memory session history
class HistoryItem(NamedTuple):
    n: int
    probable_prime: bool
    profile: str | None
    timestamp: float


_HISTORY: list[HistoryItem] = []


def add_to_history(result: PrimalityResult, profile: str | None = None) -> None:
    _HISTORY.append(HistoryItem(n=result.n, probable_prime=result.probable_prime,
                                profile=profile, timestamp=time.time()))


def get_history() -> list[HistoryItem]:
    return list(_HISTORY)


def clear_history() -> None:
    _HISTORY.clear()


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    # Always show full Python tracebacks
    faulthandler.enable()

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook

    def _thread_excepthook(args):
        sys.stderr.write("\n[UNCAUGHT THREAD EXCEPTION]\n")
        traceback.print_exception(args.exc_type, args.exc_value, args.exc_traceback, file=sys.stderr)
        sys.stderr.flush()
    threading.excepthook = _thread_excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if not (msg.startswith("Invalid input:") or msg.startswith("Error:")):
        msg = f"{prefix} {msg}"
    print(msg, file=sys.stderr)


# profile names start with a letter; numbers and expressions never do
_PROFILE_NAME_RE = re.compile(r"[A-Za-z_][\w.-]*")


def _looks_like_profile(text: str) -> bool:
    return CONFIG.has_profile(text) or bool(_PROFILE_NAME_RE.fullmatch(text))


def _resolve_inputs(items: list[str]) -> tuple[str | None, list[str]]:
    """Return (profile_or_command, number_texts).

    A leading command or profile-like name is split off; everything else is
    a number to test. Nothing is evaluated here, each number is parsed once
    by _run_one under the applied profile.
    """
    if not items:
        return None, []
    head, rest = items[0], items[1:]
    if head.lower() in _COMMANDS or _looks_like_profile(head):
        return head, rest
    return None, items


def _split_bases(text: str | None) -> list[str] | None:
    if text is None:
        return None
    parts = [p.strip() for p in text.split(",")]
    return [p for p in parts if p]


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent("""\
    commands:
      init
          Create the workspace and copy the packaged profiles if missing.

      where
          Show the workspace path.

      active
          Show the last used profile.

      profiles
          List available profiles.

    examples:
      montprime 3847201213
      montprime thorough "2**521 - 1"
      montprime 91 --bases 23
      montprime "10**100 + 267" --rounds 20 --verify
    """)

    p = argparse.ArgumentParser(
        prog="montprime",
        description="Miller-Rabin primality testing with Montgomery arithmetic",
        usage=(
            "montprime [profile] [integer ...] [--rounds K] [--bases B1,B2,...] [--no-divisor]\n"
            "                 [--seed S] [--verify] [--quiet] [--debug]\n"
            "       montprime init | where | active | profiles\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("items", nargs="*", metavar="[profile] integer",
                   help="optional profile name followed by integers or integer expressions")
    p.add_argument("--rounds", type=int, default=None,
                   help="number of random bases (default: profile, 0 = adaptive)")
    p.add_argument("--bases", default=None,
                   help="comma separated explicit bases, one round each (overrides --rounds)")
    p.add_argument("--no-divisor", action="store_true", help="skip gcd checks for a divisor")
    p.add_argument("--seed", type=int, default=None, help="seed the random base generator")
    p.add_argument("--verify", action="store_true", help="cross-check each verdict with sympy.isprime")
    p.add_argument("--quiet", action="store_true", help="print one line per number")
    p.add_argument("--debug", action="store_true", help="show per-round trace and tracebacks")
    p.add_argument("--version", action="version", version=f"%(prog)s {_ver}")
    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except UserInputError as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        debug = ("--debug" in (argv if argv is not None else sys.argv))
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


def _configure_text_streams() -> None:
    if os.environ.get("PYTHONIOENCODING"):
        return
    # Only touch redirected output (pipes/files), leave TTY as-is
    if sys.stdout.isatty() or not hasattr(sys.stdout, "reconfigure"):
        return
    enc = (sys.stdout.encoding or "").lower()
    if platform.system() == "Windows" or enc in ("", "ascii", "us-ascii"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")


def _debug_dump_profile(selected: CONFIG.Settings) -> None:
    print(f"[debug] active profile: {selected.name}", file=sys.stderr)
    if selected._source:
        print(f"[debug] profile file: {selected._source}", file=sys.stderr)
    flat = flatten_dotted(selected.as_dict())
    for k in sorted(flat.keys(), key=str.lower):
        runtime_val = CFG(k, None)
        print(f"        {k:.<40} {runtime_val!r} ({typename(runtime_val)})", file=sys.stderr)
    print(file=sys.stderr)


def _apply_profile(name: str, *, debug: bool) -> str:
    """Load and install a profile; returns the name actually applied."""
    if not CONFIG.has_profile(name):
        name = "default"
    selected = CONFIG.load_settings(name)
    APPLY(selected)
    if debug:
        _rt_current().debug = True
        _debug_dump_profile(selected)
    set_int_str_limit(int(CFG("BEHAVIOUR.MAX_DIGITS", 100_000)))
    return name


def _run_one(text: str, args: argparse.Namespace, randbits) -> PrimalityResult:
    n = parse_int_or_expr(text)

    rounds = args.rounds if args.rounds is not None else int(CFG("MILLER_RABIN.ROUNDS", 0))
    find_divisor = False if args.no_divisor else bool(CFG("MILLER_RABIN.FIND_DIVISOR", True))

    t0 = time.perf_counter()
    result = primality_test(
        n,
        num_rounds=rounds or None,
        bases=_split_bases(args.bases),
        find_divisor=find_divisor,
        randbits=randbits,
    )
    elapsed = time.perf_counter() - t0

    verified = isprime(abs(n)) if args.verify else None
    if args.quiet:
        verdict = "composite" if result.is_composite else "probable prime"
        print(f"{abbr_int_fast(result.n, 12, 12, int(CFG('DISPLAY.ABBREVIATE_DIGITS', 60)))}: {verdict}")
    else:
        print_result(result, elapsed=elapsed, verified=verified)
    return result


# ---- main ----
def _main_impl(argv=None) -> int:

    colorama_init()
    _configure_text_streams()

    parser = _build_parser()
    args = parser.parse_args(argv)
    rt = _rt_current()
    rt.debug = bool(args.debug)

    _install_loud_error_handlers(args.debug)

    if not ensure_runtime_deps(strict=True):
        return 1

    ensure_workspace_seeded()

    profile, numbers = _resolve_inputs(args.items)
    cmd = (profile or "").lower()

    if cmd == "init":
        ws, copied = seed_workspace(overwrite=False)
        print(f"Workspace ready at: {ws}")
        print(f"Copied -> profiles: {copied.get('profiles', 0)}")
        return 0
    if cmd == "where":
        print(f"Workspace: {workspace_dir()}")
        return 0
    if cmd == "active":
        print(f"Active profile: {CONFIG.read_current_profile() or 'default'}")
        return 0
    if cmd == "profiles":
        print_profiles_with_descriptions()
        return 0

    if profile and not CONFIG.has_profile(profile):
        print(f"Unknown profile or invalid number: '{profile}'", file=sys.stderr)
        print("Available profiles: " + ", ".join(CONFIG.list_all_profiles()), file=sys.stderr)
        return 2

    # explicit → last-used → default
    profile_name = profile or CONFIG.read_current_profile() or "default"
    profile_name = _apply_profile(profile_name, debug=args.debug)
    if profile:
        CONFIG.write_current_profile(profile_name)

    randbits = random.Random(args.seed).getrandbits if args.seed is not None else None

    # --- one-shot path ---
    if numbers:
        for i, text in enumerate(numbers):
            if i and not args.quiet:
                print()
            _run_one(text, args, randbits)
        return 0

    # --- REPL ---
    print(f"{Fore.YELLOW}{Style.BRIGHT}montprime v{_ver} — Miller-Rabin primality testing{Style.RESET_ALL}")

    current_profile = profile_name
    while True:
        try:
            prompt = f"\nProfile: {current_profile} — Enter an integer, command or profile (h=Help, q=Quit): "
            user_input = input(prompt).strip()

            low = user_input.lower()
            if low in {"", "q", "quit"}:
                break

            if low in {"h", "help"}:
                parser.print_help()
                continue

            if low in {"p", "profiles"}:
                print_profiles_with_descriptions()
                continue

            if low in {"hist", "history"}:
                hist = get_history()
                if not hist:
                    print("History is empty.")
                for item in hist:
                    ts = time.strftime("%H:%M:%S", time.localtime(item.timestamp))
                    verdict = "prime" if item.probable_prime else "composite"
                    print(f"{ts}  n={abbr_int_fast(item.n):<25}  {verdict:<9}  profile={item.profile or '-'}")
                continue

            if low.startswith("debug"):
                parts = low.split()
                if len(parts) == 1 or parts[1] == "status":
                    print(f"Debug is currently {'ON' if rt.debug else 'OFF'}.")
                elif parts[1] == "on":
                    rt.debug = True
                    print("Debug mode enabled for this session.")
                elif parts[1] == "off":
                    rt.debug = False
                    print("Debug mode disabled for this session.")
                else:
                    print("Usage: DEBUG [on|off|status]")
                continue

            if CONFIG.has_profile(user_input):
                current_profile = _apply_profile(user_input, debug=rt.debug)
                CONFIG.write_current_profile(current_profile)
                print(f"Applied profile: {current_profile}")
                continue

            try:
                result = _run_one(user_input, args, randbits)
            except UserInputError as e:
                print(f"{Fore.RED}Invalid input:{Style.RESET_ALL} {e}", file=sys.stderr)
                continue
            add_to_history(result, current_profile)

        except (EOFError, KeyboardInterrupt):
            print()
            break
        except Exception as e:
            if rt.debug:
                traceback.print_exc()
            else:
                _print_user_error(f"{e.__class__.__name__}: {e}")
            continue

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
