# runtime.py
from __future__ import annotations

from contextvars import ContextVar
from dataclasses import asdict as _asdict
from dataclasses import dataclass, field
from importlib.util import find_spec
from typing import Any

from colorama import Fore, Style

# Values used when no profile provides them
DEFAULTS: dict[str, Any] = {
    "MILLER_RABIN": {"ROUNDS": 0, "FIND_DIVISOR": True},
    "BEHAVIOUR": {"DEBUG": False, "MAX_DIGITS": 100_000},
    "DISPLAY": {"ABBREVIATE_DIGITS": 60, "SHOW_WITNESS": True},
}


@dataclass
class Runtime:
    profile_name: str = "default"
    settings: dict[str, Any] = field(default_factory=dict)
    debug: bool = False  # per-round trace on stderr

    def apply(self, settings: Any) -> None:
        self.profile_name = (
            getattr(settings, "name", None)
            or getattr(settings, "_source", None)
            or "default"
        )

        if hasattr(settings, "as_dict") and callable(settings.as_dict):
            cfg = settings.as_dict()
        elif isinstance(settings, dict):
            cfg = settings
        else:
            # grab UPPERCASE attributes from simple objects / modules
            cfg = {k: getattr(settings, k) for k in dir(settings) if k.isupper()}

        try:
            self.settings = dict(cfg)  # ensure plain dict
        except (TypeError, ValueError):
            self.settings = _asdict(cfg) if hasattr(cfg, "__dataclass_fields__") else {}

        # sync runtime flags from profile
        dbg = self.get("BEHAVIOUR.DEBUG", None)
        if isinstance(dbg, bool):
            self.debug = dbg

    def get(self, key: str, default: Any = None) -> Any:
        """Support dotted lookups, e.g., 'MILLER_RABIN.ROUNDS'."""
        if not key:
            return default
        cur = self.settings
        if isinstance(key, str) and "." in key:
            for part in key.split("."):
                if isinstance(cur, dict) and part in cur:
                    cur = cur[part]
                else:
                    return _default_for(key, default)
            return cur
        return cur.get(key, _default_for(key, default))


def _default_for(key: str, default: Any) -> Any:
    """Explicit default wins; otherwise fall back to DEFAULTS."""
    if default is not None:
        return default
    cur: Any = DEFAULTS
    for part in key.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur[part]
        else:
            return None
    return cur


# --- Context management ---

_current_runtime: ContextVar[Runtime | None] = ContextVar("montprime_runtime", default=None)


def current() -> Runtime:
    rt = _current_runtime.get()
    if rt is None:
        rt = Runtime()
        _current_runtime.set(rt)
    return rt


def reset() -> None:
    """Drop the runtime of the current context (fresh defaults on next use)."""
    _current_runtime.set(None)


def APPLY(settings: Any) -> None:
    current().apply(settings)


def CFG(key: str, default: Any = None) -> Any:
    return current().get(key, default)


# ---- Dependency check --------------------------------------------------------

def ensure_runtime_deps(strict: bool = True) -> bool:
    """
    Verify runtime deps of the CLI are available without importing them.
    If strict=True, prints a friendly error and returns False when missing.
    """
    required = ("sympy",)
    missing = [name for name in required if find_spec(name) is None]

    if not missing:
        return True

    msg = (
        f"{Fore.RED}{Style.BRIGHT}\nMissing dependencies:{Style.RESET_ALL} "
        + ", ".join(missing)
        + "\nInstall with: "
        + f"{Fore.YELLOW}pip install " + " ".join(missing) + f"{Style.RESET_ALL}"
    )
    print(msg)
    return not strict
