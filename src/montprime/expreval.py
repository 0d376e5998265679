# src/montprime/expreval.py
"""
Coercion of caller input to a plain Python int.

Accepted:
  * int (bool is rejected)
  * objects implementing __index__ (gmpy2.mpz, numpy integers, ...)
  * str: plain / grouped / prefixed literals, or a safe integer expression
    such as "2**127 - 1", "10**100 + 267", "1e6+3", "30!+1"
"""

from __future__ import annotations

import ast
import math
import operator as op
import re

from montprime.runtime import CFG
from montprime.utility import InputFormatError, dec_digits, set_int_str_limit

# ---- simple number parsing helpers ----
_THIN_SPACES = ("\u2009", "\u202F", "\u00A0")  # thin, narrow no-break, no-break
_SEP_CLASS = r"[ ,._\u00A0\u2009\u202F]"      # spaces/commas/dots/underscores & NBSP variants
_GROUPED_RE = re.compile(rf"^[+-]?\d{{1,3}}(?:{_SEP_CLASS}\d{{3}})+$")

# ---- allowed operators (safe subset) ----
_ALLOWED_BINOPS = {
    ast.Add:      op.add,
    ast.Sub:      op.sub,
    ast.Mult:     op.mul,
    ast.FloorDiv: op.floordiv,
    ast.LShift:   op.lshift,
    ast.RShift:   op.rshift,
    ast.BitAnd:   op.and_,
    ast.BitXor:   op.xor,
    ast.BitOr:    op.or_,
}
_RING_OPS = (ast.Add, ast.Sub, ast.Mult)
_ALLOWED_UNARYOPS = {
    ast.UAdd: op.pos,
    ast.USub: op.neg,
}

_MAX_NODES = 256  # sanity guard
_FAKE_FACT = "__fact__"

_SCI_NOTATION_TOKEN = re.compile(
    r"""
    (?<![\w.])          # not immediately after a word char or dot
    ([+\-]?)            # optional sign
    (\d+)               # mantissa (digits)
    [eE]
    ([+\-]?\d+)         # exponent (optional sign + digits)
    (?![\w.])           # not immediately before a word char or dot
    """,
    re.VERBOSE,
)


class _IntExprError(Exception):
    pass


def _max_digits() -> int:
    return int(CFG("BEHAVIOUR.MAX_DIGITS", 100_000))


def _too_many_digits(limit: int) -> InputFormatError:
    return InputFormatError(
        f"number has more than {limit} decimal digits. "
        "Increase BEHAVIOUR.MAX_DIGITS in the profile or pass a smaller value."
    )


def _would_exceed_digit_limit_for_pow(base: int, exp: int, limit: int) -> bool:
    """
    Cheap lower bound on the decimal digits of base**exp, using
    base**exp >= 2**exp for |base| >= 2 and log10(2) ~ 30103/100000.
    """
    if exp <= 0 or abs(base) <= 1:
        return False
    return 1 + (exp * 30103) // 100000 > limit


def _would_exceed_digit_limit_for_binop(op_type: type, left: int, right: int, limit: int) -> bool:
    """
    Lower bound on the decimal digits of left << right and left * right,
    checked before the operation allocates anything.
    """
    if left == 0:
        return False
    if op_type is ast.LShift:
        bits = left.bit_length() - 1 + right
    elif op_type is ast.Mult and right != 0:
        bits = left.bit_length() + right.bit_length() - 2
    else:
        return False
    return 1 + (bits * 30103) // 100000 > limit


def _rewrite_scientific_notation(expr: str) -> str:
    """
    Rewrite '1e3', '2E5', '-3e10' into exact integer math:
        1e3 -> 10**(3),  2e5 -> (2)*10**(5)
    Negative exponents are not integers and are rejected.
    """

    def repl(m: re.Match) -> str:
        sign, mant, exp_str = m.group(1), m.group(2), m.group(3)
        exp = int(exp_str)
        if exp < 0:
            raise _IntExprError("scientific notation with negative exponent is not an integer")
        if int(mant) == 0:
            return "0"
        full_mant = (sign or "") + mant
        if full_mant == "1":
            return f"10**({exp})"
        return f"({full_mant})*10**({exp})"

    return _SCI_NOTATION_TOKEN.sub(repl, expr)


def _rewrite_factorial(expr: str) -> str:
    """
    Rewrite postfix factorial 'x!' into '__fact__(x)' so the AST keeps
    precedence. Supports '5!' and '(3+2)!'; rejects '!5', '3!!', '(3!)!'.
    """
    out: list[str] = []
    pos = 0  # start of the next chunk to copy

    for i, ch in enumerate(expr):
        if ch != "!":
            continue

        j = i - 1
        while j >= 0 and expr[j].isspace():
            j -= 1
        if j < 0:
            raise _IntExprError("factorial '!' requires a left operand")

        if expr[j] == ")":
            level = 0
            k = j
            while k >= 0:
                if expr[k] == ")":
                    level += 1
                elif expr[k] == "(":
                    level -= 1
                    if level == 0:
                        break
                k -= 1
            if k < 0:
                raise _IntExprError("unbalanced parentheses before '!'")
            start = k
        else:
            if not (expr[j].isalnum() or expr[j] == "_"):
                raise _IntExprError("factorial '!' has invalid left operand")
            k = j
            while k >= 0 and (expr[k].isalnum() or expr[k] == "_"):
                k -= 1
            start = k + 1

        if start < pos:
            raise _IntExprError("nested factorial '!' is not supported")

        out.append(expr[pos:start])
        out.append(f"{_FAKE_FACT}({expr[start:j + 1]})")
        pos = i + 1

    out.append(expr[pos:])
    return "".join(out)


def _eval_int_expr(expr: str) -> int:
    """
    Evaluate a *safe* integer expression.

    Allowed: integer literals, parentheses, + - * // % ** << >> & ^ |,
             unary +/-, and the __fact__(...) wrapper for factorial.
    Disallowed: names, other calls, attributes, floats, negative exponents.
    BEHAVIOUR.MAX_DIGITS is enforced on literals, on powers, shifts and
    products before they are computed, and on the result.
    """
    limit = _max_digits()
    expr = _rewrite_factorial(_rewrite_scientific_notation(expr))

    try:
        tree = ast.parse(expr.strip(), mode="eval")
    except SyntaxError as e:
        raise _IntExprError("invalid integer expression") from e

    if sum(1 for _ in ast.walk(tree)) > _MAX_NODES:
        raise _IntExprError("expression too large")

    def _eval(node, *, modulus: int | None = None) -> int:
        if isinstance(node, ast.Constant):
            val = node.value
            if isinstance(val, bool) or not isinstance(val, int):
                raise _IntExprError("non-integer constant in integer expression")
            if dec_digits(val) > limit:
                raise _too_many_digits(limit)
            return val

        if isinstance(node, ast.UnaryOp) and type(node.op) in _ALLOWED_UNARYOPS:
            return _ALLOWED_UNARYOPS[type(node.op)](_eval(node.operand, modulus=modulus))

        if isinstance(node, ast.BinOp):
            op_type = type(node.op)

            if op_type is ast.Pow:
                base = _eval(node.left, modulus=modulus)
                exp = _eval(node.right)
                if exp < 0:
                    raise InputFormatError("negative exponents are not allowed in integer expressions")
                # a ** b % m never builds a ** b
                if modulus is not None:
                    return pow(base, exp, modulus)
                if _would_exceed_digit_limit_for_pow(base, exp, limit):
                    raise _too_many_digits(limit)
                return pow(base, exp)

            if op_type is ast.Mod:
                m = _eval(node.right)
                if m == 0:
                    raise _IntExprError("modulus by zero is not allowed")
                return _eval(node.left, modulus=m) % m

            if op_type in _ALLOWED_BINOPS:
                # only ring operations may work on reduced operands
                inner = modulus if op_type in _RING_OPS else None
                left = _eval(node.left, modulus=inner)
                right = _eval(node.right, modulus=inner)
                if op_type is ast.FloorDiv and right == 0:
                    raise _IntExprError("division by zero")
                if op_type in (ast.LShift, ast.RShift) and right < 0:
                    raise _IntExprError("negative shift count")
                if _would_exceed_digit_limit_for_binop(op_type, left, right, limit):
                    raise _too_many_digits(limit)
                return _ALLOWED_BINOPS[op_type](left, right)

        if isinstance(node, ast.Call):
            if isinstance(node.func, ast.Name) and node.func.id == _FAKE_FACT and len(node.args) == 1 \
                    and not node.keywords:
                val = _eval(node.args[0])
                if val < 0:
                    raise _IntExprError("factorial requires non-negative integer")
                # digits of val! from lgamma, before building it
                if val > 1 and math.lgamma(val + 1) / math.log(10) > limit + 1:
                    raise _too_many_digits(limit)
                return math.factorial(val)
            raise _IntExprError("function calls are not allowed")

        raise _IntExprError(f"unsupported syntax: {type(node).__name__}")

    value = _eval(tree.body)

    if dec_digits(value) > limit:
        raise _too_many_digits(limit)
    return value


def _parse_int_literal(text: str, limit: int) -> int | None:
    """Accepts: 42  -7  1_000_000  0xFF  0b1010  123.456.789  123 456 789
       Rejects: 3.14  1,23  12.34.56  0xG1"""
    s = text.strip()
    if not s:
        return None

    for ch in _THIN_SPACES:
        s = s.replace(ch, " ")

    if s.lower().lstrip("+-").startswith(("0x", "0b", "0o")):
        try:
            value = int(s.replace("_", ""), 0)
        except ValueError:
            return None
        if dec_digits(value) > limit:
            raise _too_many_digits(limit)
        return value

    if re.fullmatch(r"[+-]?\d[\d_]*", s):
        digits = s.lstrip("+-").replace("_", "")
    elif _GROUPED_RE.match(s):
        digits = re.sub(_SEP_CLASS, "", s.lstrip("+-"))
    else:
        return None

    # counted on the text so oversized input is never converted
    digits = digits.lstrip("0") or "0"
    if len(digits) > limit:
        raise _too_many_digits(limit)
    value = int(digits)
    return -value if s.startswith("-") else value


def _abbr_text(text: str, keep: int = 24) -> str:
    """repr(text), shortened to head…tail for long input."""
    s = repr(text)
    if len(s) <= 2 * keep + 1:
        return s
    return f"{s[:keep]}…{s[-keep:]} ({len(text)} chars)"


# ---- public entry points ----

def parse_int_or_expr(text: str) -> int:
    """Parse a literal or a safe integer expression; raise InputFormatError otherwise."""
    limit = _max_digits()
    # decimal literals up to the profile limit must survive int() and ast.parse()
    set_int_str_limit(limit)

    n = _parse_int_literal(text, limit)
    if n is not None:
        return n

    try:
        return _eval_int_expr(text)
    except (_IntExprError, ZeroDivisionError) as e:
        raise InputFormatError(f"cannot interpret {_abbr_text(text)} as an integer ({e})") from None


def coerce_int(value: object) -> int:
    """Normalize an int-like value to int (see module docstring)."""
    if isinstance(value, bool):
        raise InputFormatError(f"expected an integer, got {type(value).__name__}")
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        return parse_int_or_expr(value)
    try:
        return op.index(value)
    except TypeError:
        raise InputFormatError(f"expected an integer, got {type(value).__name__}") from None
