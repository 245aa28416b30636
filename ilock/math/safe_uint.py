"""
ilock.math.safe_uint
====================

Checked unsigned-integer helpers for every balance, pool counter and reward
total in the engine.

- All amounts are **u128**: integers in ``[0, U128_MAX]``.
- "checked" variants raise `Overflow` / `Underflow` and never wrap.
- `try_add` returns ``(ok, value)`` so a caller can check an addition it will
  only perform after other validations pass.
- Integer-only; floats are rejected.
"""

from __future__ import annotations

from typing import Final, Tuple

from ilock.core.errors import Overflow, Underflow

U128_MAX: Final[int] = (1 << 128) - 1


def is_u128(x: object) -> bool:
    return isinstance(x, int) and not isinstance(x, bool) and 0 <= x <= U128_MAX


def require_u128(*xs: int) -> None:
    """Raise if any argument is not a u128 value (negative counts as underflow)."""
    for x in xs:
        if not isinstance(x, int) or isinstance(x, bool):
            raise TypeError(f"amount must be int, got {type(x).__name__}")
        if x < 0:
            raise Underflow("negative amount", value=x)
        if x > U128_MAX:
            raise Overflow("amount exceeds u128", value=x)


# ---------------------------------------------------------------------------
# Checked
# ---------------------------------------------------------------------------


def u128_add(x: int, y: int) -> int:
    """Checked add: raise Overflow when the sum leaves u128."""
    require_u128(x, y)
    s = x + y
    if s > U128_MAX:
        raise Overflow(lhs=x, rhs=y)
    return s


def u128_sub(x: int, y: int) -> int:
    """Checked sub: raise Underflow when y > x."""
    require_u128(x, y)
    if y > x:
        raise Underflow(lhs=x, rhs=y)
    return x - y


# ---------------------------------------------------------------------------
# Non-raising
# ---------------------------------------------------------------------------


def try_add(x: int, y: int) -> Tuple[bool, int]:
    if not (is_u128(x) and is_u128(y)):
        return False, 0
    s = x + y
    return (True, s) if s <= U128_MAX else (False, 0)


__all__ = [
    "U128_MAX",
    "is_u128",
    "require_u128",
    "u128_add",
    "u128_sub",
    "try_add",
]
