"""Checked integer arithmetic for ledger amounts."""

from .safe_uint import U128_MAX, is_u128, require_u128, try_add, u128_add, u128_sub

__all__ = ["U128_MAX", "is_u128", "require_u128", "try_add", "u128_add", "u128_sub"]
