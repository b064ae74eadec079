"""
Effective-setting resolution across configuration tiers.

Scalar settings (timeout, retry count, content type, content encoding, data
type) take the first value that is set among: the call's own value, the
interface base value, the process-wide default. Headers and interceptors are
additive instead; see `merge_headers` and `interceptors.merge_interceptors`.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import TypeVar

T = TypeVar("T")

Header = tuple[str, str]


class Tier(Enum):
    """Where an effective value came from."""

    CALL = "call"
    BASE = "base"
    DEFAULT = "default"


def is_set(value: object) -> bool:
    """A value counts as set when it is a positive integer or a non-blank string."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    if isinstance(value, str):
        return bool(value.strip())
    return True


def effective_with_tier(
    per_call: T | None, base: T | None, default: T | None
) -> tuple[T | None, Tier | None]:
    for tier, value in ((Tier.CALL, per_call), (Tier.BASE, base), (Tier.DEFAULT, default)):
        if is_set(value):
            return value, tier
    return None, None


def effective(per_call: T | None, base: T | None, default: T | None) -> T | None:
    """
    Resolve a scalar setting.

    Example:
        effective(5, 10, 20)        # 5
        effective(None, 10, 20)     # 10
        effective(None, None, None) # None (field omitted)
    """
    value, _ = effective_with_tier(per_call, base, default)
    return value


def merge_headers(*tiers: Iterable[Header]) -> tuple[Header, ...]:
    """Concatenate header tiers in order; colliding names are all kept."""
    merged: list[Header] = []
    for tier in tiers:
        merged.extend(tier)
    return tuple(merged)
