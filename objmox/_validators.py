"""Shared validation helpers."""

from __future__ import annotations


def validate_call_count(count: int, *, name: str = "count") -> None:
    """Ensure *count* is a usable non-negative call count."""
    if isinstance(count, bool) or not isinstance(count, int):
        msg = f"{name} must be an integer"
        raise TypeError(msg)

    if count < 0:
        msg = f"{name} must be >= 0"
        raise ValueError(msg)


def validate_optional_size(size: int | None, *, name: str) -> None:
    """Ensure *size* is ``None`` or a positive integer."""
    if size is None:
        return
    if isinstance(size, bool) or not isinstance(size, int):
        msg = f"{name} must be an integer or None"
        raise TypeError(msg)
    if size <= 0:
        msg = f"{name} must be positive"
        raise ValueError(msg)
