"""``StrEnum`` for interpreters that predate ``enum.StrEnum``."""

try:
    from enum import StrEnum  # type: ignore[attr-defined]  # Py ≥ 3.11
except ImportError:
    from strenum import StrEnum  # type: ignore[import-untyped] # Py 3.10

__all__ = ["StrEnum"]
