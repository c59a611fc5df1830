"""
Utils package
"""

from .money import (
    ensure_cents,
    from_cents,
    kind_for_amount,
    normalize_amount_for_kind,
    to_cents,
)

__all__ = [
    "ensure_cents",
    "from_cents",
    "kind_for_amount",
    "normalize_amount_for_kind",
    "to_cents",
]
