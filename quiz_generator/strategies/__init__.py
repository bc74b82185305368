"""Work partitioning strategies"""

from .selector import select_strategy

__all__ = [
    "select_strategy"
]
