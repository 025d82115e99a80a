"""
Derived availability.

A product with a stock counter is available iff the counter is positive; the
manual flag only matters when no counter is tracked. A cocktail is available
iff it is enabled and none of its *required* ingredients is unavailable.

Nothing here is cached: product stock changes independently of cocktail reads,
so callers recompute on every read.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy import case


@dataclass(frozen=True)
class IngredientAvailability:
    product_id: int
    product_name: str
    required: bool
    available: bool


def product_available(is_available: bool, stock_count: Optional[int]) -> bool:
    if stock_count is not None:
        return stock_count > 0
    return bool(is_available)


def missing_required(links: Iterable[IngredientAvailability]) -> List[IngredientAvailability]:
    return [link for link in links if link.required and not link.available]


def cocktail_available(is_enabled: bool, links: Iterable[IngredientAvailability]) -> bool:
    if not is_enabled:
        return False
    return not missing_required(links)


def product_available_sql(product_model):
    """Same rule as `product_available`, as a SQL expression over the products table."""
    return case(
        (product_model.stock_count.is_not(None), product_model.stock_count > 0),
        else_=product_model.is_available,
    )
