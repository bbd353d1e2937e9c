"""Product set data model."""

from dataclasses import dataclass, field
from typing import FrozenSet, List


@dataclass
class ProductSet:
    """
    Named grouping of catalog items.

    product_ids is an unordered membership; duplicates are dropped on
    construction while keeping first-seen order for stable display.
    """
    id: str
    name: str
    product_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.product_ids = list(dict.fromkeys(self.product_ids))

    @property
    def members(self) -> FrozenSet[str]:
        return frozenset(self.product_ids)
