"""
Product data models.

Pure data classes for catalog items as the rest of the application sees
them: prices in major units (e.g. dollars), availability derived from
inventory. Translation to and from the provider's wire fields lives in
catalog_manager.facebook.mapping.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ReviewStatus(str, Enum):
    """Provider-assigned moderation outcome."""
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ReviewStatus":
        """Map a raw provider value; absent or unrecognised values are pending."""
        if value:
            try:
                return cls(str(value).lower())
            except ValueError:
                pass
        return cls.PENDING


@dataclass
class ModerationStatus:
    """Review status plus the provider's rejection reasons, in order."""
    review_status: ReviewStatus = ReviewStatus.PENDING
    rejection_reasons: List[str] = field(default_factory=list)


# Product ID -> moderation status. IDs that could not be fetched are absent.
StatusSnapshot = Dict[str, ModerationStatus]


@dataclass
class NewProduct:
    """
    Product fields supplied by the caller when creating an item.

    The retailer ID (SKU) is not part of this: the client generates it.
    Validation (non-empty name/link/image, price > 0, inventory >= 0)
    is expected to have happened before the product reaches the client.
    """
    name: str
    link: str
    price: float            # Major units, e.g. 19.99
    currency: str
    image_url: str
    inventory: int = 0
    description: str = ""
    brand: str = ""
    additional_image_urls: List[str] = field(default_factory=list)
    video_url: Optional[str] = None

    @property
    def in_stock(self) -> bool:
        return self.inventory > 0


@dataclass
class Product:
    """
    Catalog item as stored by the provider.

    Field Groups:
    - Identity: id (provider-assigned), retailer_id (caller SKU, immutable)
    - Descriptive: name, description, brand, link, currency
    - Numeric: price (major units), inventory
    - Media: image_url, additional_image_urls, video_url
    - Moderation: review_status, rejection_reasons
    """

    # Identity
    id: str
    retailer_id: str

    # Descriptive
    name: str = ""
    description: str = ""
    brand: str = ""
    link: str = ""
    currency: str = ""

    # Numeric
    price: float = 0.0
    inventory: int = 0

    # Media
    image_url: str = ""
    additional_image_urls: List[str] = field(default_factory=list)
    video_url: Optional[str] = None

    # Moderation
    review_status: ReviewStatus = ReviewStatus.PENDING
    rejection_reasons: List[str] = field(default_factory=list)

    @property
    def in_stock(self) -> bool:
        return self.inventory > 0

    @property
    def availability(self) -> str:
        return "in stock" if self.in_stock else "out of stock"

    @property
    def moderation(self) -> ModerationStatus:
        return ModerationStatus(self.review_status, list(self.rejection_reasons))
