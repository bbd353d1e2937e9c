"""
Field mapping between the domain models and Graph API product items.

Prices are stored remotely in minor units (cents) and exposed in major
units; availability is always derived from inventory.
"""

import random
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from ..common.constants import RETAILER_ID_MAX, RETAILER_ID_MIN
from ..models.product import ModerationStatus, NewProduct, Product, ReviewStatus

PRODUCT_FIELDS = ",".join([
    "id",
    "retailer_id",
    "name",
    "description",
    "brand",
    "url",
    "price",
    "currency",
    "image_url",
    "additional_image_urls",
    "video",
    "inventory",
    "review_status",
    "errors",
])

STATUS_FIELDS = "id,review_status,errors"

NO_REASON_GIVEN = "No description provided."

# Domain field name -> Graph API field name, for sparse updates
UPDATABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "brand": "brand",
    "link": "url",
    "price": "price",
    "currency": "currency",
    "image_url": "image_url",
    "additional_image_urls": "additional_image_urls",
    "video_url": "video",
    "inventory": "inventory",
}

IMMUTABLE_FIELDS = {"id", "retailer_id"}


def to_minor_units(price: float) -> int:
    """19.99 -> 1999. Rounds to the nearest minor unit."""
    return int(round(float(price) * 100))


def from_minor_units(value: Any) -> float:
    """1999 or "1999" -> 19.99. Missing values read as 0."""
    if value is None or value == "":
        return 0.0
    try:
        return float(str(value).strip().replace(",", "")) / 100
    except ValueError:
        raise ValueError(f"Unrecognised price value: {value!r}") from None


def availability_for(inventory: int) -> str:
    return "in stock" if inventory > 0 else "out of stock"


def parse_rejection_reasons(errors: Any) -> List[str]:
    """Pull human-readable reasons out of a product's "errors" edge."""
    if not isinstance(errors, dict) or not isinstance(errors.get("data"), list):
        return []
    reasons = []
    for error in errors["data"]:
        if not isinstance(error, dict):
            continue
        reasons.append(error.get("error_message") or error.get("description") or NO_REASON_GIVEN)
    return reasons


def _video_url(video: Any) -> Optional[str]:
    if isinstance(video, dict):
        video = video.get("data")
    if isinstance(video, list) and video and isinstance(video[0], dict):
        return video[0].get("url")
    return None


def _video_payload(url: str) -> List[Dict[str, str]]:
    return [{"url": url}]


def status_from_graph(data: Mapping[str, Any]) -> ModerationStatus:
    return ModerationStatus(
        review_status=ReviewStatus.parse(data.get("review_status")),
        rejection_reasons=parse_rejection_reasons(data.get("errors")),
    )


def product_from_graph(data: Mapping[str, Any]) -> Product:
    """Map one Graph API product item to a Product."""
    status = status_from_graph(data)
    return Product(
        id=str(data["id"]),
        retailer_id=str(data.get("retailer_id") or ""),
        name=data.get("name") or "",
        description=data.get("description") or "",
        brand=data.get("brand") or "",
        link=data.get("url") or "",
        currency=data.get("currency") or "",
        price=from_minor_units(data.get("price")),
        inventory=int(data.get("inventory") or 0),
        image_url=data.get("image_url") or "",
        additional_image_urls=list(data.get("additional_image_urls") or []),
        video_url=_video_url(data.get("video")),
        review_status=status.review_status,
        rejection_reasons=status.rejection_reasons,
    )


def product_to_graph(product: NewProduct, retailer_id: str) -> Dict[str, Any]:
    """Create payload for a new product item."""
    payload = {
        "retailer_id": retailer_id,
        "name": product.name,
        "description": product.description,
        "brand": product.brand,
        "url": product.link,
        "price": to_minor_units(product.price),
        "currency": product.currency,
        "image_url": product.image_url,
        "inventory": product.inventory,
        "availability": availability_for(product.inventory),
        "condition": "new",
    }
    if product.additional_image_urls:
        payload["additional_image_urls"] = list(product.additional_image_urls)
    if product.video_url:
        payload["video"] = _video_payload(product.video_url)
    return payload


def partial_update_payload(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Sparse update payload holding only the supplied fields.

    A new inventory always travels with its derived availability.

    Raises:
        ValueError: For immutable or unknown field names
    """
    payload: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in IMMUTABLE_FIELDS:
            raise ValueError(f"{key} cannot be changed once a product exists")
        if key not in UPDATABLE_FIELDS:
            raise ValueError(f"Unknown product field: {key}")
        if value is None:
            continue

        remote = UPDATABLE_FIELDS[key]
        if key == "price":
            payload[remote] = to_minor_units(value)
        elif key == "inventory":
            payload[remote] = int(value)
            payload["availability"] = availability_for(int(value))
        elif key == "video_url":
            payload[remote] = _video_payload(value)
        elif key == "additional_image_urls":
            payload[remote] = list(value)
        else:
            payload[remote] = value
    return payload


def generate_retailer_id(existing: Set[str], rng: Optional[random.Random] = None) -> str:
    """
    Random six-digit SKU not present in existing.

    Raises:
        RuntimeError: If every candidate is taken
    """
    rng = rng or random
    in_range = sum(1 for sku in existing if sku.isdigit() and RETAILER_ID_MIN <= int(sku) <= RETAILER_ID_MAX)
    if in_range >= RETAILER_ID_MAX - RETAILER_ID_MIN + 1:
        raise RuntimeError("No free retailer IDs left")
    while True:
        candidate = str(rng.randint(RETAILER_ID_MIN, RETAILER_ID_MAX))
        if candidate not in existing:
            return candidate


def assign_retailer_ids(
    count: int,
    known: Iterable[str],
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Generate count SKUs, unique against known and against each other."""
    taken = set(known)
    assigned = []
    for _ in range(count):
        retailer_id = generate_retailer_id(taken, rng)
        taken.add(retailer_id)
        assigned.append(retailer_id)
    return assigned
