"""
Set Diff Engine

Converges a product set's membership to a desired list of product IDs.

Two write strategies exist because the provider's API offered both:

- DeclarativeMembership sends the full desired membership as an
  "is any of" filter with the set itself; the provider works out what
  to add and remove.
- ImperativeMembership reads the live membership, computes the
  difference, and issues explicit add/remove member calls.

Both are idempotent: repeating an update with the same IDs sends the
same filter, or finds nothing to add or remove.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from ..common.constants import SET_MEMBER_PAGE_SIZE
from ..models.batch import BatchSubRequest
from ..models.product_set import ProductSet
from .api_client import GraphAPIClient
from .batch import BatchExecutor
from .config import SetMembershipMode
from .pagination import Paginator
from .reconciler import reconcile

logger = logging.getLogger(__name__)

# No product has ID "0"; a filter on it matches nothing
EMPTY_FILTER_SENTINEL = "0"


@dataclass(frozen=True)
class MembershipDiff:
    to_add: FrozenSet[str]
    to_remove: FrozenSet[str]

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


def compute_membership_diff(current: Iterable[str], desired: Iterable[str]) -> MembershipDiff:
    """to_add = desired - current, to_remove = current - desired."""
    current_ids = frozenset(current)
    desired_ids = frozenset(desired)
    return MembershipDiff(
        to_add=desired_ids - current_ids,
        to_remove=current_ids - desired_ids,
    )


def membership_filter(desired: Iterable[str]) -> Dict[str, Any]:
    """
    Filter payload selecting exactly the desired product IDs.

    IDs are sorted so the same membership always yields the same filter.
    An empty membership still produces a filter (one that matches nothing);
    leaving the filter out would keep the old members.
    """
    ids = sorted(set(desired)) or [EMPTY_FILTER_SENTINEL]
    return {"product_item_id": {"is_any": ids}}


def membership_from_filter(filter_value: Any) -> Optional[FrozenSet[str]]:
    """
    Read a membership back out of a set's filter.

    Returns None when the filter is not a product_item_id "is_any" filter
    (e.g. a rule-based set created elsewhere).
    """
    if isinstance(filter_value, str):
        try:
            filter_value = json.loads(filter_value)
        except ValueError:
            return None
    if not isinstance(filter_value, dict):
        return None

    clause = filter_value.get("product_item_id")
    if not isinstance(clause, dict) or not isinstance(clause.get("is_any"), list):
        return None

    return frozenset(str(i) for i in clause["is_any"]) - {EMPTY_FILTER_SENTINEL}


class DeclarativeMembership:
    """Writes membership as a filter sent along with the set."""

    def __init__(self, api_client: GraphAPIClient, catalog_id: str):
        self.api_client = api_client
        self.catalog_id = catalog_id

    def create(self, name: str, product_ids: List[str]) -> ProductSet:
        payload = {"name": name, "filter": membership_filter(product_ids)}
        response = self.api_client.post(f"{self.catalog_id}/product_sets", payload)
        return ProductSet(id=str(response["id"]), name=name, product_ids=list(product_ids))

    def update(self, set_id: str, name: str, product_ids: List[str]) -> ProductSet:
        payload = {"name": name, "filter": membership_filter(product_ids)}
        self.api_client.post(set_id, payload)
        return ProductSet(id=set_id, name=name, product_ids=list(product_ids))


class ImperativeMembership:
    """Writes membership as explicit add/remove calls against the live list."""

    def __init__(
        self,
        api_client: GraphAPIClient,
        batch_executor: BatchExecutor,
        paginator: Paginator,
        catalog_id: str,
        member_page_size: int = SET_MEMBER_PAGE_SIZE,
    ):
        self.api_client = api_client
        self.batch_executor = batch_executor
        self.paginator = paginator
        self.catalog_id = catalog_id
        self.member_page_size = member_page_size

    def read_members(self, set_id: str) -> FrozenSet[str]:
        members = self.paginator.fetch_all(
            f"{set_id}/products", {"fields": "id", "limit": self.member_page_size}
        )
        return frozenset(str(member["id"]) for member in members)

    def plan_update(self, set_id: str, product_ids: Iterable[str]) -> MembershipDiff:
        return compute_membership_diff(self.read_members(set_id), product_ids)

    def create(self, name: str, product_ids: List[str]) -> ProductSet:
        response = self.api_client.post(f"{self.catalog_id}/product_sets", {"name": name})
        set_id = str(response["id"])
        self.apply(set_id, compute_membership_diff(frozenset(), product_ids))
        return ProductSet(id=set_id, name=name, product_ids=list(product_ids))

    def update(self, set_id: str, name: str, product_ids: List[str]) -> ProductSet:
        self.api_client.post(set_id, {"name": name})
        self.apply(set_id, self.plan_update(set_id, product_ids))
        return ProductSet(id=set_id, name=name, product_ids=list(product_ids))

    def apply(self, set_id: str, diff: MembershipDiff) -> None:
        """Issue the add and/or remove calls; an empty side is skipped."""
        sub_requests = []
        labels = []
        if diff.to_add:
            sub_requests.append(BatchSubRequest(
                "POST", f"{set_id}/products", {"product_ids": sorted(diff.to_add)}
            ))
            labels.append(f"add {len(diff.to_add)} product(s)")
        if diff.to_remove:
            sub_requests.append(BatchSubRequest(
                "DELETE", f"{set_id}/products", {"product_ids": sorted(diff.to_remove)}
            ))
            labels.append(f"remove {len(diff.to_remove)} product(s)")

        if not sub_requests:
            logger.debug("Set %s already has the requested members", set_id)
            return

        logger.debug("Set %s: adding %d, removing %d", set_id, len(diff.to_add), len(diff.to_remove))
        responses = self.batch_executor.execute(sub_requests)
        reconcile(responses, labels, operation=f"membership update of set {set_id}")


def build_membership_strategy(
    mode: SetMembershipMode,
    api_client: GraphAPIClient,
    batch_executor: BatchExecutor,
    paginator: Paginator,
    catalog_id: str,
    member_page_size: int = SET_MEMBER_PAGE_SIZE,
):
    """Return the membership writer for the configured provider mode."""
    if mode == SetMembershipMode.DECLARATIVE:
        return DeclarativeMembership(api_client, catalog_id)
    if mode == SetMembershipMode.IMPERATIVE:
        return ImperativeMembership(api_client, batch_executor, paginator, catalog_id, member_page_size)
    raise ValueError(f"Unknown set membership mode: {mode}")
