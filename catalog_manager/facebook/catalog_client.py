"""
Catalog Client

Public surface for managing a Facebook commerce catalog: products, product
sets and moderation status. Composes the transport, batch builder,
paginator, reconciler and set diff engine; the provider-era specific wire
strategies are picked once, from ClientConfig.modes, at construction.

Write operations fail loudly (BatchError lists every failed item).
Status refresh is best-effort: IDs that cannot be read are left out.
"""

import logging
import random
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urlencode

import requests

from ..common.activity_log import ActivityLog
from ..models.batch import BatchSubRequest, BatchSubResponse
from ..models.product import NewProduct, Product, StatusSnapshot
from ..models.product_set import ProductSet
from .api_client import GraphAPIClient
from .batch import BatchExecutor
from .config import ClientConfig, SetListingMode, StatusRefreshMode
from .errors import AuthenticationError, BatchError, CatalogError, GraphAPIError
from .mapping import (
    PRODUCT_FIELDS,
    STATUS_FIELDS,
    assign_retailer_ids,
    partial_update_payload,
    product_from_graph,
    product_to_graph,
    status_from_graph,
)
from .pagination import Paginator
from .reconciler import partition, reconcile
from .set_diff import build_membership_strategy, membership_from_filter

logger = logging.getLogger(__name__)


class CatalogClient:
    """
    Client for one product catalog.

    Usage:
        client = CatalogClient(access_token="EAAB...", catalog_id="1234567890")

        products = client.list_products()
        created = client.add_products([NewProduct(name="Mug", link=..., price=9.99, ...)])
        client.update_set(set_id, "Kitchen", [p.id for p in created])

        snapshot = client.refresh_status([p.id for p in products])
    """

    def __init__(
        self,
        access_token: str,
        catalog_id: str,
        config: Optional[ClientConfig] = None,
        activity_log: Optional[ActivityLog] = None,
        session: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the client.

        Args:
            access_token: Graph API access token (read-only for the client's lifetime)
            catalog_id: Product catalog ID
            config: Provider settings and modes; defaults when omitted
            activity_log: Optional sink for human-readable progress messages
            session: Optional requests session (shared connection pool)
            rng: Random source for SKU generation
        """
        if not access_token or not catalog_id:
            raise ValueError("API Token and Catalog ID are required.")

        self.catalog_id = catalog_id
        self.config = config or ClientConfig()
        self.activity_log = activity_log
        self.rng = rng

        self.api = GraphAPIClient(
            access_token,
            base_url=self.config.base_url,
            api_version=self.config.api_version,
            auth_placement=self.config.auth_placement,
            timeout=self.config.timeout,
            session=session,
        )
        self.batches = BatchExecutor(self.api, self.config.max_batch_size, self.config.max_workers)
        self.paginator = Paginator(self.api, self.config.page_size)

        modes = self.config.modes
        self.membership = build_membership_strategy(
            modes.set_membership,
            self.api,
            self.batches,
            self.paginator,
            catalog_id,
            self.config.set_member_page_size,
        )
        self._list_sets = {
            SetListingMode.BATCHED_MEMBER_READS: self._list_sets_batched,
            SetListingMode.EMBEDDED: self._list_sets_embedded,
        }[modes.set_listing]
        self._refresh_status = {
            StatusRefreshMode.BATCHED: self._refresh_status_batched,
            StatusRefreshMode.CONCURRENT: self._refresh_status_concurrent,
        }[modes.status_refresh]

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.api.close()

    def close(self):
        self.api.close()

    # ------------------------------------------------------------------
    # Activity reporting
    # ------------------------------------------------------------------

    def _info(self, message: str) -> None:
        if self.activity_log is not None:
            self.activity_log.info(message)
        else:
            logger.info(message)

    def _success(self, message: str) -> None:
        if self.activity_log is not None:
            self.activity_log.success(message)
        else:
            logger.info(message)

    def _warn(self, message: str) -> None:
        if self.activity_log is not None:
            self.activity_log.warn(message)
        else:
            logger.warning(message)

    @contextmanager
    def _reporting_failure(self, message: str):
        """Record a failed operation, then let the error propagate."""
        try:
            yield
        except CatalogError as e:
            if self.activity_log is not None:
                self.activity_log.error(message, e)
            else:
                logger.error("%s: %s", message, e)
            raise

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def test_connection(self) -> bool:
        return self.api.test_connection(self.catalog_id)

    def list_products(self) -> List[Product]:
        """Every product in the catalog, re-fetched from the provider."""
        self._info("Fetching all products from catalog (with pagination)...")
        with self._reporting_failure("Failed to fetch products"):
            items = self.paginator.fetch_all(
                f"{self.catalog_id}/products", {"fields": PRODUCT_FIELDS}
            )
        products = [product_from_graph(item) for item in items]
        self._success(f"Successfully fetched a total of {len(products)} products.")
        return products

    def add_products(
        self,
        items: Sequence[NewProduct],
        known_retailer_ids: Optional[Iterable[str]] = None,
    ) -> List[Product]:
        """
        Create products, each under a freshly generated SKU.

        Args:
            items: Products to create (already validated by the caller)
            known_retailer_ids: SKUs already in use; fetched from the
                catalog when omitted

        Returns:
            The created products, in input order

        Raises:
            BatchError: Some items were rejected. The others were created;
                their SKUs and new IDs are in BatchError.succeeded
        """
        if not items:
            return []

        self._info(f"Attempting to add {len(items)} product(s)...")
        with self._reporting_failure("Failed to add products batch"):
            if known_retailer_ids is None:
                known_retailer_ids = {product.retailer_id for product in self.list_products()}
            retailer_ids = assign_retailer_ids(len(items), known_retailer_ids, self.rng)

            sub_requests = [
                BatchSubRequest("POST", f"{self.catalog_id}/products", product_to_graph(item, sku))
                for item, sku in zip(items, retailer_ids)
            ]
            responses = [_require_created_id(response) for response in self.batches.execute(sub_requests)]
            bodies = reconcile(responses, retailer_ids, operation="add products")

        created = [
            _created_product(str(body["id"]), sku, item)
            for item, sku, body in zip(items, retailer_ids, bodies)
        ]
        self._success(f"Successfully added {len(created)} product(s).")
        return created

    def delete_products(self, product_ids: Sequence[str]) -> List[Any]:
        return self._delete_nodes(product_ids, "product")

    def update_product(self, product_id: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Update only the given fields of one product.

        Field names are the Product attribute names (name, price,
        inventory, ...). Changing inventory also sends the matching
        availability. Nothing is sent when no field has a value.
        """
        payload = partial_update_payload(fields)
        if not payload:
            logger.debug("No fields to update for product %s", product_id)
            return {}

        self._info(f"Updating product {product_id}...")
        with self._reporting_failure(f"Failed to update product {product_id}"):
            result = self.api.post(product_id, payload)
        self._success(f"Successfully updated product {product_id}.")
        return result

    def update_products(self, updates: Mapping[str, Mapping[str, Any]]) -> List[Any]:
        """
        Apply sparse updates to many products in batched calls.

        Args:
            updates: Product ID -> fields to change

        Raises:
            BatchError: Lists the product IDs whose update failed
        """
        payloads = {product_id: partial_update_payload(fields) for product_id, fields in updates.items()}
        product_ids = [product_id for product_id, payload in payloads.items() if payload]
        if not product_ids:
            return []

        self._info(f"Updating {len(product_ids)} product(s)...")
        with self._reporting_failure("Failed to update products batch"):
            sub_requests = [
                BatchSubRequest("POST", product_id, payloads[product_id]) for product_id in product_ids
            ]
            bodies = reconcile(self.batches.execute(sub_requests), product_ids, operation="update products")
        self._success(f"Successfully updated {len(product_ids)} product(s).")
        return bodies

    # ------------------------------------------------------------------
    # Product sets
    # ------------------------------------------------------------------

    def list_sets(self) -> List[ProductSet]:
        """Every product set with its full member list."""
        self._info("Fetching product sets...")
        with self._reporting_failure("Failed to fetch product sets"):
            sets = self._list_sets()
        self._success(f"Successfully fetched {len(sets)} product sets.")
        return sets

    def _list_sets_batched(self) -> List[ProductSet]:
        basic_sets = self.paginator.fetch_all(
            f"{self.catalog_id}/product_sets", {"fields": "id,name,filter"}
        )
        if not basic_sets:
            return []

        set_ids = [str(product_set["id"]) for product_set in basic_sets]
        member_query = urlencode({"fields": "id", "limit": self.config.set_member_page_size})
        sub_requests = [BatchSubRequest("GET", f"{set_id}/products?{member_query}") for set_id in set_ids]

        self._info(f"Fetching products for {len(set_ids)} set(s)...")
        bodies = reconcile(self.batches.execute(sub_requests), set_ids, operation="read set members")

        return [
            self._product_set(product_set, self._member_ids(body, set_id))
            for set_id, product_set, body in zip(set_ids, basic_sets, bodies)
        ]

    def _list_sets_embedded(self) -> List[ProductSet]:
        fields = f"id,name,filter,products.limit({self.config.set_member_page_size}){{id}}"
        sets = self.paginator.fetch_all(f"{self.catalog_id}/product_sets", {"fields": fields})
        return [
            self._product_set(
                product_set,
                self._member_ids(product_set.get("products") or {}, product_set["id"]),
            )
            for product_set in sets
        ]

    def _member_ids(self, first_page: Any, set_id: str) -> List[str]:
        members = self.paginator.follow(first_page, source=f"members of set {set_id}")
        return [str(member["id"]) for member in members]

    def _product_set(self, item: Mapping[str, Any], member_ids: List[str]) -> ProductSet:
        """
        Build a ProductSet from its live member list.

        When the set carries a product ID filter, the IDs it selects are
        compared with the live members; the live list wins, a mismatch
        (e.g. a filtered product that was since deleted) is reported.
        """
        product_set = ProductSet(id=str(item["id"]), name=item.get("name", ""), product_ids=member_ids)
        declared = membership_from_filter(item.get("filter"))
        if declared is not None and declared != product_set.members:
            self._warn(
                f'Set "{product_set.name}" (ID: {product_set.id}) filter selects {len(declared)} '
                f"product(s) but {len(product_set.members)} are members."
            )
        return product_set

    def create_set(self, name: str, product_ids: Iterable[str]) -> ProductSet:
        self._info(f'Creating new product set "{name}"...')
        with self._reporting_failure(f'Failed to create set "{name}"'):
            product_set = self.membership.create(name, list(product_ids))
        self._success(f'Successfully created set "{name}".')
        return product_set

    def update_set(self, set_id: str, name: str, product_ids: Iterable[str]) -> ProductSet:
        """Rename a set and make its membership exactly product_ids."""
        self._info(f'Updating set "{name}" (ID: {set_id})...')
        with self._reporting_failure(f'Failed to update set "{name}"'):
            product_set = self.membership.update(set_id, name, list(product_ids))
        self._success(f'Successfully updated set "{name}".')
        return product_set

    def delete_sets(self, set_ids: Sequence[str]) -> List[Any]:
        return self._delete_nodes(set_ids, "set")

    def _delete_nodes(self, node_ids: Sequence[str], kind: str) -> List[Any]:
        if not node_ids:
            return []

        self._info(f"Attempting to delete {len(node_ids)} {kind}(s)...")
        with self._reporting_failure(f"Failed to delete {kind}s batch"):
            sub_requests = [BatchSubRequest("DELETE", node_id) for node_id in node_ids]
            bodies = reconcile(
                self.batches.execute(sub_requests), list(node_ids), operation=f"delete {kind}s"
            )
        self._success(f"Successfully deleted {len(node_ids)} {kind}(s).")
        return bodies

    # ------------------------------------------------------------------
    # Moderation status
    # ------------------------------------------------------------------

    def refresh_status(self, product_ids: Iterable[str]) -> StatusSnapshot:
        """
        Re-read review status and rejection reasons.

        Best-effort: a product whose status cannot be read is absent from
        the result. Authentication errors are still raised so the caller
        can ask for a new token.
        """
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}

        self._info(f"Refreshing statuses for {len(ids)} product(s)...")
        with self._reporting_failure("Failed to refresh product statuses"):
            snapshot = self._refresh_status(ids)

        missing = len(ids) - len(snapshot)
        if missing:
            self._warn(f"Could not refresh status for {missing} product(s).")
        self._success(f"Successfully refreshed statuses for {len(snapshot)} product(s).")
        return snapshot

    def _refresh_status_batched(self, ids: List[str]) -> StatusSnapshot:
        query = urlencode({"fields": STATUS_FIELDS})
        sub_requests = [BatchSubRequest("GET", f"{product_id}?{query}") for product_id in ids]
        responses = self.batches.execute(sub_requests)
        successes, failures = partition(responses, ids)

        auth_failures = [failure for failure in failures if failure.error.is_auth_error]
        if auth_failures:
            raise BatchError("status refresh", auth_failures, total=len(ids))
        for failure in failures:
            logger.warning("Status refresh skipped %s: %s", failure.identifier, failure.error.describe())

        return {
            product_id: status_from_graph(body)
            for product_id, body in successes
            if isinstance(body, dict)
        }

    def _refresh_status_concurrent(self, ids: List[str]) -> StatusSnapshot:
        def fetch(product_id: str) -> Optional[Dict[str, Any]]:
            try:
                return self.api.get(product_id, {"fields": STATUS_FIELDS})
            except AuthenticationError:
                raise
            except GraphAPIError as e:
                logger.warning("Status refresh skipped %s: %s", product_id, e)
                return None

        workers = min(self.config.max_workers, len(ids))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            bodies = list(pool.map(fetch, ids))

        return {
            product_id: status_from_graph(body)
            for product_id, body in zip(ids, bodies)
            if isinstance(body, dict)
        }


def _created_product(product_id: str, retailer_id: str, item: NewProduct) -> Product:
    return Product(
        id=product_id,
        retailer_id=retailer_id,
        name=item.name,
        description=item.description,
        brand=item.brand,
        link=item.link,
        currency=item.currency,
        price=item.price,
        inventory=item.inventory,
        image_url=item.image_url,
        additional_image_urls=list(item.additional_image_urls),
        video_url=item.video_url,
    )


def _require_created_id(response: BatchSubResponse) -> BatchSubResponse:
    """A create that reports success but returns no product ID counts as failed."""
    if response.ok and not (isinstance(response.body, dict) and response.body.get("id")):
        return replace(response, problem="Create response did not include a product ID")
    return response
