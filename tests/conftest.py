"""Shared test fixtures."""

import json
import threading
from unittest.mock import MagicMock
from urllib.parse import parse_qsl, urlencode, urlsplit

import pytest

from catalog_manager.facebook import CatalogClient, ClientConfig, ProviderModes
from catalog_manager.models import NewProduct

GRAPH_URL = "https://graph.facebook.com/v19.0"
CATALOG_ID = "900100"


@pytest.fixture
def make_response():
    """Factory for mocked requests.Response objects."""
    def _make(status_code=200, json_body=None, text=None):
        response = MagicMock()
        response.status_code = status_code
        if text is None:
            text = json.dumps(json_body) if json_body is not None else ""
        response.text = text
        response.content = text.encode("utf-8")
        if json_body is not None:
            response.json.return_value = json_body
        else:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        return response
    return _make


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self.text = json.dumps(payload)
        self.content = self.text.encode("utf-8")
        self._payload = payload

    def json(self):
        return self._payload


def _error(status, message, code=100, error_type="GraphMethodException"):
    return status, {"error": {"message": message, "type": error_type, "code": code}}


class FakeCatalogSession:
    """
    In-memory Graph API catalog behind a requests.Session interface.

    Supports the product, product set, member, status and batch endpoints
    the client uses. Failures are injected per node ID (fail_nodes) or per
    product listing page (fail_product_pages, 1-based) or per whole batch
    call (fail_batch_calls, 1-based, in arrival order).
    """

    def __init__(self, catalog_id=CATALOG_ID):
        self.catalog_id = catalog_id
        self.headers = {}
        self.products = {}
        self.sets = {}
        self.calls = []
        self.fail_nodes = {}
        self.fail_product_pages = set()
        self.reject_names = set()
        self.fail_batch_calls = set()
        self.set_filters = {}
        self._next_id = 1000
        self._lock = threading.Lock()

    # Seeding helpers

    def add_product(self, retailer_id, **fields):
        product_id = self._new_id()
        self.products[product_id] = dict(
            {"id": product_id, "retailer_id": retailer_id, "name": f"Product {retailer_id}",
             "price": 1000, "currency": "USD", "inventory": 1},
            **fields,
        )
        return product_id

    def add_set(self, name, members=()):
        set_id = self._new_id()
        self.sets[set_id] = {"name": name, "members": set(members)}
        return set_id

    def _new_id(self):
        self._next_id += 1
        return str(self._next_id)

    # requests.Session interface

    def get(self, url, params=None, timeout=None):
        return self._call("GET", url, params, None)

    def post(self, url, params=None, data=None, json=None, files=None, timeout=None):
        if files is not None:
            return self._batch(files)
        return self._call("POST", url, params, json if json is not None else data)

    def delete(self, url, params=None, data=None, timeout=None):
        return self._call("DELETE", url, params, data)

    def close(self):
        pass

    # Routing

    def _call(self, method, url, params, body):
        parts = urlsplit(url)
        query = dict(parse_qsl(parts.query))
        query.update(params or {})
        path = parts.path.split("/v19.0", 1)[-1]
        with self._lock:
            self.calls.append((method, path, query, body))
            status, payload = self.handle(method, path, query, body or {})
        return FakeResponse(status, payload)

    def _batch(self, files):
        envelopes = json.loads(files["batch"][1])
        results = []
        with self._lock:
            self.calls.append(("BATCH", "/", {}, envelopes))
            if len(self.batch_calls()) in self.fail_batch_calls:
                return FakeResponse(*_error(500, "An unexpected error has occurred.", code=2))
            for envelope in envelopes:
                parts = urlsplit("/" + envelope["relative_url"])
                body = dict(parse_qsl(envelope.get("body", "")))
                status, payload = self.handle(envelope["method"], parts.path, dict(parse_qsl(parts.query)), body)
                results.append({"code": status, "body": json.dumps(payload)})
        return FakeResponse(200, results)

    def handle(self, method, path, query, body):
        segments = [s for s in path.split("/") if s]
        node = segments[0] if segments else ""
        edge = segments[1] if len(segments) > 1 else None

        if node in self.fail_nodes:
            return self.fail_nodes[node]

        if node == self.catalog_id and edge == "products":
            if method == "GET":
                return self._page(sorted(self.products.values(), key=lambda p: int(p["id"])),
                                  path, query, fail_pages=self.fail_product_pages)
            return self._create_product(body)
        if node == self.catalog_id and edge == "product_sets":
            if method == "GET":
                return self._list_sets(path, query)
            return self._create_set(body)
        if node in self.sets and edge == "products":
            return self._set_members(method, node, path, query, body)
        if node in self.sets:
            return self._update_or_delete_set(method, node, body)
        if node in self.products:
            return self._product_node(method, node, body)
        return _error(404, f"Unsupported get request. Object with ID '{node}' does not exist")

    def _page(self, items, path, query, fail_pages=()):
        limit = int(query.get("limit", 25))
        offset = int(query.get("after", 0))
        if offset // limit + 1 in fail_pages:
            return _error(500, "An unexpected error has occurred.", code=2, error_type="OAuthException")
        page = {"data": items[offset:offset + limit]}
        if offset + limit < len(items):
            next_query = {k: v for k, v in query.items() if k != "access_token"}
            next_query.update({"after": offset + limit, "access_token": "leaked"})
            page["paging"] = {"next": f"{GRAPH_URL}{path}?{urlencode(next_query)}"}
        return 200, page

    def _create_product(self, body):
        retailer_id = body.get("retailer_id")
        if body.get("name") in self.reject_names:
            return _error(400, f"Invalid image URL for {body['name']}", code=100)
        if any(p["retailer_id"] == retailer_id for p in self.products.values()):
            return _error(400, "Duplicate retailer_id", code=10800)
        product_id = self._new_id()
        product = {key: value for key, value in body.items() if key != "availability"}
        product.update(id=product_id, price=int(body["price"]), inventory=int(body["inventory"]))
        for key in ("additional_image_urls", "video"):
            if isinstance(product.get(key), str):
                product[key] = json.loads(product[key])
        self.products[product_id] = product
        return 200, {"id": product_id}

    def _product_node(self, method, node, body):
        if method == "DELETE":
            del self.products[node]
            return 200, {"success": True}
        if method == "POST":
            self.products[node].update(body)
            return 200, {"success": True}
        product = self.products[node]
        return 200, {"id": node, "review_status": product.get("review_status"), "errors": product.get("errors")}

    def _members(self, set_id):
        return [{"id": product_id} for product_id in sorted(self.sets[set_id]["members"])]

    def _list_sets(self, path, query):
        items = []
        for set_id, product_set in self.sets.items():
            item = {"id": set_id, "name": product_set["name"]}
            if "filter" in query.get("fields", "") and set_id in self.set_filters:
                item["filter"] = self.set_filters[set_id]
            if "products" in query.get("fields", ""):
                item["products"] = {"data": self._members(set_id)}
            items.append(item)
        return self._page(items, path, query)

    @staticmethod
    def _filter_members(body):
        product_filter = body["filter"]
        if isinstance(product_filter, str):
            product_filter = json.loads(product_filter)
        return set(product_filter["product_item_id"]["is_any"]) - {"0"}

    def _create_set(self, body):
        set_id = self._new_id()
        members = self._filter_members(body) if "filter" in body else set()
        self.sets[set_id] = {"name": body["name"], "members": members}
        if "filter" in body:
            self.set_filters[set_id] = body["filter"]
        return 200, {"id": set_id}

    def _update_or_delete_set(self, method, set_id, body):
        if method == "DELETE":
            del self.sets[set_id]
            return 200, {"success": True}
        self.sets[set_id]["name"] = body.get("name", self.sets[set_id]["name"])
        if "filter" in body:
            self.sets[set_id]["members"] = self._filter_members(body)
            self.set_filters[set_id] = body["filter"]
        return 200, {"success": True}

    def _set_members(self, method, set_id, path, query, body):
        if method == "GET":
            return self._page(self._members(set_id), path, query)
        product_ids = set(json.loads(body["product_ids"]))
        if method == "POST":
            self.sets[set_id]["members"] |= product_ids
        else:
            self.sets[set_id]["members"] -= product_ids
        return 200, {"success": True}

    def batch_calls(self):
        return [call for call in self.calls if call[0] == "BATCH"]


@pytest.fixture
def fake_session():
    return FakeCatalogSession()


@pytest.fixture
def make_client(fake_session):
    """Build a CatalogClient against the fake catalog with the given modes."""
    def _make(activity_log=None, rng=None, page_size=100, max_batch_size=50, set_member_page_size=5000,
              max_workers=4, **modes):
        config = ClientConfig(max_batch_size=max_batch_size, max_workers=max_workers, page_size=page_size,
                              set_member_page_size=set_member_page_size, modes=ProviderModes.from_dict(modes))
        return CatalogClient("EAAB-test", CATALOG_ID, config=config,
                             activity_log=activity_log, session=fake_session, rng=rng)
    return _make


@pytest.fixture
def new_product():
    """Create a valid product ready for submission."""
    return NewProduct(
        name="Ceramic Mug",
        link="https://shop.example.com/mug",
        price=19.99,
        currency="USD",
        image_url="https://res.cloudinary.com/demo/mug.jpg",
        inventory=5,
        description="Stoneware mug, 350ml",
        brand="Acme",
    )
