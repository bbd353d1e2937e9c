"""
Graph API Client

Transport for the Facebook Graph API: one authenticated HTTP call per
request, JSON or form-encoded bodies, uniform errors.
"""

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

import requests

from ..common.constants import GRAPH_API_VERSION, GRAPH_BASE_URL
from ..models.batch import RAW_BODY_PREVIEW, ErrorDescriptor
from .config import AuthPlacement
from .errors import GraphAPIError, raise_for_error

logger = logging.getLogger(__name__)


def encode_form(data: Dict[str, Any]) -> Dict[str, str]:
    """
    Flatten a payload for application/x-www-form-urlencoded bodies.

    Lists and dicts become JSON strings, booleans become true/false,
    None values are left out.
    """
    encoded = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, (list, dict)):
            encoded[key] = json.dumps(value)
        else:
            encoded[key] = str(value)
    return encoded


def _strip_access_token(url: str) -> str:
    """Drop an access_token the provider embedded in a cursor URL."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "access_token"]
    return urlunsplit(parts._replace(query=urlencode(query)))


class GraphAPIClient:
    """
    Client for the Graph API.

    Handles:
    - Authentication (bearer header or access_token query parameter)
    - JSON and form-encoded request bodies
    - Multipart batch submissions
    - Error decoding into GraphAPIError / AuthenticationError

    Nothing is retried: every failure is raised to the caller.

    Usage:
        client = GraphAPIClient(access_token="EAAB...")

        result = client.get("1234567890/products", {"fields": "id,name"})
        client.post("987654321", {"name": "Summer"})
        responses = client.post_batch([{"method": "DELETE", "relative_url": "42"}])
    """

    SUPPORTED_METHODS = ("GET", "POST", "DELETE")

    def __init__(
        self,
        access_token: str,
        base_url: str = GRAPH_BASE_URL,
        api_version: str = GRAPH_API_VERSION,
        auth_placement: AuthPlacement = AuthPlacement.HEADER,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the API client.

        Args:
            access_token: Graph API access token
            base_url: Graph API host
            api_version: API version path segment (e.g. "v19.0")
            auth_placement: Where the token is attached on every call
            timeout: Request timeout in seconds, None to wait indefinitely
            session: Optional pre-configured requests session
        """
        if not access_token:
            raise ValueError("An access token is required.")

        self.access_token = access_token
        self.auth_placement = AuthPlacement(auth_placement)
        self.timeout = timeout
        self.base_url = f"{base_url.rstrip('/')}/{api_version}"

        self.session = session or requests.Session()
        if self.auth_placement == AuthPlacement.HEADER:
            self.session.headers.update({"Authorization": f"Bearer {access_token}"})

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.session.close()

    def close(self):
        self.session.close()

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return _strip_access_token(path)
        if not path.strip("/"):
            return self.base_url
        return urljoin(self.base_url + "/", path.lstrip("/"))

    def _query(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        query = dict(params or {})
        if self.auth_placement == AuthPlacement.QUERY:
            query["access_token"] = self.access_token
        return query

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        form: bool = False,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make one authenticated API request.

        Args:
            method: HTTP method (GET, POST, DELETE)
            path: Path relative to the versioned base URL, or an absolute URL
            params: Query parameters
            data: Request body; JSON unless form=True
            form: Send data as application/x-www-form-urlencoded
            files: Multipart fields (takes precedence over data encoding)

        Returns:
            Parsed JSON response; {} for an empty body

        Raises:
            GraphAPIError: Non-success status, undecodable body, or network failure
            AuthenticationError: Provider reported a token/permission error
            ValueError: Unsupported method
        """
        method = method.upper()
        if method not in self.SUPPORTED_METHODS:
            raise ValueError(f"Unsupported method: {method}")

        url = self._build_url(path)
        query = self._query(params)
        logger.debug("%s %s", method, url)

        try:
            if method == "GET":
                response = self.session.get(url, params=query, timeout=self.timeout)
            elif method == "POST":
                if files is not None:
                    response = self.session.post(url, params=query, files=files, timeout=self.timeout)
                elif form:
                    response = self.session.post(
                        url, params=query, data=encode_form(data or {}), timeout=self.timeout
                    )
                else:
                    response = self.session.post(url, params=query, json=data, timeout=self.timeout)
            else:
                body = encode_form(data) if data else None
                response = self.session.delete(url, params=query, data=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error("Request failed: %s %s: %s", method, path, e)
            raise GraphAPIError(ErrorDescriptor(message=f"Request failed: {e}")) from e

        return self._parse_response(response, method, path)

    def _parse_response(self, response: requests.Response, method: str, path: str) -> Any:
        status = response.status_code

        if not 200 <= status < 300:
            text = response.text or ""
            try:
                payload = response.json()
            except ValueError:
                payload = None
            logger.error("API Error %d on %s %s: %s", status, method, path, text[:RAW_BODY_PREVIEW])
            raise_for_error(ErrorDescriptor.from_payload(status, payload, text or None))

        if not response.content or not response.content.strip():
            return {}

        try:
            return response.json()
        except ValueError:
            text = response.text or ""
            logger.error("Undecodable response body on %s %s", method, path)
            raise GraphAPIError(ErrorDescriptor(
                message=f"HTTP {status}: response body is not valid JSON: {text[:RAW_BODY_PREVIEW]}",
                status=status,
                raw_body=text,
            )) from None

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, data: Optional[Dict[str, Any]] = None, form: bool = False) -> Any:
        return self.request("POST", path, data=data, form=form)

    def delete(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("DELETE", path, data=data)

    def post_batch(self, envelopes: List[Dict[str, Any]]) -> List[Any]:
        """
        Submit one physical batch call.

        Args:
            envelopes: {"method", "relative_url", "body"?} objects

        Returns:
            The raw response array (elements still carry JSON-string bodies)
        """
        files = {
            "batch": (None, json.dumps(envelopes)),
            "include_headers": (None, "false"),
        }
        result = self.request("POST", "", files=files)

        if not isinstance(result, list):
            raise GraphAPIError(ErrorDescriptor(
                message="Batch response was not a list",
                raw_body=json.dumps(result)[:RAW_BODY_PREVIEW],
            ))
        return result

    def test_connection(self, node: str) -> bool:
        """
        Test API connection by fetching a node the token should see.

        Returns:
            True if connection successful
        """
        try:
            result = self.get(node, {"fields": "id,name"})
        except GraphAPIError as e:
            logger.error("Connection test failed: %s", e)
            return False
        logger.info("Connected to: %s", result.get("name", node) if isinstance(result, dict) else node)
        return True
