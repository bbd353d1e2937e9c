"""
Client configuration.

The provider's API changed shape over time (how set membership is
written, whether set listings embed their members, how statuses are
refreshed). Each variant is a named mode chosen once, when the client
is built, so call sites never branch on provider era.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ..common.config_loader import get_section, load_config
from ..common.constants import (
    DEFAULT_PAGE_SIZE,
    GRAPH_API_VERSION,
    GRAPH_BASE_URL,
    MAX_BATCH_SIZE,
    SET_MEMBER_PAGE_SIZE,
)


class AuthPlacement(str, Enum):
    HEADER = "header"   # Authorization: Bearer <token>
    QUERY = "query"     # ?access_token=<token>


class SetMembershipMode(str, Enum):
    DECLARATIVE = "declarative"   # send an "is any of" filter with the set
    IMPERATIVE = "imperative"     # explicit add/remove member calls


class SetListingMode(str, Enum):
    BATCHED_MEMBER_READS = "batched_member_reads"   # one batched read per set
    EMBEDDED = "embedded"                           # members nested in the listing


class StatusRefreshMode(str, Enum):
    BATCHED = "batched"         # one batch GET per ID
    CONCURRENT = "concurrent"   # N independent GETs in parallel


def _enum_value(enum_cls, value, key: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Invalid value for {key}: {value!r} (expected one of: {allowed})") from None


@dataclass
class ProviderModes:
    set_membership: SetMembershipMode = SetMembershipMode.DECLARATIVE
    set_listing: SetListingMode = SetListingMode.BATCHED_MEMBER_READS
    status_refresh: StatusRefreshMode = StatusRefreshMode.CONCURRENT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderModes":
        defaults = cls()
        return cls(
            set_membership=_enum_value(
                SetMembershipMode,
                data.get("set_membership", defaults.set_membership.value),
                "provider_modes.set_membership",
            ),
            set_listing=_enum_value(
                SetListingMode,
                data.get("set_listing", defaults.set_listing.value),
                "provider_modes.set_listing",
            ),
            status_refresh=_enum_value(
                StatusRefreshMode,
                data.get("status_refresh", defaults.status_refresh.value),
                "provider_modes.status_refresh",
            ),
        )


@dataclass
class ClientConfig:
    """Everything the catalog client needs besides the credentials."""

    # Graph API
    base_url: str = GRAPH_BASE_URL
    api_version: str = GRAPH_API_VERSION
    auth_placement: AuthPlacement = AuthPlacement.HEADER
    timeout: Optional[float] = None     # None waits indefinitely

    # Batching
    max_batch_size: int = MAX_BATCH_SIZE
    max_workers: int = 4

    # Pagination
    page_size: int = DEFAULT_PAGE_SIZE
    set_member_page_size: int = SET_MEMBER_PAGE_SIZE

    modes: ProviderModes = field(default_factory=ProviderModes)

    def __post_init__(self):
        if self.max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """Build a config from the parsed YAML structure; missing keys keep defaults."""
        graph = get_section(data, "graph")
        batch = get_section(data, "batch")
        pagination = get_section(data, "pagination")
        defaults = cls()

        timeout = graph.get("timeout", defaults.timeout)
        return cls(
            base_url=graph.get("base_url", defaults.base_url).rstrip("/"),
            api_version=graph.get("api_version", defaults.api_version),
            auth_placement=_enum_value(
                AuthPlacement,
                graph.get("auth_placement", defaults.auth_placement.value),
                "graph.auth_placement",
            ),
            timeout=float(timeout) if timeout is not None else None,
            max_batch_size=int(batch.get("max_batch_size", defaults.max_batch_size)),
            max_workers=int(batch.get("max_workers", defaults.max_workers)),
            page_size=int(pagination.get("page_size", defaults.page_size)),
            set_member_page_size=int(
                pagination.get("set_member_page_size", defaults.set_member_page_size)
            ),
            modes=ProviderModes.from_dict(get_section(data, "provider_modes")),
        )


def load_client_config(filename: str = "catalog.yaml") -> ClientConfig:
    """Load ClientConfig from a YAML file in the config/ directory."""
    return ClientConfig.from_dict(load_config(filename))


@dataclass
class Credentials:
    access_token: str
    catalog_id: str

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Credentials":
        """
        Read FB_ACCESS_TOKEN and FB_CATALOG_ID, loading a .env file first.

        Raises:
            ValueError: If either variable is missing
        """
        load_dotenv(dotenv_path)
        access_token = os.environ.get("FB_ACCESS_TOKEN", "").strip()
        catalog_id = os.environ.get("FB_CATALOG_ID", "").strip()
        if not access_token or not catalog_id:
            raise ValueError("FB_ACCESS_TOKEN and FB_CATALOG_ID must be set")
        return cls(access_token=access_token, catalog_id=catalog_id)
