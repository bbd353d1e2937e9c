"""
Catalog client exceptions.

Transport failures raise GraphAPIError (AuthenticationError for token and
permission problems). Partial failures inside a batch raise BatchError,
which lists every failed position. Layers that know more about where a
failure happened (which page, which batch chunk) add context without
changing the exception type.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from ..models.batch import ErrorDescriptor


class CatalogError(Exception):
    """Base class for every error raised by the catalog client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.context: List[str] = []

    def add_context(self, context: str) -> "CatalogError":
        self.context.append(context)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} ({'; '.join(self.context)})"


class GraphAPIError(CatalogError):
    """Non-success HTTP status, undecodable body, or network failure."""

    def __init__(self, error: ErrorDescriptor):
        super().__init__(error.describe())
        self.error = error

    @property
    def status_code(self) -> Optional[int]:
        return self.error.status

    @property
    def is_auth_error(self) -> bool:
        return self.error.is_auth_error


class AuthenticationError(GraphAPIError):
    """The access token is invalid, expired, or lacks a required permission."""


def raise_for_error(error: ErrorDescriptor) -> None:
    """Raise the GraphAPIError subtype matching the descriptor."""
    if error.is_auth_error:
        raise AuthenticationError(error)
    raise GraphAPIError(error)


@dataclass
class BatchFailure:
    """One failed position of a batch, tied back to the input that produced it."""
    index: int
    identifier: Any
    error: ErrorDescriptor

    def describe(self) -> str:
        return f"[{self.index}] {self.identifier}: {self.error.describe()}"


class BatchError(CatalogError):
    """
    One or more sub-operations in a batch failed.

    Successful sub-operations were applied by the provider and are not
    rolled back. failures lists exactly the positions that failed;
    succeeded holds (identifier, response body) for the ones that went
    through, e.g. the SKU and new product ID of each created product.
    """

    def __init__(
        self,
        operation: str,
        failures: List[BatchFailure],
        total: int,
        succeeded: Optional[List[Tuple[Any, Any]]] = None,
    ):
        self.operation = operation
        self.failures = failures
        self.total = total
        self.succeeded = succeeded or []

        lines = [f"{len(failures)} of {total} sub-requests failed during {operation}"]
        lines.extend(f"  {failure.describe()}" for failure in failures)
        super().__init__("\n".join(lines))

    @property
    def is_auth_error(self) -> bool:
        return any(failure.error.is_auth_error for failure in self.failures)

    @property
    def failed_identifiers(self) -> List[Any]:
        return [failure.identifier for failure in self.failures]
