"""
Response Reconciler

Pairs batch sub-responses with the inputs that produced them (by
position, never by arrival order) and turns failures into BatchError.
"""

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar

from ..models.batch import BatchSubResponse
from .errors import BatchError, BatchFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition(
    responses: Sequence[BatchSubResponse],
    inputs: Sequence[T],
    identify: Optional[Callable[[T], Any]] = None,
) -> Tuple[List[Tuple[T, Any]], List[BatchFailure]]:
    """
    Split aligned responses into successes and failures.

    Args:
        responses: Sub-responses in submission order
        inputs: The domain inputs, same order and length
        identify: Maps an input to the identifier reported on failure
            (defaults to the input itself)

    Returns:
        ([(input, decoded body)], [BatchFailure])
    """
    if len(responses) != len(inputs):
        raise ValueError(
            f"Cannot reconcile {len(responses)} responses against {len(inputs)} inputs"
        )

    identify = identify or (lambda item: item)
    successes: List[Tuple[T, Any]] = []
    failures: List[BatchFailure] = []

    for index, (response, item) in enumerate(zip(responses, inputs)):
        error = response.error()
        if error is None:
            successes.append((item, response.body))
        else:
            failures.append(BatchFailure(index=index, identifier=identify(item), error=error))

    return successes, failures


def reconcile(
    responses: Sequence[BatchSubResponse],
    inputs: Sequence[T],
    operation: str,
    identify: Optional[Callable[[T], Any]] = None,
) -> List[Any]:
    """
    Return every decoded body, or raise if any position failed.

    Raises:
        BatchError: Lists each failed position with its input identifier;
            is_auth_error is set if any of them is an auth-class error, and
            succeeded keeps the identifier and body of every other position
    """
    successes, failures = partition(responses, inputs, identify)

    if failures:
        identify = identify or (lambda item: item)
        succeeded = [(identify(item), body) for item, body in successes]
        error = BatchError(operation, failures, total=len(inputs), succeeded=succeeded)
        logger.warning("%d of %d sub-requests failed during %s", len(failures), len(inputs), operation)
        raise error

    return [body for _, body in successes]
