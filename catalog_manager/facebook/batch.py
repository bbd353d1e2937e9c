"""
Batch Envelope Builder

Packs logical sub-operations into as many physical Graph API batch calls
as the per-call limit requires, runs them, and returns one response list
aligned with the input: response i always belongs to sub-request i.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any, Dict, List, Sequence, TypeVar
from urllib.parse import urlencode

from ..common.constants import MAX_BATCH_SIZE
from ..models.batch import BatchSubRequest, BatchSubResponse
from .api_client import GraphAPIClient, encode_form
from .errors import GraphAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def split_batches(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive chunks of at most size elements."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def build_envelope(sub_request: BatchSubRequest) -> Dict[str, Any]:
    """Wire form of one sub-request; bodies are form-encoded strings."""
    envelope = {
        "method": sub_request.method.upper(),
        "relative_url": sub_request.relative_url,
    }
    if sub_request.body:
        envelope["body"] = urlencode(encode_form(sub_request.body))
    return envelope


def align_responses(expected: int, raw_responses: List[Any]) -> List[BatchSubResponse]:
    """
    Decode a physical batch response into exactly `expected` sub-responses.

    Short responses are padded with "missing" entries so every
    sub-request still has a position to report against.
    """
    if len(raw_responses) > expected:
        logger.warning(
            "Batch returned %d responses for %d sub-requests; ignoring the extra ones",
            len(raw_responses), expected,
        )
    responses = [BatchSubResponse.from_raw(raw) for raw in raw_responses[:expected]]
    responses.extend(BatchSubResponse.missing() for _ in range(expected - len(responses)))
    return responses


class BatchExecutor:
    """
    Runs sub-requests through the Graph API batch endpoint.

    Usage:
        executor = BatchExecutor(api_client, max_batch_size=50)
        responses = executor.execute([
            BatchSubRequest("DELETE", "111"),
            BatchSubRequest("DELETE", "222"),
        ])
        # responses[0] belongs to "111", responses[1] to "222"
    """

    def __init__(
        self,
        api_client: GraphAPIClient,
        max_batch_size: int = MAX_BATCH_SIZE,
        max_workers: int = 4,
    ):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        self.api_client = api_client
        self.max_batch_size = max_batch_size
        self.max_workers = max(1, max_workers)

    def execute(self, sub_requests: Sequence[BatchSubRequest]) -> List[BatchSubResponse]:
        """
        Execute sub-requests, splitting them into physical calls.

        Physical calls are independent and run concurrently; results are
        reassembled in input order. A physical call that fails as a whole
        (HTTP error, network failure, expired token) does not abort the
        others: each of its positions becomes a failed sub-response
        carrying that call's error, so the outcome of every sub-request
        stays attributable.

        Args:
            sub_requests: Logical operations, in caller order

        Returns:
            One BatchSubResponse per sub-request, same order
        """
        if not sub_requests:
            return []

        chunks = split_batches(sub_requests, self.max_batch_size)
        logger.debug("Submitting %d sub-requests in %d batch call(s)", len(sub_requests), len(chunks))

        def run(indexed_chunk):
            index, chunk = indexed_chunk
            return self._run_chunk(index, len(chunks), chunk)

        if len(chunks) == 1:
            results = [run((0, chunks[0]))]
        else:
            workers = min(self.max_workers, len(chunks))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(run, enumerate(chunks)))

        responses: List[BatchSubResponse] = []
        for chunk_responses in results:
            responses.extend(chunk_responses)
        return responses

    def _run_chunk(self, index: int, total: int, chunk: List[BatchSubRequest]) -> List[BatchSubResponse]:
        first = index * self.max_batch_size
        envelopes = [build_envelope(sub_request) for sub_request in chunk]

        try:
            raw_responses = self.api_client.post_batch(envelopes)
        except GraphAPIError as e:
            where = f"batch call {index + 1}/{total}, sub-requests {first}-{first + len(chunk) - 1}"
            logger.warning("Batch call %d/%d failed, marking %d sub-requests as failed: %s",
                           index + 1, total, len(chunk), e)
            error = replace(e.error, message=f"{e.error.message} ({where})")
            return [BatchSubResponse.failed(error) for _ in chunk]

        return align_responses(len(chunk), raw_responses)
