"""
Chunked bulk writes.

The tabular-data API accepts at most ``batch_size`` records per create call.
Chunks are written one after another, never concurrently, and the created
record ids are collected in input order. Nothing is rolled back on failure.
"""

from typing import Any, Dict, Iterator, List, Sequence, TypeVar

from socialsync.errors import GatewayError, PartialBatchError
from socialsync.logging import get_logger

logger = get_logger("socialsync.batching")

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 10


def chunked(records: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("size must be >= 1")
    for start in range(0, len(records), size):
        yield list(records[start : start + size])


async def batch_create(
    gateway,
    table: str,
    records: Sequence[Dict[str, Any]],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> List[str]:
    """Create ``records`` in ``table`` chunk by chunk and return their ids.

    If a chunk fails after earlier chunks were committed, ``PartialBatchError``
    is raised with the ids written so far. A failure on the first chunk
    propagates unchanged since nothing was committed.
    """
    chunks = list(chunked(records, batch_size))
    created_ids: List[str] = []

    for index, chunk in enumerate(chunks):
        logger.log_batch_chunk(table, index, len(chunks), len(chunk))
        try:
            response = await gateway.request("POST", table, body={"records": chunk})
        except GatewayError as e:
            if index == 0:
                raise
            raise PartialBatchError(created_ids, index, len(chunks), e) from e

        for record in (response or {}).get("records", []):
            created_ids.append(record["id"])

    return created_ids
