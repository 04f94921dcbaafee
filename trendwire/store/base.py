"""
Abstract document store with batched writes.

The store is a collection/document key-value model. A single batch_write is
applied as one unit (fully atomic in memory, per collection file on disk) and
limited to max_batch_size operations; exceeding it is a caller
error (BatchTooLargeError). write_in_batches chunks arbitrary write lists
around that limit. Implementations raise StoreUnavailableError when the
backing storage cannot be reached, which is fatal for the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..errors import BatchTooLargeError

DEFAULT_MAX_BATCH_SIZE = 500

Document = dict[str, Any]

# (field, op, value) with op in: ==, !=, <, <=, >, >=, in
Condition = tuple[str, str, Any]


@dataclass
class WriteOp:
    """One operation inside a batch write.

    Attributes:
        collection: Target collection
        doc_id: Target document id
        data: Fields to write (ignored for deletes)
        merge: Merge into an existing document instead of replacing it
        delete: Delete the document
    """

    collection: str
    doc_id: str
    data: Document = field(default_factory=dict)
    merge: bool = True
    delete: bool = False


def matches(doc: Document, where: Iterable[Condition] | None) -> bool:
    """Evaluate query conditions against a document.

    A missing field only matches "== None" and "in" lists containing None.
    """
    for name, op, value in where or ():
        actual = doc.get(name)
        if op == "==":
            ok = actual == value
        elif op == "!=":
            ok = actual != value
        elif op == "in":
            ok = actual in value
        elif actual is None:
            ok = False
        elif op == "<":
            ok = actual < value
        elif op == "<=":
            ok = actual <= value
        elif op == ">":
            ok = actual > value
        elif op == ">=":
            ok = actual >= value
        else:
            raise ValueError(f"Unsupported query operator: {op}")
        if not ok:
            return False
    return True


class DocumentStore(ABC):
    """Async document store contract."""

    def __init__(self, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE):
        self.max_batch_size = max_batch_size

    @abstractmethod
    async def get(self, collection: str, ids: list[str]) -> dict[str, Document]:
        """Return the existing documents among ids, keyed by id."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, collection: str, ids: list[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def query(
        self,
        collection: str,
        where: list[Condition] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[tuple[str, Document]]:
        """Return (id, document) pairs matching every condition.

        Documents missing the order_by field sort last.
        """
        raise NotImplementedError

    @abstractmethod
    async def count(self, collection: str, where: list[Condition] | None = None) -> int:
        raise NotImplementedError

    async def batch_write(self, writes: list[WriteOp]) -> None:
        """Apply up to max_batch_size writes as one unit.

        Raises:
            BatchTooLargeError: If len(writes) exceeds max_batch_size
        """
        if len(writes) > self.max_batch_size:
            raise BatchTooLargeError(len(writes), self.max_batch_size)
        if writes:
            await self._apply(writes)

    @abstractmethod
    async def _apply(self, writes: list[WriteOp]) -> None:
        raise NotImplementedError


def sort_documents(
    docs: list[tuple[str, Document]], order_by: str | None, descending: bool
) -> list[tuple[str, Document]]:
    if order_by is None:
        return docs
    present = [pair for pair in docs if pair[1].get(order_by) is not None]
    missing = [pair for pair in docs if pair[1].get(order_by) is None]
    present.sort(key=lambda pair: pair[1][order_by], reverse=descending)
    return present + missing


async def write_in_batches(store: DocumentStore, writes: list[WriteOp]) -> int:
    """Apply writes in consecutive batches no larger than the store limit.

    Returns:
        Number of batches committed
    """
    size = store.max_batch_size
    batches = 0
    for start in range(0, len(writes), size):
        await store.batch_write(writes[start : start + size])
        batches += 1
    return batches
