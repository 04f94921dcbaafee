"""In-process document store, used by tests and one-shot runs."""

from __future__ import annotations

import asyncio
import copy

from .base import Condition, Document, DocumentStore, WriteOp, matches, sort_documents


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store. Documents are deep-copied in and out."""

    def __init__(self, max_batch_size: int = 500):
        super().__init__(max_batch_size)
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = asyncio.Lock()
        self.batch_sizes: list[int] = []

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    async def get(self, collection: str, ids: list[str]) -> dict[str, Document]:
        docs = self._collection(collection)
        return {doc_id: copy.deepcopy(docs[doc_id]) for doc_id in ids if doc_id in docs}

    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        await self._apply([WriteOp(collection, doc_id, data, merge=merge)])

    async def delete(self, collection: str, ids: list[str]) -> None:
        await self._apply([WriteOp(collection, doc_id, delete=True) for doc_id in ids])

    async def query(
        self,
        collection: str,
        where: list[Condition] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[tuple[str, Document]]:
        found = [
            (doc_id, copy.deepcopy(doc))
            for doc_id, doc in self._collection(collection).items()
            if matches(doc, where)
        ]
        found = sort_documents(found, order_by, descending)
        return found[:limit] if limit is not None else found

    async def count(self, collection: str, where: list[Condition] | None = None) -> int:
        return sum(1 for doc in self._collection(collection).values() if matches(doc, where))

    async def _apply(self, writes: list[WriteOp]) -> None:
        async with self._lock:
            self.batch_sizes.append(len(writes))
            for op in writes:
                docs = self._collection(op.collection)
                if op.delete:
                    docs.pop(op.doc_id, None)
                elif op.merge and op.doc_id in docs:
                    docs[op.doc_id].update(copy.deepcopy(op.data))
                else:
                    docs[op.doc_id] = copy.deepcopy(op.data)
