"""
File-backed document store.

Each collection is one JSON file ({id: document}) under the store directory.
A batch rewrites every touched collection file through a temporary file and
os.replace. Each file swap is atomic, but a batch touching several
collections is not: the files are replaced one after another, in the order
the batch first touches them, and a crash in between leaves the earlier
collections written and the later ones not. Callers that span collections
order their writes so the first one is the one that must survive. This keeps
the scheduler's cycle state durable across CLI invocations.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
from pathlib import Path

from ..errors import StoreUnavailableError
from .base import Condition, Document, DocumentStore, WriteOp, matches, sort_documents


class JsonDocumentStore(DocumentStore):
    """Store collections as JSON files in a directory.

    Attributes:
        root: Directory holding one <collection>.json file per collection
    """

    def __init__(self, root: Path | str, max_batch_size: int = 500):
        super().__init__(max_batch_size)
        self.root = Path(root)
        self._lock = asyncio.Lock()

    def _path(self, collection: str) -> Path:
        safe = collection.replace("/", "_")
        return self.root / f"{safe}.json"

    def _load(self, collection: str) -> dict[str, Document]:
        path = self._path(collection)
        try:
            if not path.exists():
                return {}
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StoreUnavailableError(f"Corrupt collection file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreUnavailableError(f"Corrupt collection file {path}: expected an object")
        return data

    def _save(self, collection: str, docs: dict[str, Document]) -> None:
        path = self._path(collection)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(docs, handle, ensure_ascii=False, default=str)
            os.replace(tmp, path)
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot write {path}: {exc}") from exc

    async def get(self, collection: str, ids: list[str]) -> dict[str, Document]:
        docs = self._load(collection)
        return {doc_id: docs[doc_id] for doc_id in ids if doc_id in docs}

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
        found = [(doc_id, doc) for doc_id, doc in self._load(collection).items() if matches(doc, where)]
        found = sort_documents(found, order_by, descending)
        return found[:limit] if limit is not None else found

    async def count(self, collection: str, where: list[Condition] | None = None) -> int:
        return sum(1 for doc in self._load(collection).values() if matches(doc, where))

    async def _apply(self, writes: list[WriteOp]) -> None:
        async with self._lock:
            touched: dict[str, dict[str, Document]] = {}
            for op in writes:
                if op.collection not in touched:
                    touched[op.collection] = self._load(op.collection)
                docs = touched[op.collection]
                if op.delete:
                    docs.pop(op.doc_id, None)
                elif op.merge and op.doc_id in docs:
                    docs[op.doc_id].update(copy.deepcopy(op.data))
                else:
                    docs[op.doc_id] = copy.deepcopy(op.data)
            for collection, docs in touched.items():
                self._save(collection, docs)
