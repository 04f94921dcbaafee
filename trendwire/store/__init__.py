"""
Document store abstraction and persistence helpers.

The core pipeline only talks to DocumentStore; InMemoryDocumentStore and
JsonDocumentStore are the bundled backends.
"""

from .base import DocumentStore, WriteOp, write_in_batches
from .json_file import JsonDocumentStore
from .memory import InMemoryDocumentStore
from .repository import ArticleRepository, CycleStore, HealthStateStore

__all__ = [
    "DocumentStore",
    "WriteOp",
    "write_in_batches",
    "InMemoryDocumentStore",
    "JsonDocumentStore",
    "ArticleRepository",
    "CycleStore",
    "HealthStateStore",
]
