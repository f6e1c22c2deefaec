from .connection import get_db
from .schema import init_db
from .migrations import run_migrations
from .documents import (
    SERVER_TIMESTAMP,
    collection_of,
    delete_document,
    get_document,
    list_documents,
    set_document,
)

__all__ = [
    "get_db",
    "init_db",
    "run_migrations",
    "SERVER_TIMESTAMP",
    "collection_of",
    "delete_document",
    "get_document",
    "list_documents",
    "set_document",
]
