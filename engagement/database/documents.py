#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Document store on top of SQLite.

Documents are JSON objects addressed by a slash-separated path with an even
number of segments (``collection/doc`` or ``collection/doc/sub/doc``). Writes
follow document-database merge-set semantics: with ``merge=True`` nested maps
are merged key by key and every other value (lists included) is replaced.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from engagement.utils import EngagementError, utc_now_iso


class _ServerTimestamp:
    """Placeholder resolved to the write time when a document is stored."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def collection_of(path: str) -> Tuple[str, str]:
    segments = [segment for segment in path.strip("/").split("/") if segment]
    if not segments or len(segments) % 2 != 0:
        raise EngagementError("DOCUMENT_PATH_INVALID", f"Not a document path: {path!r}")
    return "/".join(segments[:-1]), segments[-1]


def _resolve_placeholders(value: Any, now: str) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {key: _resolve_placeholders(item, now) for key, item in value.items()}
    if isinstance(value, list):
        return [_resolve_placeholders(item, now) for item in value]
    return value


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def get_document(conn: sqlite3.Connection, path: str) -> Optional[Dict[str, Any]]:
    collection_of(path)
    row = conn.execute("SELECT data FROM documents WHERE path = ?", (path.strip("/"),)).fetchone()
    return json.loads(row["data"]) if row else None


def set_document(
    conn: sqlite3.Connection,
    path: str,
    data: Dict[str, Any],
    merge: bool = True,
) -> Dict[str, Any]:
    """Write one document in a single statement and return the stored body."""
    if not isinstance(data, dict):
        raise EngagementError("DOCUMENT_INVALID", "Document body must be an object")
    collection, doc_id = collection_of(path)
    key = path.strip("/")
    now = utc_now_iso()
    body = _resolve_placeholders(data, now)
    if merge:
        existing = get_document(conn, key)
        if existing is not None:
            body = _deep_merge(existing, body)
    payload = json.dumps(body, ensure_ascii=False)
    conn.execute(
        """
        INSERT INTO documents (path, collection, doc_id, data, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(path) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
        """,
        (key, collection, doc_id, payload, now, now),
    )
    return body


def delete_document(conn: sqlite3.Connection, path: str) -> bool:
    collection_of(path)
    cur = conn.execute("DELETE FROM documents WHERE path = ?", (path.strip("/"),))
    return cur.rowcount > 0


def list_documents(
    conn: sqlite3.Connection,
    collection: str,
    where: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Documents of one collection, in insertion order, with their ``id``.

    ``where`` filters on top-level field equality.
    """
    rows = conn.execute(
        "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY rowid",
        (collection.strip("/"),),
    ).fetchall()
    documents: List[Dict[str, Any]] = []
    for row in rows:
        body = json.loads(row["data"])
        if where and any(body.get(field) != value for field, value in where.items()):
            continue
        documents.append({"id": row["doc_id"], **body})
    return documents
