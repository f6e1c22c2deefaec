#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Blob storage kept in the engagement database.

Objects are stored whole; once an upload is written every finalize handler
registered on the bucket is called with a :class:`StorageObjectEvent`.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from engagement.utils import EngagementError


logger = logging.getLogger(__name__)


@dataclass
class StorageObjectEvent:
    bucket: str
    name: str
    metadata: Dict[str, str] = field(default_factory=dict)
    content_type: str | None = None
    size: int = 0


FinalizeHandler = Callable[[StorageObjectEvent], Any]


class Bucket:
    def __init__(self, conn: sqlite3.Connection, name: str):
        self.conn = conn
        self.name = name
        self._finalize_handlers: List[FinalizeHandler] = []

    def on_object_finalized(self, handler: FinalizeHandler) -> FinalizeHandler:
        self._finalize_handlers.append(handler)
        return handler

    def upload(
        self,
        object_name: str,
        data: bytes,
        metadata: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
    ) -> StorageObjectEvent:
        if not object_name or object_name.startswith("/"):
            raise EngagementError("OBJECT_NAME_INVALID", f"Invalid object name: {object_name!r}")
        meta = dict(metadata or {})
        self.conn.execute(
            """
            INSERT INTO storage_objects (bucket, name, content_type, metadata, size, data)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(bucket, name) DO UPDATE SET
              content_type = excluded.content_type,
              metadata = excluded.metadata,
              size = excluded.size,
              data = excluded.data,
              updated_at = CURRENT_TIMESTAMP
            """,
            (self.name, object_name, content_type, json.dumps(meta), len(data), sqlite3.Binary(data)),
        )
        event = StorageObjectEvent(
            bucket=self.name,
            name=object_name,
            metadata=meta,
            content_type=content_type,
            size=len(data),
        )
        logger.debug("object finalized gs://%s/%s (%d bytes)", self.name, object_name, len(data))
        for handler in self._finalize_handlers:
            handler(event)
        return event

    def exists(self, object_name: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM storage_objects WHERE bucket = ? AND name = ?",
            (self.name, object_name),
        ).fetchone()
        return row is not None

    def download(self, object_name: str) -> bytes:
        row = self.conn.execute(
            "SELECT data FROM storage_objects WHERE bucket = ? AND name = ?",
            (self.name, object_name),
        ).fetchone()
        if not row:
            raise EngagementError(
                "OBJECT_NOT_FOUND",
                f"No such object: {self.name}/{object_name}",
            )
        return bytes(row["data"])

    def get_metadata(self, object_name: str) -> Dict[str, Any]:
        row = self.conn.execute(
            """
            SELECT name, content_type, metadata, size, updated_at
            FROM storage_objects WHERE bucket = ? AND name = ?
            """,
            (self.name, object_name),
        ).fetchone()
        if not row:
            raise EngagementError(
                "OBJECT_NOT_FOUND",
                f"No such object: {self.name}/{object_name}",
            )
        return {
            "bucket": self.name,
            "name": row["name"],
            "content_type": row["content_type"],
            "metadata": json.loads(row["metadata"] or "{}"),
            "size": row["size"],
            "updated": row["updated_at"],
        }

    def list_objects(self, prefix: str = "") -> List[str]:
        rows = self.conn.execute(
            "SELECT name FROM storage_objects WHERE bucket = ? AND name LIKE ? ESCAPE '\\' ORDER BY name",
            (self.name, prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"),
        ).fetchall()
        return [row["name"] for row in rows]
