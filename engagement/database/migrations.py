#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Database migrations."""

from __future__ import annotations

import sqlite3


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply minimal schema migrations to databases created by older releases."""
    def _ensure_column(table: str, column: str, ddl: str) -> None:
        columns = [row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()]
        if columns and column not in columns:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl}")

    columns = [row[1] for row in conn.execute("PRAGMA table_info(documents)").fetchall()]
    if not columns:
        return
    _ensure_column("documents", "doc_id", "doc_id TEXT NOT NULL DEFAULT ''")
    _ensure_column("documents", "created_at", "created_at TEXT")
    _ensure_column("storage_objects", "size", "size INTEGER NOT NULL DEFAULT 0")
    _ensure_column("storage_objects", "content_type", "content_type TEXT")
    conn.executescript(
        """
        CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
        CREATE INDEX IF NOT EXISTS idx_storage_objects_bucket ON storage_objects(bucket);
        """
    )
