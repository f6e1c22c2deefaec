#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Storage-triggered balance parsing."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, Optional

from engagement.balances import lenient_options, parse_workbook
from engagement.config import load_ingestion_config
from engagement.ingestion import balances_document_path, write_balances, write_balances_error
from engagement.storage import Bucket, StorageObjectEvent
from engagement.utils import EngagementError


logger = logging.getLogger(__name__)


def parse_source_excel(
    conn: sqlite3.Connection,
    event: StorageObjectEvent,
    bucket: Bucket,
) -> Optional[Dict[str, Any]]:
    """Handle a finalized upload.

    Objects outside the source prefix, non-.xlsm objects and objects without a
    ``projectId`` metadata field are ignored. Failures after that point are
    stored as an error document and never raised.
    """
    config = load_ingestion_config()
    object_name = event.name or ""
    segments = object_name.split("/")
    uid = segments[1] if len(segments) > 1 else ""

    logger.info("object name: %s", object_name)
    logger.info("object bucket: %s", event.bucket)

    if not object_name.startswith(config["source_prefix"]):
        logger.info("skipping object outside %s", config["source_prefix"])
        return None
    if not object_name.lower().endswith(config["source_suffix"]):
        logger.info("skipping non-%s object", config["source_suffix"])
        return None

    project_id = (event.metadata or {}).get("projectId")
    if not project_id:
        logger.error("missing projectId in object metadata: %s", object_name)
        return None
    logger.info("project id: %s uid: %s", project_id, uid)
    try:
        balances_document_path(project_id)
    except EngagementError as exc:
        logger.error("%s: %s", exc.code, exc.message)
        return None

    try:
        data = bucket.download(object_name)
        logger.info("file downloaded: %s", object_name)
        result = parse_workbook(data, lenient_options(config))
        logger.info("balance N rows: %d", len(result.balance_n))
        logger.info("balance N-1 rows: %d", len(result.balance_n1))
        return write_balances(conn, project_id, result, object_name)
    except Exception as exc:
        logger.exception("parse error for %s", object_name)
        return write_balances_error(conn, project_id, str(exc) or type(exc).__name__, object_name)


def register_triggers(conn: sqlite3.Connection, bucket: Bucket) -> Bucket:
    """Attach the balance parser to the bucket's finalize events."""
    bucket.on_object_finalized(lambda event: parse_source_excel(conn, event, bucket))
    return bucket
