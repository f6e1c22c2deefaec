#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Balance ingestion: persistence of parsed balances and the host adapters."""

from __future__ import annotations

import logging
import re
import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, Optional

from engagement.balances import (
    BalanceParseResult,
    client_options,
    lenient_options,
    parse_workbook,
    strict_options,
)
from engagement.config import load_ingestion_config, require_credentials
from engagement.database import SERVER_TIMESTAMP, get_document, set_document
from engagement.storage import Bucket
from engagement.utils import EngagementError, utc_now_iso


logger = logging.getLogger(__name__)


def balances_document_path(project_id: str) -> str:
    if not project_id or "/" in project_id:
        raise EngagementError("PROJECT_ID_INVALID", f"Invalid project id: {project_id!r}")
    return f"projects/{project_id}/knowledge_base/balances"


def write_balances(
    conn: sqlite3.Connection,
    project_id: str,
    result: BalanceParseResult,
    source_path: str,
) -> Dict[str, Any]:
    """Store a successful parse; both sheets go out in one merge write."""
    return set_document(
        conn,
        balances_document_path(project_id),
        {
            "status": "done",
            "balanceN": [row.to_dict() for row in result.balance_n],
            "balanceN1": [row.to_dict() for row in result.balance_n1],
            "errorMessage": "",
            "updatedAt": SERVER_TIMESTAMP,
            "parsedAt": utc_now_iso(),
            "sourcePath": source_path,
        },
        merge=True,
    )


def write_balances_error(
    conn: sqlite3.Connection,
    project_id: str,
    message: str,
    source_path: str,
) -> Dict[str, Any]:
    return set_document(
        conn,
        balances_document_path(project_id),
        {
            "status": "error",
            "balanceN": [],
            "balanceN1": [],
            "errorMessage": message or "Unknown error",
            "updatedAt": SERVER_TIMESTAMP,
            "parsedAt": utc_now_iso(),
            "sourcePath": source_path,
        },
        merge=True,
    )


def get_balances(conn: sqlite3.Connection, project_id: str) -> Dict[str, Any]:
    document = get_document(conn, balances_document_path(project_id))
    if document is None:
        raise EngagementError("BALANCES_NOT_FOUND", f"No balances for project {project_id}")
    return document


# ------------------------------------------------------------
# Offline import
# ------------------------------------------------------------

def import_balances_file(conn: sqlite3.Connection, file_path: str, project_id: str) -> Dict[str, Any]:
    """Parse a local workbook and store it for a project.

    Preconditions are checked before anything is read or written. The file
    extension is not checked here.
    """
    if not file_path or not project_id:
        raise EngagementError(
            "ARGUMENT_MISSING",
            "Usage: engagement parse-balances --file <path.xlsm> --projectId <projectId>",
        )
    path = Path(file_path)
    if not path.is_file():
        raise EngagementError("FILE_NOT_FOUND", f"File not found: {file_path}")
    require_credentials()
    balances_document_path(project_id)

    # bytes: openpyxl only checks the extension of paths
    result = parse_workbook(path.read_bytes(), lenient_options())
    logger.info("balanceN rows: %d", len(result.balance_n))
    logger.info("balanceN1 rows: %d", len(result.balance_n1))
    try:
        stored = write_balances(conn, project_id, result, str(path))
    except sqlite3.Error as exc:
        raise EngagementError("WRITE_FAILED", f"Balances write failed: {exc}") from exc
    return {
        "project_id": project_id,
        "status": stored["status"],
        "sheets": result.sheet_names,
        "resolved": {"N": result.resolved_n, "N-1": result.resolved_n1},
        "balanceN_rows": len(result.balance_n),
        "balanceN1_rows": len(result.balance_n1),
    }


# ------------------------------------------------------------
# Client-side reads (return, never write)
# ------------------------------------------------------------

def get_expected_sheet_names() -> Dict[str, str]:
    config = load_ingestion_config()
    return {"current": config["sheet_name_n"], "prior": config["sheet_name_n1"]}


def parse_excel_balances(data: bytes) -> BalanceParseResult:
    return parse_workbook(data, client_options())


def parse_excel_balances_from_file(file_path: str) -> BalanceParseResult:
    path = Path(file_path)
    if not path.is_file():
        raise EngagementError("FILE_NOT_FOUND", f"File not found: {file_path}")
    return parse_excel_balances(path.read_bytes())


def validate_storage_path(storage_path: str) -> str:
    if storage_path.startswith("gs://"):
        raise EngagementError(
            "STORAGE_PATH_INVALID",
            "Invalid storagePath (gs://). Use a storage path like source-excel/<uid>/... instead.",
        )
    if storage_path.startswith(("http://", "https://")):
        raise EngagementError(
            "STORAGE_PATH_INVALID",
            "Invalid storagePath (URL). Use the storage path, not a URL.",
        )
    if not storage_path.strip("/"):
        raise EngagementError("STORAGE_PATH_INVALID", "Storage path is empty")
    return storage_path.strip("/")


def read_balances_from_storage(bucket: Bucket, storage_path: str) -> BalanceParseResult:
    """Download an uploaded workbook and parse it; raises when a sheet is missing."""
    name = validate_storage_path(storage_path)
    data = bucket.download(name)
    return parse_workbook(data, strict_options())


# ------------------------------------------------------------
# Upload
# ------------------------------------------------------------

def safe_file_name(name: str) -> str:
    return re.sub(r"[^\w.\-]+", "_", name)


def upload_xlsm(
    bucket: Bucket,
    file_path: str,
    uid: str,
    project_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Upload a macro-enabled workbook under the source prefix watched by the trigger."""
    config = load_ingestion_config()
    path = Path(file_path)
    if not path.name.lower().endswith(config["source_suffix"]):
        raise EngagementError(
            "INVALID_FILE_TYPE",
            f"Only {config['source_suffix']} files are accepted.",
            {"file": path.name},
        )
    if not uid:
        raise EngagementError("NOT_AUTHENTICATED", "User not authenticated")
    if not path.is_file():
        raise EngagementError("FILE_NOT_FOUND", f"File not found: {file_path}")

    storage_path = f"{config['source_prefix']}{uid}/{int(time.time() * 1000)}-{safe_file_name(path.name)}"
    data = path.read_bytes()
    logger.info("starting upload uid=%s path=%s bucket=%s", uid, storage_path, bucket.name)
    bucket.upload(
        storage_path,
        data,
        metadata={"projectId": project_id} if project_id else {},
        content_type=config["content_type"],
    )
    return {"path": storage_path, "size": len(data), "bucket": bucket.name}
