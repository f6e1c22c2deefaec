#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Chart of accounts import from the "Plan Comptable Mauritanien" PDF.

Accounts are read from the extracted text, typed as balance sheet (classes 1-5)
or income statement (classes 6-7), linked to their nearest existing prefix and
turned into a statement template plus prefix mapping rules.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from engagement.config import load_ingestion_config
from engagement.database import SERVER_TIMESTAMP, set_document
from engagement.models import ChartAccount
from engagement.utils import EngagementError


logger = logging.getLogger(__name__)

T = TypeVar("T")

_DASHED_LINE_RE = re.compile(r"^(\d{1,9})\s*[-–—]\s*(.+)$")
_PLAIN_LINE_RE = re.compile(r"^(\d{1,9})\s+(.+)$")
_WHITESPACE_RE = re.compile(r"\s+")


def extract_pdf_text(file_path: str) -> str:
    path = Path(file_path)
    if not path.is_file():
        raise EngagementError("FILE_NOT_FOUND", f"File not found: {file_path}")
    try:
        reader = PdfReader(str(path))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as exc:
        raise EngagementError("PDF_INVALID", f"Unable to read PDF: {exc}") from exc
    logger.info("pdf pages read: %d", len(pages))
    return "\n".join(pages)


def extract_accounts(text: str) -> List[Dict[str, str]]:
    """``[{code, label}]`` in order of first appearance.

    A line is ``<code> <label>`` or ``<code> - <label>``. Codes must start with
    a class digit 1-7; numeric-only labels are page numbers and are skipped.
    """
    found: Dict[str, str] = {}
    for raw_line in text.split("\n"):
        line = _WHITESPACE_RE.sub(" ", raw_line).strip()
        if not line:
            continue
        match = _DASHED_LINE_RE.match(line) or _PLAIN_LINE_RE.match(line)
        if not match:
            continue
        code, label = match.group(1), match.group(2).strip()
        if not label or label.isdigit():
            continue
        if code[0] not in "1234567":
            continue
        found.setdefault(code, label)
    return [{"code": code, "label": label} for code, label in found.items()]


def classify_accounts(entries: Iterable[Dict[str, str]]) -> List[ChartAccount]:
    accounts: List[ChartAccount] = []
    for entry in entries:
        account_class = int(entry["code"][0])
        if not 1 <= account_class <= 7:
            continue
        accounts.append(
            ChartAccount(
                code=entry["code"],
                label=entry["label"],
                account_class=account_class,
                type="BS" if account_class <= 5 else "IS",
            )
        )
    return accounts


def build_parent_map(codes: Sequence[str]) -> Dict[str, str]:
    """Each code's longest strict prefix that is itself a code."""
    code_set = set(codes)
    parents: Dict[str, str] = {}
    for code in codes:
        for length in range(len(code) - 1, 0, -1):
            prefix = code[:length]
            if prefix in code_set:
                parents[code] = prefix
                break
    return parents


def _sort_nodes(nodes: List[Dict[str, Any]]) -> None:
    nodes.sort(key=lambda node: (len(node["code"]), node["code"]))
    for node in nodes:
        _sort_nodes(node["children"])


def build_tree(accounts: Sequence[ChartAccount], parent_map: Dict[str, str]) -> List[Dict[str, Any]]:
    nodes = {account.code: {**account.to_dict(), "children": []} for account in accounts}
    roots: List[Dict[str, Any]] = []
    for code, node in nodes.items():
        parent = parent_map.get(code)
        if parent and parent in nodes:
            nodes[parent]["children"].append(node)
        else:
            roots.append(node)
    _sort_nodes(roots)
    return roots


def build_template(accounts: Sequence[ChartAccount]) -> Dict[str, Any]:
    bs_accounts = [account for account in accounts if account.type == "BS"]
    is_accounts = [account for account in accounts if account.type == "IS"]
    bs_tree = build_tree(bs_accounts, build_parent_map([account.code for account in bs_accounts]))
    is_tree = build_tree(is_accounts, build_parent_map([account.code for account in is_accounts]))
    return {
        "bs": {
            "label": "Balance Sheet",
            "children": [
                {"label": "ACTIF", "children": [node for node in bs_tree if int(node["code"][0]) <= 3]},
                {"label": "PASSIF", "children": [node for node in bs_tree if int(node["code"][0]) >= 4]},
            ],
        },
        "is": {
            "label": "Income Statement",
            "children": [
                {"label": "CHARGES", "children": [node for node in is_tree if node["code"][0] == "6"]},
                {"label": "PRODUITS", "children": [node for node in is_tree if node["code"][0] == "7"]},
            ],
        },
    }


def build_rules(accounts: Sequence[ChartAccount]) -> List[Dict[str, Any]]:
    """Prefix mapping rules, longest prefix first."""
    rules = [
        {"prefix": account.code, "targetCode": account.code, "label": account.label, "type": account.type}
        for account in accounts
    ]
    rules.sort(key=lambda rule: len(rule["prefix"]), reverse=True)
    return rules


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [list(items[index:index + size]) for index in range(0, len(items), size)]


def count_nodes(node: Any) -> int:
    if node is None:
        return 0
    if isinstance(node, list):
        return sum(count_nodes(item) for item in node)
    return 1 + sum(count_nodes(child) for child in node.get("children") or [])


def import_chart_of_accounts(
    conn: sqlite3.Connection,
    text: str,
    project_id: str,
    knowledge_base_id: Optional[str],
    apply: bool = False,
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Parse the chart from text and, with ``apply``, store it.

    Writes ``chart_of_accounts/<code>`` in batches, then the template and the
    rules under ``knowledge_base_id``.
    """
    if not project_id:
        raise EngagementError("ARGUMENT_MISSING", "Missing --projectId")
    config = config or load_ingestion_config()

    accounts = classify_accounts(extract_accounts(text))
    parent_map = build_parent_map([account.code for account in accounts])
    for account in accounts:
        account.parent_code = parent_map.get(account.code)
    template = build_template(accounts)
    rules = build_rules(accounts)
    template_id = knowledge_base_id or config["coa_default_template_id"]

    summary: Dict[str, Any] = {
        "accounts": len(accounts),
        "rules": len(rules),
        "bsNodes": count_nodes(template["bs"]["children"]),
        "isNodes": count_nodes(template["is"]["children"]),
        "sampleMappings": rules[:5],
        "templateId": template_id,
        "dryRun": not apply,
    }
    logger.info(
        "parsed accounts=%d bs_nodes=%d is_nodes=%d rules=%d",
        summary["accounts"], summary["bsNodes"], summary["isNodes"], summary["rules"],
    )
    if not apply:
        logger.info("dry run: nothing written")
        return summary

    batches = chunk(accounts, int(config["coa_batch_size"]))
    for group in batches:
        for account in group:
            set_document(
                conn,
                f"chart_of_accounts/{account.code}",
                {**account.to_dict(), "updatedAt": SERVER_TIMESTAMP},
                merge=True,
            )
        conn.commit()
    set_document(
        conn,
        f"fs_templates/{template_id}",
        {
            "name": config["coa_template_name"],
            "projectId": project_id,
            "tree": template,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        },
        merge=True,
    )
    set_document(
        conn,
        f"fs_rules/{template_id}",
        {
            "templateId": template_id,
            "projectId": project_id,
            "rules": rules,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        },
        merge=True,
    )
    summary["batches"] = len(batches)
    logger.info("chart of accounts written in %d batches", len(batches))
    return summary
