#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement parse-coa command."""

from __future__ import annotations

from pathlib import Path

from engagement.chart_of_accounts import extract_pdf_text, import_chart_of_accounts
from engagement.config import require_credentials
from engagement.database import get_db
from engagement.utils import EngagementError, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser(
        "parse-coa",
        help="Import the chart of accounts from the PCM PDF",
        parents=parents,
    )
    parser.add_argument("--file", required=True, help="PDF (or extracted .txt) path")
    parser.add_argument("--projectId", dest="project_id", required=True, help="Owning project id")
    parser.add_argument("--knowledgeBaseId", dest="knowledge_base_id", required=True, help="Template id")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dryRun", dest="apply", action="store_false", help="Parse only (default)")
    mode.add_argument("--apply", dest="apply", action="store_true", help="Write accounts, template and rules")
    parser.set_defaults(func=run, apply=False)
    return parser


def _read_text(file_path: str) -> str:
    path = Path(file_path)
    if not path.is_file():
        raise EngagementError("FILE_NOT_FOUND", f"File not found: {file_path}")
    if path.suffix.lower() == ".txt":
        return path.read_text(encoding="utf-8")
    return extract_pdf_text(str(path))


def run(args):
    text = _read_text(args.file)
    if args.apply:
        require_credentials()
    with get_db(args.db_path) as conn:
        summary = import_chart_of_accounts(
            conn,
            text,
            args.project_id,
            args.knowledge_base_id,
            apply=args.apply,
        )

    message = "Chart of accounts written" if args.apply else "Dry run: nothing written"
    print_json({**summary, "message": message})
