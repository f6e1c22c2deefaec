#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement balances command."""

from __future__ import annotations

from engagement.database import get_db
from engagement.ingestion import get_balances
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("balances", help="Stored balances", parents=parents)
    sub = parser.add_subparsers(dest="balances_cmd")

    show_parser = sub.add_parser("show", help="Show a project's balances document", parents=parents)
    show_parser.add_argument("--projectId", dest="project_id", required=True, help="Project id")
    show_parser.add_argument("--summary", action="store_true", help="Only status and row counts")
    show_parser.set_defaults(func=run_show)

    return parser


def run_show(args):
    with get_db(args.db_path) as conn:
        document = get_balances(conn, args.project_id)

    if args.summary:
        print_json(
            {
                "project_id": args.project_id,
                "status": document.get("status"),
                "errorMessage": document.get("errorMessage", ""),
                "balanceN_rows": len(document.get("balanceN") or []),
                "balanceN1_rows": len(document.get("balanceN1") or []),
                "updatedAt": document.get("updatedAt"),
            }
        )
        return
    print_json({"project_id": args.project_id, **document})
