#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement parse-balances command."""

from __future__ import annotations

from engagement.database import get_db
from engagement.ingestion import import_balances_file
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser(
        "parse-balances",
        help="Parse a local workbook and store its balances",
        parents=parents,
    )
    parser.add_argument("--file", help="Workbook path")
    parser.add_argument("--projectId", dest="project_id", help="Target project id")
    parser.set_defaults(func=run)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        summary = import_balances_file(conn, args.file, args.project_id)

    print_json({**summary, "message": "Balances stored"})
