#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement read-balances command."""

from __future__ import annotations

from engagement.config import load_ingestion_config
from engagement.database import get_db
from engagement.ingestion import (
    get_expected_sheet_names,
    parse_excel_balances_from_file,
    read_balances_from_storage,
)
from engagement.storage import Bucket
from engagement.utils import EngagementError, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser(
        "read-balances",
        help="Parse a workbook without storing it",
        parents=parents,
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", help="Local workbook path")
    source.add_argument("--storagePath", dest="storage_path", help="Object path in the bucket")
    parser.add_argument("--bucket", help="Storage bucket name")
    parser.set_defaults(func=run)
    return parser


def run(args):
    if args.file:
        result = parse_excel_balances_from_file(args.file)
    elif args.storage_path:
        bucket_name = args.bucket or load_ingestion_config()["bucket"]
        with get_db(args.db_path) as conn:
            result = read_balances_from_storage(Bucket(conn, bucket_name), args.storage_path)
    else:
        raise EngagementError("ARGUMENT_MISSING", "Pass --file or --storagePath")

    print_json({**result.to_dict(), "expected": get_expected_sheet_names()})
