#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement upload command."""

from __future__ import annotations

from engagement.config import load_ingestion_config
from engagement.database import get_db, get_document
from engagement.functions import register_triggers
from engagement.ingestion import balances_document_path, upload_xlsm
from engagement.storage import Bucket
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("upload", help="Upload a .xlsm workbook for parsing", parents=parents)
    parser.add_argument("--file", required=True, help="Workbook path (.xlsm)")
    parser.add_argument("--uid", required=True, help="Uploading user id")
    parser.add_argument("--projectId", dest="project_id", help="Project the balances belong to")
    parser.add_argument("--bucket", help="Storage bucket name")
    parser.set_defaults(func=run)
    return parser


def run(args):
    bucket_name = args.bucket or load_ingestion_config()["bucket"]
    with get_db(args.db_path) as conn:
        bucket = register_triggers(conn, Bucket(conn, bucket_name))
        uploaded = upload_xlsm(bucket, args.file, args.uid, args.project_id)
        balances = get_document(conn, balances_document_path(args.project_id)) if args.project_id else None

    output = {**uploaded, "message": "Upload complete"}
    if balances is not None:
        output["balances_status"] = balances.get("status")
        output["error_message"] = balances.get("errorMessage") or ""
    print_json(output)
