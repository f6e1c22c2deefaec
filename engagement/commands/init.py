#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement init command."""

from __future__ import annotations

from engagement.database import get_db, init_db
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("init", help="Create the engagement database", parents=parents)
    parser.set_defaults(func=run)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        init_db(conn)

    print_json(
        {
            "status": "success",
            "message": "Database initialised",
            "db_path": args.db_path,
        }
    )
