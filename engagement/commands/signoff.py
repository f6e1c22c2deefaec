#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement signoff command."""

from __future__ import annotations

from engagement.database import get_db
from engagement.services import sign_off_section
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("signoff", help="Sign off a section", parents=parents)
    parser.add_argument("project_id", help="Project id")
    parser.add_argument("section_id", help="Section id")
    parser.add_argument("--user", dest="user_id", required=True, help="Signing user id")
    parser.add_argument("--level", choices=["incharge", "manager"], help="Level for sections outside the sidebar")
    parser.set_defaults(func=run)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        result = sign_off_section(conn, args.project_id, args.section_id, args.user_id, level=args.level)

    print_json({**result, "message": "Section signed off"})
