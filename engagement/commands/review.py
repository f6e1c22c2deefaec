#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement review command."""

from __future__ import annotations

from engagement.database import get_db
from engagement.services import review_section
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("review", help="Review a section", parents=parents)
    parser.add_argument("project_id", help="Project id")
    parser.add_argument("section_id", help="Section id")
    parser.add_argument("--user", dest="user_id", required=True, help="Reviewing user id")
    parser.add_argument("--as-role", dest="role", help="Review bucket for dev/admin users")
    parser.set_defaults(func=run)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        result = review_section(conn, args.project_id, args.section_id, args.user_id, role=args.role)

    print_json({**result, "message": "Section reviewed"})
