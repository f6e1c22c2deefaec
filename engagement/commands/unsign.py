#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement unsign command."""

from __future__ import annotations

from engagement.database import get_db
from engagement.services import unsign_section
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("unsign", help="Remove a section sign-off", parents=parents)
    parser.add_argument("project_id", help="Project id")
    parser.add_argument("section_id", help="Section id")
    parser.add_argument("--user", dest="user_id", required=True, help="Acting user id")
    parser.add_argument("--level", choices=["incharge", "manager"], help="Level for sections outside the sidebar")
    parser.set_defaults(func=run)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        result = unsign_section(conn, args.project_id, args.section_id, args.user_id, level=args.level)

    print_json({**result, "message": "Sign-off removed"})
