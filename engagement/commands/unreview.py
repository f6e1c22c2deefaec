#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement unreview command."""

from __future__ import annotations

from engagement.database import get_db
from engagement.services import unreview_section
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("unreview", help="Retract a review entry", parents=parents)
    parser.add_argument("project_id", help="Project id")
    parser.add_argument("section_id", help="Section id")
    parser.add_argument("--user", dest="user_id", required=True, help="Acting user id")
    parser.add_argument("--role", dest="review_role", required=True, help="Bucket of the entry")
    parser.add_argument("--reviewer", dest="reviewer_id", required=True, help="User who made the entry")
    parser.set_defaults(func=run)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        result = unreview_section(
            conn,
            args.project_id,
            args.section_id,
            args.user_id,
            args.review_role,
            args.reviewer_id,
        )

    print_json({**result, "message": "Review retracted"})
