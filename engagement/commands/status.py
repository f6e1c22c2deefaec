#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement review-status and signoffs commands."""

from __future__ import annotations

from engagement.database import get_db
from engagement.services import get_project, get_user, load_sections, section_review_summary, signoffs_summary
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("review-status", help="Review state of a section", parents=parents)
    parser.add_argument("project_id", help="Project id")
    parser.add_argument("section_id", help="Section id")
    parser.add_argument("--user", dest="user_id", help="Viewing user id")
    parser.set_defaults(func=run)

    summary_parser = subparsers.add_parser("signoffs", help="Sign-off summary of a project", parents=parents)
    summary_parser.add_argument("project_id", help="Project id")
    summary_parser.add_argument("--user", dest="user_id", help="Viewing user id")
    summary_parser.set_defaults(func=run_summary)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        project = get_project(conn, args.project_id)
        user = get_user(conn, args.user_id) if args.user_id else None

    print_json(
        {
            "project_id": args.project_id,
            "section_id": args.section_id,
            **section_review_summary(project, args.section_id, user),
        }
    )


def run_summary(args):
    with get_db(args.db_path) as conn:
        project = get_project(conn, args.project_id)
        user = get_user(conn, args.user_id) if args.user_id else None

    print_json({"project_id": args.project_id, "sections": signoffs_summary(project, load_sections(), user)})
