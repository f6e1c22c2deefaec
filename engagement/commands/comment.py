#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement comment command."""

from __future__ import annotations

from engagement.comments import (
    build_threads,
    comment_counts,
    comments_addressed_to,
    comments_by_field,
    comments_by_section,
    create_comment,
    list_comments,
    mark_resolved,
)
from engagement.database import get_db
from engagement.utils import load_json_input, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("comment", help="Field comments", parents=parents)
    sub = parser.add_subparsers(dest="comment_cmd")

    add_parser = sub.add_parser("add", help="Add a comment from JSON on stdin", parents=parents)
    add_parser.set_defaults(func=run_add)

    resolve_parser = sub.add_parser("resolve", help="Resolve or reopen a comment", parents=parents)
    resolve_parser.add_argument("comment_id", help="Comment id")
    resolve_parser.add_argument("--user", dest="user_id", required=True, help="Acting user id")
    resolve_parser.add_argument("--reopen", action="store_true", help="Mark as unresolved")
    resolve_parser.set_defaults(func=run_resolve)

    list_parser = sub.add_parser("list", help="List comments of a project", parents=parents)
    list_parser.add_argument("project_id", help="Project id")
    list_parser.add_argument("--section", dest="section_id", help="Section id")
    list_parser.add_argument("--field", dest="field_id", help="Field id (needs --section)")
    list_parser.add_argument("--to", dest="addressed_to", help="Only comments addressed to this user")
    list_parser.add_argument("--threads", action="store_true", help="Group replies under their roots")
    list_parser.set_defaults(func=run_list)

    return parser


def run_add(args):
    data = load_json_input()
    with get_db(args.db_path) as conn:
        comment = create_comment(conn, data)

    print_json({"comment": comment.to_dict(), "message": "Comment added"})


def run_resolve(args):
    with get_db(args.db_path) as conn:
        comment = mark_resolved(conn, args.comment_id, args.user_id, resolved=not args.reopen)

    print_json({"comment": comment.to_dict(), "message": "Comment updated"})


def run_list(args):
    with get_db(args.db_path) as conn:
        comments = list_comments(conn, args.project_id)

    if args.section_id and args.field_id:
        comments = comments_by_field(comments, args.section_id, args.field_id)
    elif args.section_id:
        comments = comments_by_section(comments, args.section_id)
    if args.addressed_to:
        comments = comments_addressed_to(comments, args.addressed_to)

    output = {
        "project_id": args.project_id,
        "open_counts": comment_counts(comments, args.section_id),
        "total": len(comments),
    }
    if args.threads:
        output["threads"] = build_threads(comments)
    else:
        output["comments"] = [comment.to_dict() for comment in comments]
    print_json(output)
