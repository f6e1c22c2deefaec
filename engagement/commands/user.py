#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement user command."""

from __future__ import annotations

from engagement.database import get_db
from engagement.services import add_user, get_user
from engagement.utils import load_json_input, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("user", help="Users", parents=parents)
    sub = parser.add_subparsers(dest="user_cmd")

    add_parser = sub.add_parser("add", help="Add or update a user from JSON on stdin", parents=parents)
    add_parser.set_defaults(func=run_add)

    show_parser = sub.add_parser("show", help="Show a user", parents=parents)
    show_parser.add_argument("user_id", help="User id")
    show_parser.set_defaults(func=run_show)

    return parser


def run_add(args):
    data = load_json_input()
    with get_db(args.db_path) as conn:
        user = add_user(conn, data)

    print_json({"user": user, "message": "User saved"})


def run_show(args):
    with get_db(args.db_path) as conn:
        user = get_user(conn, args.user_id)

    print_json({"user": {**user.to_dict(), "display_name": user.display_name}})
