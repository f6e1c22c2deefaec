#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement project command."""

from __future__ import annotations

from engagement.database import get_db
from engagement.services import create_project, get_project, update_team
from engagement.utils import EngagementError, load_json_input, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("project", help="Projects and team assignments", parents=parents)
    sub = parser.add_subparsers(dest="project_cmd")

    create_parser = sub.add_parser("create", help="Create a project from JSON on stdin", parents=parents)
    create_parser.set_defaults(func=run_create)

    show_parser = sub.add_parser("show", help="Show a project", parents=parents)
    show_parser.add_argument("project_id", help="Project id")
    show_parser.set_defaults(func=run_show)

    team_parser = sub.add_parser("team", help="Update team assignments from JSON on stdin", parents=parents)
    team_parser.add_argument("project_id", help="Project id")
    team_parser.set_defaults(func=run_team)

    return parser


def run_create(args):
    data = load_json_input()
    with get_db(args.db_path) as conn:
        project = create_project(conn, data)

    print_json({"project": project, "message": "Project created"})


def run_show(args):
    with get_db(args.db_path) as conn:
        project = get_project(conn, args.project_id)

    print_json({"project": project.to_dict()})


def run_team(args):
    data = load_json_input()
    team = data.get("team_assignments", data)
    if not isinstance(team, dict):
        raise EngagementError("INVALID_JSON", "team_assignments must be an object")
    with get_db(args.db_path) as conn:
        project = update_team(
            conn,
            args.project_id,
            {key: value for key, value in team.items() if key != "lead_developer_id"},
            lead_developer_id=data.get("lead_developer_id"),
        )

    print_json({"project": project, "message": "Team updated"})
