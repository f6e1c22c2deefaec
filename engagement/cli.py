#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Main CLI for engagement."""

from __future__ import annotations

import argparse
import logging
import sys

from engagement import commands
from engagement.config import default_db_path
from engagement.utils import EngagementError, handle_error


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="engagement",
        description="Audit engagement review and balance ingestion CLI",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--db-path", default=default_db_path(), help="Database path")
    common.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (logs go to stderr)",
    )

    subparsers = parser.add_subparsers(dest="command")

    commands.add_init_parser(subparsers, [common])
    commands.add_upload_parser(subparsers, [common])
    commands.add_parse_balances_parser(subparsers, [common])
    commands.add_read_balances_parser(subparsers, [common])
    commands.add_balances_parser(subparsers, [common])
    commands.add_parse_coa_parser(subparsers, [common])
    commands.add_parse_pcm_parser(subparsers, [common])
    commands.add_project_parser(subparsers, [common])
    commands.add_user_parser(subparsers, [common])
    commands.add_review_parser(subparsers, [common])
    commands.add_unreview_parser(subparsers, [common])
    commands.add_status_parser(subparsers, [common])
    commands.add_signoff_parser(subparsers, [common])
    commands.add_unsign_parser(subparsers, [common])
    commands.add_comment_parser(subparsers, [common])

    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format=LOG_FORMAT, stream=sys.stderr)


def main():
    parser = build_parser()
    args = parser.parse_args()
    if not hasattr(args, "func"):
        parser.print_help()
        return
    configure_logging(args.log_level)
    try:
        args.func(args)
    except EngagementError as exc:
        handle_error(exc)


if __name__ == "__main__":
    main()
