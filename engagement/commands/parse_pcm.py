#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""engagement parse-pcm command."""

from __future__ import annotations

from engagement.config import load_ingestion_config
from engagement.pcm import convert
from engagement.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser(
        "parse-pcm",
        help="Convert the PCM text export to a JSON account list",
        parents=parents,
    )
    parser.add_argument("--input", help="Text export path")
    parser.add_argument("--output", help="JSON output path")
    parser.set_defaults(func=run)
    return parser


def run(args):
    config = load_ingestion_config()
    result = convert(args.input or config["pcm_input"], args.output or config["pcm_output"])
    print_json({**result, "message": f"OK: {result['accounts']} accounts written to {result['output']}"})
