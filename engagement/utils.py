#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Shared helpers for engagement CLI."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class EngagementError(Exception):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": True,
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def load_json_input() -> Dict[str, Any]:
    """Load JSON object from stdin."""
    try:
        data = json.load(sys.stdin)
    except json.JSONDecodeError as exc:
        raise EngagementError(
            code="INVALID_JSON",
            message=f"Invalid JSON input: {exc}",
        ) from exc

    if not isinstance(data, dict):
        raise EngagementError(
            code="INVALID_JSON",
            message="Input must be a JSON object",
        )
    return data


def print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def print_error(err: EngagementError) -> None:
    print_json(err.to_dict())


def handle_error(err: EngagementError) -> None:
    print_error(err)
    sys.exit(1)
