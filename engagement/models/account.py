#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Chart of accounts model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class ChartAccount:
    code: str
    label: str
    account_class: int
    type: str
    parent_code: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "label": self.label,
            "class": self.account_class,
            "type": self.type,
            "parentCode": self.parent_code,
        }
