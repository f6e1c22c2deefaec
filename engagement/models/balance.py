#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Balance row model."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass
class BalanceRow:
    account: str
    label: str
    # str only when the client parser keeps text it could not read as a number
    balance: float | int | str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
