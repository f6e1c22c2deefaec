#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Comment model."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass
class Comment:
    id: str
    project_id: str
    section_id: str
    field_id: str
    author_id: str
    content: str
    created_at: str
    parent_comment_id: str | None = None
    addressed_to: str | None = None
    updated_at: str | None = None
    resolved: bool = False

    @property
    def is_thread_root(self) -> bool:
        return self.parent_comment_id is None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        return cls(
            id=str(data["id"]),
            project_id=str(data["project_id"]),
            section_id=str(data.get("section_id") or ""),
            field_id=str(data.get("field_id") or ""),
            author_id=str(data["author_id"]),
            content=str(data.get("content") or ""),
            created_at=str(data.get("created_at") or ""),
            parent_comment_id=data.get("parent_comment_id") or None,
            addressed_to=data.get("addressed_to") or None,
            updated_at=data.get("updated_at"),
            resolved=bool(data.get("resolved", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
