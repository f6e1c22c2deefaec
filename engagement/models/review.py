#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Section review and sign-off models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


BUCKET_KEYS = (
    "staff_reviews",
    "incharge_reviews",
    "manager_reviews",
    "partner_reviews",
    "lead_partner_reviews",
)


@dataclass
class ReviewEntry:
    user_id: str
    user_name: str
    reviewed_at: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewEntry":
        return cls(
            user_id=str(data.get("user_id", "")),
            user_name=str(data.get("user_name", "")),
            reviewed_at=str(data.get("reviewed_at", "")),
        )


@dataclass
class UnreviewLog:
    unreviewed_by: str
    unreviewed_by_name: str
    original_reviewer_id: str
    original_reviewer_name: str
    role: str
    unreviewed_at: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnreviewLog":
        return cls(
            unreviewed_by=str(data.get("unreviewed_by", "")),
            unreviewed_by_name=str(data.get("unreviewed_by_name", "")),
            original_reviewer_id=str(data.get("original_reviewer_id", "")),
            original_reviewer_name=str(data.get("original_reviewer_name", "")),
            role=str(data.get("role", "")),
            unreviewed_at=str(data.get("unreviewed_at", "")),
        )


@dataclass
class SectionReviews:
    staff_reviews: List[ReviewEntry] = field(default_factory=list)
    incharge_reviews: List[ReviewEntry] = field(default_factory=list)
    manager_reviews: List[ReviewEntry] = field(default_factory=list)
    partner_reviews: List[ReviewEntry] = field(default_factory=list)
    lead_partner_reviews: List[ReviewEntry] = field(default_factory=list)
    unreview_logs: List[UnreviewLog] = field(default_factory=list)

    def bucket(self, key: str) -> List[ReviewEntry]:
        return getattr(self, key)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "SectionReviews":
        data = data or {}
        buckets = {
            key: [ReviewEntry.from_dict(item) for item in data.get(key) or [] if isinstance(item, dict)]
            for key in BUCKET_KEYS
        }
        logs = [UnreviewLog.from_dict(item) for item in data.get("unreview_logs") or [] if isinstance(item, dict)]
        return cls(unreview_logs=logs, **buckets)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SignOff:
    signed: bool = False
    signed_by: str | None = None
    signed_at: str | None = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "SignOff":
        data = data or {}
        return cls(
            signed=bool(data.get("signed", False)),
            signed_by=data.get("signed_by"),
            signed_at=data.get("signed_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
