#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Project, team and user models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .review import SectionReviews, SignOff


@dataclass
class User:
    id: str
    role: str = "user"
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            role=str(data.get("role") or "user"),
            first_name=str(data.get("first_name") or ""),
            last_name=str(data.get("last_name") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }


@dataclass
class TeamAssignments:
    lead_partner_id: str | None = None
    partner_ids: List[str] = field(default_factory=list)
    manager_ids: List[str] = field(default_factory=list)
    in_charge_ids: List[str] = field(default_factory=list)
    staff_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "TeamAssignments":
        data = data or {}
        return cls(
            lead_partner_id=data.get("lead_partner_id") or None,
            partner_ids=list(data.get("partner_ids") or []),
            manager_ids=list(data.get("manager_ids") or []),
            in_charge_ids=list(data.get("in_charge_ids") or []),
            staff_ids=list(data.get("staff_ids") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lead_partner_id": self.lead_partner_id,
            "partner_ids": list(self.partner_ids),
            "manager_ids": list(self.manager_ids),
            "in_charge_ids": list(self.in_charge_ids),
            "staff_ids": list(self.staff_ids),
        }


@dataclass
class Project:
    id: str
    name: str = ""
    lead_developer_id: str | None = None
    team_assignments: TeamAssignments = field(default_factory=TeamAssignments)
    reviews: Dict[str, SectionReviews] = field(default_factory=dict)
    signoffs: Dict[str, SignOff] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            lead_developer_id=data.get("lead_developer_id") or None,
            team_assignments=TeamAssignments.from_dict(data.get("team_assignments")),
            reviews={
                section_id: SectionReviews.from_dict(value)
                for section_id, value in (data.get("reviews") or {}).items()
            },
            signoffs={
                section_id: SignOff.from_dict(value)
                for section_id, value in (data.get("signoffs") or {}).items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "lead_developer_id": self.lead_developer_id,
            "team_assignments": self.team_assignments.to_dict(),
            "reviews": {key: value.to_dict() for key, value in self.reviews.items()},
            "signoffs": {key: value.to_dict() for key, value in self.signoffs.items()},
        }


@dataclass
class SidebarSection:
    id: str
    title: str = ""
    sign_off_level: str | None = None
    children: List["SidebarSection"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SidebarSection":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            sign_off_level=data.get("sign_off_level") or data.get("signOffLevel") or None,
            children=[cls.from_dict(child) for child in data.get("children") or []],
        )
