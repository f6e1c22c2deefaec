#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Engagement domain services: users, projects, section reviews and sign-offs."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

from engagement import review as rules
from engagement.config import load_review_config
from engagement.database import get_document, set_document
from engagement.models import Project, ReviewEntry, SidebarSection, SignOff, UnreviewLog, User
from engagement.utils import EngagementError, utc_now_iso


logger = logging.getLogger(__name__)

USER_ROLES = ("dev", "admin", "user")


def _project_path(project_id: str) -> str:
    if not project_id or "/" in project_id:
        raise EngagementError("PROJECT_ID_INVALID", f"Invalid project id: {project_id!r}")
    return f"projects/{project_id}"


def _user_path(user_id: str) -> str:
    if not user_id or "/" in user_id:
        raise EngagementError("USER_ID_INVALID", f"Invalid user id: {user_id!r}")
    return f"users/{user_id}"


def load_sections(config: Optional[Dict[str, Any]] = None) -> List[SidebarSection]:
    config = config or load_review_config()
    return [SidebarSection.from_dict(item) for item in config.get("sections") or []]


# ------------------------------------------------------------
# Users and projects
# ------------------------------------------------------------

def add_user(conn: sqlite3.Connection, data: Dict[str, Any]) -> Dict[str, Any]:
    if not data.get("id"):
        raise EngagementError("USER_INVALID", "User id is required")
    role = data.get("role") or "user"
    if role not in USER_ROLES:
        raise EngagementError("USER_INVALID", f"Unknown user role: {role}", {"allowed": list(USER_ROLES)})
    user = User.from_dict({**data, "role": role})
    return set_document(conn, _user_path(user.id), user.to_dict(), merge=True)


def get_user(conn: sqlite3.Connection, user_id: str) -> User:
    document = get_document(conn, _user_path(user_id))
    if document is None:
        raise EngagementError("USER_NOT_FOUND", f"User not found: {user_id}")
    return User.from_dict(document)


def create_project(conn: sqlite3.Connection, data: Dict[str, Any]) -> Dict[str, Any]:
    if not data.get("id"):
        raise EngagementError("PROJECT_INVALID", "Project id is required")
    path = _project_path(str(data["id"]))
    if get_document(conn, path) is not None:
        raise EngagementError("PROJECT_EXISTS", f"Project already exists: {data['id']}")
    project = Project.from_dict(data)
    return set_document(conn, path, project.to_dict(), merge=False)


def get_project(conn: sqlite3.Connection, project_id: str) -> Project:
    document = get_document(conn, _project_path(project_id))
    if document is None:
        raise EngagementError("PROJECT_NOT_FOUND", f"Project not found: {project_id}")
    return Project.from_dict(document)


def update_team(
    conn: sqlite3.Connection,
    project_id: str,
    team_assignments: Dict[str, Any],
    lead_developer_id: Optional[str] = None,
) -> Dict[str, Any]:
    project = get_project(conn, project_id)
    update: Dict[str, Any] = {
        "team_assignments": {**project.team_assignments.to_dict(), **team_assignments},
    }
    if lead_developer_id is not None:
        update["lead_developer_id"] = lead_developer_id or None
    return set_document(conn, _project_path(project_id), update, merge=True)


def _store_section_reviews(conn: sqlite3.Connection, project: Project, section_id: str) -> None:
    set_document(
        conn,
        _project_path(project.id),
        {"reviews": {section_id: project.reviews[section_id].to_dict()}},
        merge=True,
    )


# ------------------------------------------------------------
# Reviews
# ------------------------------------------------------------

def review_section(
    conn: sqlite3.Connection,
    project_id: str,
    section_id: str,
    user_id: str,
    role: Optional[str] = None,
    sections: Optional[Sequence[SidebarSection]] = None,
) -> Dict[str, Any]:
    """Append a review entry to the caller's role bucket.

    Entries are appended even when the same user already reviewed; the
    buckets double as the section's review log. A parent section can only be
    reviewed once its sub-sections are.
    """
    config = load_review_config()
    sections = load_sections(config) if sections is None else sections
    excluded = config["excluded_sections"]
    project = get_project(conn, project_id)
    user = get_user(conn, user_id)
    if not rules.can_user_review_section(user, project, section_id, excluded):
        raise EngagementError(
            "REVIEW_FORBIDDEN",
            f"User {user_id} cannot review section {section_id}",
            {"project_role": rules.get_project_role(user, project)},
        )
    if not rules.are_all_descendants_reviewed(section_id, sections, project):
        raise EngagementError(
            "REVIEW_BLOCKED",
            f"Sub-sections of {section_id} must be reviewed first",
        )

    project_role = rules.get_project_role(user, project)
    requested = rules.normalize_role(role)
    if rules.is_dev_or_admin(user):
        target = requested or (project_role if project_role in rules.REVIEW_BUCKETS else None)
        if target is None:
            raise EngagementError(
                "REVIEW_ROLE_REQUIRED",
                "Specify the role to review as; the user has no reviewer role on this project",
            )
    else:
        if requested and requested != project_role:
            raise EngagementError(
                "REVIEW_ROLE_MISMATCH",
                f"User {user_id} reviews as {project_role}, not {requested}",
            )
        target = project_role
    if target not in rules.REVIEW_BUCKETS:
        raise EngagementError(
            "REVIEW_ROLE_INVALID",
            f"Unknown review role: {role}",
            {"allowed": list(rules.ROLE_HIERARCHY)},
        )

    entry = ReviewEntry(user_id=user.id, user_name=user.display_name, reviewed_at=utc_now_iso())
    reviews = project.reviews.setdefault(section_id, rules.get_section_reviews(section_id, project))
    reviews.bucket(rules.REVIEW_BUCKETS[target]).append(entry)
    _store_section_reviews(conn, project, section_id)
    logger.info("section %s/%s reviewed by %s as %s", project_id, section_id, user_id, target)

    return {
        "project_id": project_id,
        "section_id": section_id,
        "role": target,
        "entry": entry.__dict__.copy(),
        **section_review_summary(project, section_id, user, sections, excluded),
    }


def unreview_section(
    conn: sqlite3.Connection,
    project_id: str,
    section_id: str,
    user_id: str,
    review_role: str,
    reviewer_id: str,
) -> Dict[str, Any]:
    """Retract the newest entry of ``reviewer_id`` in ``review_role`` and log it."""
    project = get_project(conn, project_id)
    user = get_user(conn, user_id)
    target = rules.normalize_role(review_role)
    if target not in rules.REVIEW_BUCKETS:
        raise EngagementError(
            "REVIEW_ROLE_INVALID",
            f"Unknown review role: {review_role}",
            {"allowed": list(rules.ROLE_HIERARCHY)},
        )
    if not rules.can_unreview_specific(user, project, target, reviewer_id):
        raise EngagementError(
            "UNREVIEW_FORBIDDEN",
            f"User {user_id} cannot unreview the {target} review of {reviewer_id}",
        )

    section = rules.get_section_reviews(section_id, project)
    bucket = section.bucket(rules.REVIEW_BUCKETS[target])
    positions = [index for index, entry in enumerate(bucket) if entry.user_id == reviewer_id]
    if not positions:
        raise EngagementError(
            "REVIEW_NOT_FOUND",
            f"No {target} review by {reviewer_id} on section {section_id}",
        )
    removed = bucket.pop(positions[-1])
    section.unreview_logs.append(
        UnreviewLog(
            unreviewed_by=user.id,
            unreviewed_by_name=user.display_name,
            original_reviewer_id=removed.user_id,
            original_reviewer_name=removed.user_name,
            role=target,
            unreviewed_at=utc_now_iso(),
        )
    )
    project.reviews[section_id] = section
    _store_section_reviews(conn, project, section_id)
    logger.info(
        "section %s/%s: %s review of %s retracted by %s", project_id, section_id, target, reviewer_id, user_id
    )

    return {
        "project_id": project_id,
        "section_id": section_id,
        "role": target,
        "removed": removed.__dict__.copy(),
        **section_review_summary(project, section_id, user),
    }


def section_review_summary(
    project: Project,
    section_id: str,
    user: Optional[User],
    sections: Optional[Sequence[SidebarSection]] = None,
    excluded_sections: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    if sections is None or excluded_sections is None:
        config = load_review_config()
        sections = load_sections(config) if sections is None else sections
        if excluded_sections is None:
            excluded_sections = config["excluded_sections"]
    section = rules.get_section_reviews(section_id, project)
    entries = {
        role: [
            {
                **entry.__dict__,
                "can_unreview": rules.can_unreview_specific(user, project, role, entry.user_id),
            }
            for entry in section.bucket(rules.REVIEW_BUCKETS[role])
        ]
        for role in rules.ROLE_HIERARCHY
    }
    return {
        "status": rules.get_section_review_status(section_id, project),
        "current_review_level": rules.get_current_review_level(section_id, project),
        "next_review_role": rules.get_next_review_role(section_id, project),
        "completed_roles": rules.get_completed_review_roles(section_id, project),
        "pending_roles": rules.get_pending_review_roles(section_id, project),
        "indicator": rules.get_section_review_indicator(section_id, project, user, excluded_sections),
        "project_role": rules.get_project_role(user, project),
        "can_review": rules.can_user_review_section(user, project, section_id, excluded_sections),
        "descendants_reviewed": rules.are_all_descendants_reviewed(section_id, sections, project),
        "reviews": entries,
        "log": rules.get_all_section_reviews(section_id, project),
    }


# ------------------------------------------------------------
# Sign-offs
# ------------------------------------------------------------

def _sign_off_level(section_id: str, sections: Sequence[SidebarSection], level: Optional[str]) -> str:
    section = rules.find_section(sections, section_id)
    resolved = level or (section.sign_off_level if section else None)
    if resolved == "in_charge":
        resolved = "incharge"
    if resolved not in rules.SIGN_OFF_LEVELS:
        raise EngagementError(
            "SIGNOFF_NOT_SUPPORTED",
            f"Section {section_id} has no sign-off level",
            {"allowed": list(rules.SIGN_OFF_LEVELS)},
        )
    return resolved


def sign_off_section(
    conn: sqlite3.Connection,
    project_id: str,
    section_id: str,
    user_id: str,
    sections: Optional[Sequence[SidebarSection]] = None,
    level: Optional[str] = None,
) -> Dict[str, Any]:
    sections = load_sections() if sections is None else sections
    project = get_project(conn, project_id)
    user = get_user(conn, user_id)
    sign_off_level = _sign_off_level(section_id, sections, level)
    if not rules.can_sign_off_section(user, project, sign_off_level):
        raise EngagementError(
            "SIGNOFF_FORBIDDEN",
            f"User {user_id} cannot sign off section {section_id} ({sign_off_level}+)",
        )
    if rules.is_sign_off_blocked(section_id, sections, project):
        raise EngagementError(
            "SIGNOFF_BLOCKED",
            f"Sub-sections of {section_id} must be signed off first",
        )
    signoff = SignOff(signed=True, signed_by=user.id, signed_at=utc_now_iso())
    set_document(conn, _project_path(project_id), {"signoffs": {section_id: signoff.to_dict()}}, merge=True)
    logger.info("section %s/%s signed off by %s", project_id, section_id, user_id)
    return {"project_id": project_id, "section_id": section_id, "level": sign_off_level, **signoff.to_dict()}


def unsign_section(
    conn: sqlite3.Connection,
    project_id: str,
    section_id: str,
    user_id: str,
    sections: Optional[Sequence[SidebarSection]] = None,
    level: Optional[str] = None,
) -> Dict[str, Any]:
    sections = load_sections() if sections is None else sections
    project = get_project(conn, project_id)
    user = get_user(conn, user_id)
    sign_off_level = _sign_off_level(section_id, sections, level)
    if not rules.can_sign_off_section(user, project, sign_off_level):
        raise EngagementError(
            "SIGNOFF_FORBIDDEN",
            f"User {user_id} cannot remove the sign-off of section {section_id}",
        )
    if not rules.is_signed_off(section_id, project):
        raise EngagementError("SIGNOFF_NOT_FOUND", f"Section {section_id} is not signed off")
    signoff = SignOff(signed=False, signed_by=None, signed_at=None)
    set_document(conn, _project_path(project_id), {"signoffs": {section_id: signoff.to_dict()}}, merge=True)
    return {"project_id": project_id, "section_id": section_id, "level": sign_off_level, **signoff.to_dict()}


def signoffs_summary(
    project: Project,
    sections: Sequence[SidebarSection],
    user: Optional[User],
    excluded_sections: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """Section tree with sign-off and review state for one viewer."""
    if excluded_sections is None:
        excluded_sections = load_review_config()["excluded_sections"]

    def _node(section: SidebarSection) -> Dict[str, Any]:
        signoff = project.signoffs.get(section.id) or SignOff()
        has_sign_off = section.sign_off_level in rules.SIGN_OFF_LEVELS
        node: Dict[str, Any] = {
            "id": section.id,
            "title": section.title,
            "sign_off_level": section.sign_off_level,
            "signed": signoff.signed,
            "signed_by": signoff.signed_by,
            "signed_at": signoff.signed_at,
            "blocked": rules.is_sign_off_blocked(section.id, sections, project),
            "can_unsign": bool(
                has_sign_off and user is not None and rules.can_sign_off_section(user, project, section.sign_off_level)
            ),
            "children": [_node(child) for child in section.children],
        }
        if user is not None and section.id not in excluded_sections:
            node["review_status"] = rules.get_section_review_status(section.id, project)
            node["indicator"] = rules.get_section_review_indicator(section.id, project, user, excluded_sections)
            node["descendants_reviewed"] = rules.are_all_descendants_reviewed(section.id, sections, project)
        return node

    return [_node(section) for section in sections]
