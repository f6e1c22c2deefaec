#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Section review and sign-off rules.

Pure functions over a :class:`Project`; nothing here reads or writes storage
and nothing raises. Callers use the booleans to gate actions.

Reviews are not sequential: any reviewer role may review a section at any
time. A section's status only looks at the lead partner bucket, while its
review level is ``completed`` only once all five buckets hold an entry.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from engagement.config import DEFAULT_REVIEW_CONFIG
from engagement.models import Project, SectionReviews, SidebarSection, User


ROLE_HIERARCHY = ["staff", "in_charge", "manager", "partner", "lead_partner"]

REVIEW_BUCKETS = {
    "staff": "staff_reviews",
    "in_charge": "incharge_reviews",
    "manager": "manager_reviews",
    "partner": "partner_reviews",
    "lead_partner": "lead_partner_reviews",
}

PRIVILEGED_ROLES = ("dev", "admin")

SIGN_OFF_LEVELS = ("incharge", "manager")

STAFF_UP_ROLES = ("staff", "in_charge", "manager", "partner", "lead_partner", "lead_developer")
IN_CHARGE_UP_ROLES = ("in_charge", "manager", "partner", "lead_partner", "lead_developer")
MANAGER_UP_ROLES = ("manager", "partner", "lead_partner", "lead_developer")


def normalize_role(role: Optional[str]) -> Optional[str]:
    if role == "incharge":
        return "in_charge"
    return role


# ------------------------------------------------------------
# Users and project roles
# ------------------------------------------------------------

def is_dev(user: Optional[User]) -> bool:
    return user is not None and user.role == "dev"


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == "admin"


def is_dev_or_admin(user: Optional[User]) -> bool:
    return is_dev(user) or is_admin(user)


def get_project_role(user: Optional[User], project: Project) -> Optional[str]:
    """The single effective role of a user on a project; first match wins."""
    if user is None:
        return None
    user_id = user.id
    team = project.team_assignments
    if project.lead_developer_id == user_id:
        return "lead_developer"
    if team.lead_partner_id == user_id:
        return "lead_partner"
    if user_id in team.partner_ids:
        return "partner"
    if user_id in team.manager_ids:
        return "manager"
    if user_id in team.in_charge_ids:
        return "in_charge"
    if user_id in team.staff_ids:
        return "staff"
    return None


def is_staff_up(project_role: Optional[str]) -> bool:
    return normalize_role(project_role) in STAFF_UP_ROLES


def is_in_charge_up(project_role: Optional[str]) -> bool:
    return normalize_role(project_role) in IN_CHARGE_UP_ROLES


def is_manager_up(project_role: Optional[str]) -> bool:
    return normalize_role(project_role) in MANAGER_UP_ROLES


def can_edit_project(user: Optional[User], project: Project) -> bool:
    if is_dev_or_admin(user):
        return True
    return is_staff_up(get_project_role(user, project))


def can_sign_off_section(user: Optional[User], project: Project, sign_off_level: Optional[str]) -> bool:
    if is_dev_or_admin(user):
        return True
    project_role = get_project_role(user, project)
    level = "incharge" if sign_off_level == "in_charge" else sign_off_level
    if level == "incharge":
        return is_in_charge_up(project_role)
    if level == "manager":
        return is_manager_up(project_role)
    return False


def can_view_team_management(user: Optional[User]) -> bool:
    return is_dev(user)


# ------------------------------------------------------------
# Section review state
# ------------------------------------------------------------

def get_section_reviews(section_id: str, project: Project) -> SectionReviews:
    return project.reviews.get(section_id) or SectionReviews()


def _role_has_review(reviews: SectionReviews, role: str) -> bool:
    return len(reviews.bucket(REVIEW_BUCKETS[role])) > 0


def get_completed_review_roles(section_id: str, project: Project) -> List[str]:
    reviews = get_section_reviews(section_id, project)
    return [role for role in ROLE_HIERARCHY if _role_has_review(reviews, role)]


def get_pending_review_roles(section_id: str, project: Project) -> List[str]:
    reviews = get_section_reviews(section_id, project)
    return [role for role in ROLE_HIERARCHY if not _role_has_review(reviews, role)]


def get_section_review_status(section_id: str, project: Project) -> str:
    reviews = get_section_reviews(section_id, project)
    if _role_has_review(reviews, "lead_partner"):
        return "reviewed"
    if any(_role_has_review(reviews, role) for role in ROLE_HIERARCHY[:-1]):
        return "ready_for_review"
    return "not_reviewed"


def get_current_review_level(section_id: str, project: Project) -> str:
    if not get_pending_review_roles(section_id, project):
        return "completed"
    return "in_progress"


def get_next_review_role(section_id: str, project: Project) -> Optional[str]:
    """Lowest role still missing a review, for "awaiting ..." displays."""
    pending = get_pending_review_roles(section_id, project)
    return pending[0] if pending else None


# ------------------------------------------------------------
# Permissions
# ------------------------------------------------------------

def can_user_review_section(
    user: Optional[User],
    project: Project,
    section_id: Optional[str] = None,
    excluded_sections: Sequence[str] = tuple(DEFAULT_REVIEW_CONFIG["excluded_sections"]),
) -> bool:
    if user is None:
        return False
    if section_id is not None and section_id in excluded_sections:
        return False
    if is_dev_or_admin(user):
        return True
    return get_project_role(user, project) in REVIEW_BUCKETS


def can_unreview_specific(
    user: Optional[User],
    project: Project,
    review_role: str,
    review_user_id: str,
) -> bool:
    """Whether ``user`` may retract one review entry.

    Privileged users may retract anything. Nobody else may retract their own
    entry, and only entries of a strictly lower role.
    """
    if user is None:
        return False
    if is_dev_or_admin(user):
        return True
    if user.id == review_user_id:
        return False
    user_role = normalize_role(get_project_role(user, project))
    target_role = normalize_role(review_role)
    if user_role not in ROLE_HIERARCHY or target_role not in ROLE_HIERARCHY:
        return False
    return ROLE_HIERARCHY.index(user_role) > ROLE_HIERARCHY.index(target_role)


def get_section_review_indicator(
    section_id: str,
    project: Project,
    user: Optional[User],
    excluded_sections: Sequence[str] = tuple(DEFAULT_REVIEW_CONFIG["excluded_sections"]),
) -> str:
    """Sidebar colour for one section as seen by ``user``.

    green: every role reviewed; blue: the viewer's role reviewed; orange: the
    viewer may review; grey otherwise.
    """
    if get_current_review_level(section_id, project) == "completed":
        return "green"
    reviews = get_section_reviews(section_id, project)
    project_role = get_project_role(user, project)
    if project_role in REVIEW_BUCKETS and _role_has_review(reviews, project_role):
        return "blue"
    if can_user_review_section(user, project, section_id, excluded_sections):
        return "orange"
    return "grey"


# ------------------------------------------------------------
# Review log
# ------------------------------------------------------------

def _timestamp_key(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def get_all_section_reviews(section_id: str, project: Project) -> List[Dict[str, Any]]:
    """Review and unreview events of a section, newest first."""
    reviews = get_section_reviews(section_id, project)
    log: List[Dict[str, Any]] = []
    for role in ROLE_HIERARCHY:
        for entry in reviews.bucket(REVIEW_BUCKETS[role]):
            log.append(
                {
                    "role": role,
                    "user_id": entry.user_id,
                    "user_name": entry.user_name,
                    "reviewed_at": entry.reviewed_at,
                    "type": "review",
                }
            )
    for unreview in reviews.unreview_logs:
        log.append(
            {
                "role": "unreview",
                "user_id": unreview.unreviewed_by,
                "user_name": f"{unreview.unreviewed_by_name} unreviewed {unreview.original_reviewer_name}",
                "reviewed_at": unreview.unreviewed_at,
                "type": "unreview",
            }
        )
    log.sort(key=lambda item: _timestamp_key(item["reviewed_at"]), reverse=True)
    return log


# ------------------------------------------------------------
# Section tree
# ------------------------------------------------------------

def find_section(sections: Iterable[SidebarSection], section_id: str) -> Optional[SidebarSection]:
    for section in sections:
        if section.id == section_id:
            return section
        found = find_section(section.children, section_id)
        if found is not None:
            return found
    return None


def is_signed_off(section_id: str, project: Project) -> bool:
    signoff = project.signoffs.get(section_id)
    return bool(signoff and signoff.signed)


def are_all_descendants_signed_off(section_id: str, sections: Sequence[SidebarSection], project: Project) -> bool:
    """Leaf sections are always ready; children without a sign-off level count as signed."""
    section = find_section(sections, section_id)
    if section is None or not section.children:
        return True
    return all(
        (is_signed_off(child.id, project) if child.sign_off_level else True)
        and are_all_descendants_signed_off(child.id, sections, project)
        for child in section.children
    )


def are_all_descendants_reviewed(section_id: str, sections: Sequence[SidebarSection], project: Project) -> bool:
    section = find_section(sections, section_id)
    if section is None or not section.children:
        return True
    return all(
        (get_section_review_status(child.id, project) == "reviewed" if child.sign_off_level else True)
        and are_all_descendants_reviewed(child.id, sections, project)
        for child in section.children
    )


def is_sign_off_blocked(section_id: str, sections: Sequence[SidebarSection], project: Project) -> bool:
    section = find_section(sections, section_id)
    if section is None or section.sign_off_level not in SIGN_OFF_LEVELS:
        return False
    return not is_signed_off(section_id, project) and not are_all_descendants_signed_off(
        section_id, sections, project
    )
