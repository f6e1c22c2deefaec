import pytest

from engagement import config
from engagement import review as rules
from engagement.database import get_db, get_document
from engagement.services import (
    add_user,
    create_project,
    get_project,
    get_user,
    load_sections,
    review_section,
    section_review_summary,
    sign_off_section,
    signoffs_summary,
    unreview_section,
    unsign_section,
    update_team,
)
from engagement.models import SidebarSection
from engagement.utils import EngagementError


TEAM = {
    "lead_partner_id": "lp",
    "partner_ids": ["pa"],
    "manager_ids": ["mg"],
    "in_charge_ids": ["ic"],
    "staff_ids": ["st"],
}

SECTIONS = [
    SidebarSection.from_dict(
        {
            "id": "scope",
            "signOffLevel": "manager",
            "children": [
                {"id": "entity", "signOffLevel": "incharge"},
                {"id": "strategy", "signOffLevel": "incharge"},
                {"id": "team"},
            ],
        }
    ),
    SidebarSection.from_dict({"id": "materiality", "sign_off_level": "manager"}),
    SidebarSection.from_dict({"id": "notes"}),
]


@pytest.fixture
def conn(db_path):
    with get_db(str(db_path)) as connection:
        for user_id in ("lp", "pa", "mg", "ic", "st", "ld", "out"):
            add_user(connection, {"id": user_id, "first_name": user_id.upper(), "last_name": "Auditor"})
        add_user(connection, {"id": "dev", "role": "dev"})
        add_user(connection, {"id": "admin", "role": "admin"})
        create_project(
            connection,
            {"id": "p1", "name": "Client SA 2024", "lead_developer_id": "ld", "team_assignments": TEAM},
        )
        yield connection


def _bucket(conn, role, section_id="s1"):
    project = get_project(conn, "p1")
    return rules.get_section_reviews(section_id, project).bucket(rules.REVIEW_BUCKETS[role])


class TestUsersAndProjects:
    def test_user_round_trip(self, conn):
        user = get_user(conn, "mg")
        assert user.display_name == "MG Auditor"
        assert get_user(conn, "dev").display_name == "dev"

    def test_unknown_user_role(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            add_user(conn, {"id": "x", "role": "superuser"})
        assert exc_info.value.code == "USER_INVALID"

    def test_missing_records(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            get_user(conn, "ghost")
        assert exc_info.value.code == "USER_NOT_FOUND"
        with pytest.raises(EngagementError) as exc_info:
            get_project(conn, "ghost")
        assert exc_info.value.code == "PROJECT_NOT_FOUND"

    def test_duplicate_project(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            create_project(conn, {"id": "p1"})
        assert exc_info.value.code == "PROJECT_EXISTS"

    def test_update_team(self, conn):
        update_team(conn, "p1", {"staff_ids": ["st", "st2"]})
        project = get_project(conn, "p1")
        assert project.team_assignments.staff_ids == ["st", "st2"]
        assert project.team_assignments.manager_ids == ["mg"]
        assert project.lead_developer_id == "ld"


class TestReview:
    def test_review_goes_to_own_bucket(self, conn):
        result = review_section(conn, "p1", "s1", "st")
        assert result["role"] == "staff"
        assert result["status"] == "ready_for_review"
        assert result["entry"]["user_name"] == "ST Auditor"
        assert [entry.user_id for entry in _bucket(conn, "staff")] == ["st"]

    def test_reviews_are_appended(self, conn):
        review_section(conn, "p1", "s1", "mg")
        review_section(conn, "p1", "s1", "mg")
        assert len(_bucket(conn, "manager")) == 2
        assert len(section_review_summary(get_project(conn, "p1"), "s1", None)["log"]) == 2

    def test_lead_partner_marks_reviewed(self, conn):
        result = review_section(conn, "p1", "s1", "lp")
        assert result["status"] == "reviewed"
        assert result["current_review_level"] == "in_progress"

    def test_all_roles_complete_the_section(self, conn):
        for user_id in ("lp", "st", "pa", "ic", "mg"):
            result = review_section(conn, "p1", "s1", user_id)
        assert result["current_review_level"] == "completed"
        assert result["indicator"] == "green"

    @pytest.mark.parametrize("user_id", ["ld", "out"])
    def test_forbidden_reviewers(self, conn, user_id):
        with pytest.raises(EngagementError) as exc_info:
            review_section(conn, "p1", "s1", user_id)
        assert exc_info.value.code == "REVIEW_FORBIDDEN"

    def test_excluded_section(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            review_section(conn, "p1", "team-management", "dev")
        assert exc_info.value.code == "REVIEW_FORBIDDEN"

    def test_privileged_reviewer_names_the_bucket(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            review_section(conn, "p1", "s1", "dev")
        assert exc_info.value.code == "REVIEW_ROLE_REQUIRED"

        result = review_section(conn, "p1", "s1", "admin", role="incharge")
        assert result["role"] == "in_charge"
        assert [entry.user_id for entry in _bucket(conn, "in_charge")] == ["admin"]

    def test_role_mismatch(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            review_section(conn, "p1", "s1", "st", role="manager")
        assert exc_info.value.code == "REVIEW_ROLE_MISMATCH"

    def test_reviews_of_other_sections_are_kept(self, conn):
        review_section(conn, "p1", "s1", "st")
        review_section(conn, "p1", "s2", "mg")
        project = get_project(conn, "p1")
        assert set(project.reviews) == {"s1", "s2"}


class TestUnreview:
    def test_higher_role_removes_newest_entry_and_logs(self, conn):
        review_section(conn, "p1", "s1", "st")
        review_section(conn, "p1", "s1", "st")
        first, second = _bucket(conn, "staff")

        result = unreview_section(conn, "p1", "s1", "mg", "staff", "st")
        assert result["removed"]["reviewed_at"] == second.reviewed_at
        remaining = _bucket(conn, "staff")
        assert len(remaining) == 1
        assert remaining[0].reviewed_at == first.reviewed_at

        logs = get_project(conn, "p1").reviews["s1"].unreview_logs
        assert len(logs) == 1
        assert logs[0].unreviewed_by == "mg"
        assert logs[0].original_reviewer_id == "st"
        assert logs[0].original_reviewer_name == "ST Auditor"
        assert logs[0].role == "staff"

    def test_removing_last_entry_uncompletes(self, conn):
        for user_id in ("st", "ic", "mg", "pa", "lp"):
            review_section(conn, "p1", "s1", user_id)
        result = unreview_section(conn, "p1", "s1", "lp", "partner", "pa")
        assert result["current_review_level"] == "in_progress"
        assert result["pending_roles"] == ["partner"]
        assert [item["type"] for item in result["log"]].count("unreview") == 1

    def test_lower_role_and_self_are_denied(self, conn):
        review_section(conn, "p1", "s1", "mg")
        with pytest.raises(EngagementError) as exc_info:
            unreview_section(conn, "p1", "s1", "st", "manager", "mg")
        assert exc_info.value.code == "UNREVIEW_FORBIDDEN"
        with pytest.raises(EngagementError) as exc_info:
            unreview_section(conn, "p1", "s1", "mg", "manager", "mg")
        assert exc_info.value.code == "UNREVIEW_FORBIDDEN"
        assert len(_bucket(conn, "manager")) == 1

    def test_missing_entry(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            unreview_section(conn, "p1", "s1", "dev", "staff", "st")
        assert exc_info.value.code == "REVIEW_NOT_FOUND"

    def test_unknown_role(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            unreview_section(conn, "p1", "s1", "dev", "director", "st")
        assert exc_info.value.code == "REVIEW_ROLE_INVALID"


class TestSignOff:
    def test_parent_blocked_until_children_signed(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            sign_off_section(conn, "p1", "scope", "mg", SECTIONS)
        assert exc_info.value.code == "SIGNOFF_BLOCKED"

        sign_off_section(conn, "p1", "entity", "ic", SECTIONS)
        sign_off_section(conn, "p1", "strategy", "ic", SECTIONS)
        result = sign_off_section(conn, "p1", "scope", "mg", SECTIONS)

        assert result["signed"] is True
        assert result["signed_by"] == "mg"
        assert rules.is_signed_off("scope", get_project(conn, "p1"))

    def test_level_gate(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            sign_off_section(conn, "p1", "materiality", "ic", SECTIONS)
        assert exc_info.value.code == "SIGNOFF_FORBIDDEN"
        with pytest.raises(EngagementError) as exc_info:
            sign_off_section(conn, "p1", "entity", "st", SECTIONS)
        assert exc_info.value.code == "SIGNOFF_FORBIDDEN"
        assert sign_off_section(conn, "p1", "materiality", "ld", SECTIONS)["signed"] is True

    def test_section_without_level(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            sign_off_section(conn, "p1", "notes", "dev", SECTIONS)
        assert exc_info.value.code == "SIGNOFF_NOT_SUPPORTED"
        assert sign_off_section(conn, "p1", "notes", "dev", SECTIONS, level="manager")["level"] == "manager"

    def test_unsign(self, conn):
        sign_off_section(conn, "p1", "materiality", "mg", SECTIONS)
        result = unsign_section(conn, "p1", "materiality", "pa", SECTIONS)
        assert result["signed"] is False
        assert not rules.is_signed_off("materiality", get_project(conn, "p1"))

        with pytest.raises(EngagementError) as exc_info:
            unsign_section(conn, "p1", "materiality", "pa", SECTIONS)
        assert exc_info.value.code == "SIGNOFF_NOT_FOUND"

    def test_signoff_is_stored_on_project(self, conn):
        sign_off_section(conn, "p1", "materiality", "mg", SECTIONS)
        document = get_document(conn, "projects/p1")
        assert document["signoffs"]["materiality"]["signed_by"] == "mg"
        assert document["team_assignments"] == TEAM

    def test_configured_sidebar(self, conn):
        sections = load_sections()
        assert rules.find_section(sections, "entity-profile").sign_off_level == "incharge"
        with pytest.raises(EngagementError) as exc_info:
            sign_off_section(conn, "p1", "engagement-scope", "mg")
        assert exc_info.value.code == "SIGNOFF_BLOCKED"

    def test_summary(self, conn):
        sign_off_section(conn, "p1", "entity", "ic", SECTIONS)
        review_section(conn, "p1", "entity", "mg")
        summary = signoffs_summary(get_project(conn, "p1"), SECTIONS, get_user(conn, "mg"), excluded_sections=[])

        scope = summary[0]
        assert scope["blocked"] is True
        assert scope["can_unsign"] is True
        entity = scope["children"][0]
        assert entity["signed"] is True
        assert entity["indicator"] == "blue"
        assert entity["review_status"] == "ready_for_review"
        assert summary[2]["can_unsign"] is False


class TestReviewGates:
    def test_parent_review_waits_for_sub_sections(self, conn):
        summary = section_review_summary(get_project(conn, "p1"), "engagement-scope", get_user(conn, "st"))
        assert summary["descendants_reviewed"] is False
        with pytest.raises(EngagementError) as exc_info:
            review_section(conn, "p1", "engagement-scope", "st")
        assert exc_info.value.code == "REVIEW_BLOCKED"
        assert get_project(conn, "p1").reviews == {}

        review_section(conn, "p1", "entity-profile", "lp")
        with pytest.raises(EngagementError) as exc_info:
            review_section(conn, "p1", "engagement-scope", "dev", role="staff")
        assert exc_info.value.code == "REVIEW_BLOCKED"

        review_section(conn, "p1", "audit-strategy", "lp")
        result = review_section(conn, "p1", "engagement-scope", "st")
        assert result["descendants_reviewed"] is True
        assert result["status"] == "ready_for_review"

    def test_explicit_sections(self, conn):
        with pytest.raises(EngagementError) as exc_info:
            review_section(conn, "p1", "scope", "mg", sections=SECTIONS)
        assert exc_info.value.code == "REVIEW_BLOCKED"
        assert review_section(conn, "p1", "team", "mg", sections=SECTIONS)["role"] == "manager"

    def test_configured_exclusions_block_reviews(self, conn, tmp_path, monkeypatch):
        (tmp_path / "review_config.json").write_text('{"excluded_sections": ["materiality"]}', encoding="utf-8")
        monkeypatch.setattr(config, "DATA_DIR", tmp_path)

        with pytest.raises(EngagementError) as exc_info:
            review_section(conn, "p1", "materiality", "st")
        assert exc_info.value.code == "REVIEW_FORBIDDEN"

        summary = section_review_summary(get_project(conn, "p1"), "materiality", get_user(conn, "st"))
        assert summary["can_review"] is False
        assert summary["indicator"] == "grey"

        assert review_section(conn, "p1", "team-management", "st")["role"] == "staff"
