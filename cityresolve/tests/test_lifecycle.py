# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the issue lifecycle rules and the free-tier quota.
"""

import pytest

from cityresolve.domain import lifecycle
from cityresolve.domain.quota import may_create_issue
from cityresolve.models.entities import Identity, Issue, Reporter, StaffSnapshot
from cityresolve.models.enums import DenialReason, IssuePriority, IssueStatus, TimelineStatus, UserRole

ALICE = Identity(email="alice@example.com", name="Alice")
BOB = Identity(email="bob@city.gov", name="Bob", role=UserRole.STAFF)
DAN = Identity(email="dan@city.gov", name="Dan", role=UserRole.STAFF)
ADA = Identity(email="ada@city.gov", name="Ada", role=UserRole.ADMIN)


def _issue(status=IssueStatus.PENDING, assigned=None, priority=IssuePriority.NORMAL):
    return Issue(
        reported_by=Reporter(name="Alice", email="alice@example.com"),
        title="Pothole",
        category="Roads",
        status=status,
        priority=priority,
        assigned_staff=assigned.to_staff_snapshot() if assigned else None
    )


class TestTransitionTable:

    @pytest.mark.parametrize("current,target", [
        ("pending", "in-progress"),
        ("pending", "rejected"),
        ("in-progress", "resolved"),
        ("in-progress", "closed"),
        ("in-progress", "rejected"),
    ])
    def test_allowed_edges(self, current, target):
        assert lifecycle.validate_status_transition(current, target).is_valid

    @pytest.mark.parametrize("current,target", [
        ("pending", "resolved"),
        ("pending", "closed"),
        ("in-progress", "pending"),
    ])
    def test_disallowed_edges(self, current, target):
        result = lifecycle.validate_status_transition(current, target)
        assert result.reason == DenialReason.INVALID_TRANSITION

    @pytest.mark.parametrize("terminal", ["resolved", "rejected", "closed"])
    def test_terminal_states_have_no_exits(self, terminal):
        for target in ("pending", "in-progress", "resolved", "rejected", "closed"):
            result = lifecycle.validate_status_transition(terminal, target)
            assert result.reason == DenialReason.TERMINAL_STATE

    def test_same_status_is_no_change(self):
        result = lifecycle.validate_status_transition("in-progress", IssueStatus.IN_PROGRESS)
        assert result.reason == DenialReason.NO_CHANGE


class TestAssignment:

    def test_staff_can_be_assigned(self):
        assert lifecycle.validate_assignment(_issue(), BOB).is_valid

    def test_non_staff_rejected(self):
        assert lifecycle.validate_assignment(_issue(), ALICE).reason == DenialReason.NOT_STAFF
        assert lifecycle.validate_assignment(_issue(), None).reason == DenialReason.NOT_STAFF

    def test_blocked_staff_rejected(self):
        blocked = BOB.model_copy(update={"is_blocked": True})
        assert lifecycle.validate_assignment(_issue(), blocked).reason == DenialReason.BLOCKED

    def test_terminal_issue_cannot_be_assigned(self):
        result = lifecycle.validate_assignment(_issue(status=IssueStatus.CLOSED), BOB)
        assert result.reason == DenialReason.TERMINAL_STATE

    def test_reassignment_while_in_progress_allowed(self):
        issue = _issue(status=IssueStatus.IN_PROGRESS, assigned=BOB)
        assert lifecycle.validate_assignment(issue, DAN).is_valid


class TestStatusUpdate:

    def test_assigned_staff_can_resolve(self):
        issue = _issue(status=IssueStatus.IN_PROGRESS, assigned=BOB)
        assert lifecycle.validate_status_update(issue, "resolved", BOB).is_valid

    def test_other_staff_cannot_update(self):
        issue = _issue(status=IssueStatus.IN_PROGRESS, assigned=BOB)
        assert lifecycle.validate_status_update(issue, "resolved", DAN).reason == DenialReason.NOT_ASSIGNED

    def test_citizen_cannot_update(self):
        issue = _issue(status=IssueStatus.IN_PROGRESS, assigned=BOB)
        assert lifecycle.validate_status_update(issue, "resolved", ALICE).reason == DenialReason.FORBIDDEN

    def test_staff_cannot_reject(self):
        issue = _issue(status=IssueStatus.IN_PROGRESS, assigned=BOB)
        assert lifecycle.validate_status_update(issue, "rejected", BOB).reason == DenialReason.FORBIDDEN

    def test_admin_cannot_start_work_without_assignment(self):
        result = lifecycle.validate_status_update(_issue(), "in-progress", ADA)
        assert result.reason == DenialReason.INVALID_TRANSITION

    def test_admin_can_close_any_in_progress_issue(self):
        issue = _issue(status=IssueStatus.IN_PROGRESS, assigned=BOB)
        assert lifecycle.validate_status_update(issue, "closed", ADA).is_valid

    def test_rejection_is_admin_only(self):
        assert lifecycle.validate_rejection(_issue(), ADA).is_valid
        assert lifecycle.validate_rejection(_issue(), BOB).reason == DenialReason.FORBIDDEN
        resolved = _issue(status=IssueStatus.RESOLVED, assigned=BOB)
        assert lifecycle.validate_rejection(resolved, ADA).reason == DenialReason.TERMINAL_STATE


class TestBoostAndEdit:

    def test_boost_once(self):
        assert lifecycle.validate_boost(_issue()).is_valid
        boosted = _issue(priority=IssuePriority.HIGH)
        assert lifecycle.validate_boost(boosted).reason == DenialReason.ALREADY_BOOSTED

    def test_boost_terminal_issue_denied(self):
        assert lifecycle.validate_boost(_issue(status=IssueStatus.REJECTED)).reason == DenialReason.TERMINAL_STATE

    def test_only_reporter_edits_pending_issue(self):
        assert lifecycle.validate_content_edit(_issue(), ALICE).is_valid
        assert lifecycle.validate_content_edit(_issue(), BOB).reason == DenialReason.FORBIDDEN

        in_progress = _issue(status=IssueStatus.IN_PROGRESS, assigned=BOB)
        assert lifecycle.validate_content_edit(in_progress, ALICE).reason == DenialReason.NOT_EDITABLE


class TestTimelineBuilders:

    def test_messages(self):
        assert lifecycle.assignment_message(BOB) == "Issue assigned to Bob"
        assert lifecycle.status_message("resolved") == "Status changed to resolved"
        assert lifecycle.status_message("resolved", " Fixed the lamp ") == "Fixed the lamp"
        assert lifecycle.rejection_message("duplicate") == "Issue rejected by admin: duplicate"

    def test_build_entry(self):
        entry = lifecycle.build_timeline_entry(
            "abc", IssueStatus.IN_PROGRESS, "Issue assigned to Bob", "Ada", UserRole.ADMIN
        )
        assert entry.status == "in-progress"
        assert entry.role == "admin"
        assert entry.issue_id == "abc"

    def test_build_boost_entry(self):
        entry = lifecycle.build_timeline_entry(
            "abc", TimelineStatus.BOOSTED, lifecycle.BOOSTED_MESSAGE, "Alice", UserRole.CITIZEN
        )
        assert entry.status == "boosted"
        assert entry.role == "citizen"

    def test_build_entry_from_plain_strings(self):
        entry = lifecycle.build_timeline_entry("abc", "resolved", "Fixed", "Bob", "staff")
        assert entry.status == "resolved"
        assert entry.role == "staff"


class TestQuota:

    def test_unverified_citizen_below_limit(self):
        assert may_create_issue(ALICE, 2).allowed

    def test_unverified_citizen_at_limit(self):
        decision = may_create_issue(ALICE, 3)
        assert not decision.allowed
        assert decision.reason == DenialReason.FREE_LIMIT_REACHED

    def test_verified_citizen_unlimited(self):
        premium = ALICE.model_copy(update={"is_verified": True})
        assert may_create_issue(premium, 50).allowed

    def test_blocked_identity_denied_even_if_verified(self):
        blocked = ALICE.model_copy(update={"is_verified": True, "is_blocked": True})
        decision = may_create_issue(blocked, 0)
        assert decision.reason == DenialReason.BLOCKED

    def test_custom_limit(self):
        assert not may_create_issue(ALICE, 1, limit=1).allowed
