# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting utilities.
"""

import pytest

from cityresolve.models.entities import Identity, Issue, Reporter
from cityresolve.models.enums import DenialReason, IssuePriority, IssueStatus, UserRole
from cityresolve.models.responses import HalLink
from cityresolve.services.hal import (
    AffordanceLinkBuilder, HalFormatter, HalLinkBuilder, create_hal_formatter
)

BASE_URL = "https://api.example.com"

ALICE = Identity(email="alice@example.com", name="Alice")
CAROL = Identity(email="carol@example.com", name="Carol")
BOB = Identity(email="bob@city.gov", name="Bob", role=UserRole.STAFF)
DAN = Identity(email="dan@city.gov", name="Dan", role=UserRole.STAFF)
ADA = Identity(email="ada@city.gov", name="Ada", role=UserRole.ADMIN)


def _issue(**overrides):
    data = {
        "reported_by": Reporter(name="Alice", email="alice@example.com"),
        "title": "Broken streetlight",
        "category": "Lighting",
    }
    data.update(overrides)
    return Issue(**data)


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_basic_link(self):
        builder = HalLinkBuilder(BASE_URL + "/")

        link = builder.build_link("/api/issues/123")

        assert isinstance(link, HalLink)
        assert link.href == "https://api.example.com/api/issues/123"
        assert link.method == "GET"
        assert link.type is None
        assert link.templated is None

    def test_build_action_link(self):
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_action_link("/api/issues/123", "upvote")

        assert link.href == "https://api.example.com/api/issues/123/upvote"
        assert link.method == "PATCH"
        assert link.type == "application/json"
        assert link.title == "Upvote"


class TestAffordanceLinkBuilder:
    """Links only advertise actions the viewer may take."""

    @pytest.fixture
    def builder(self):
        return AffordanceLinkBuilder(BASE_URL)

    def test_anonymous_viewer_gets_read_links(self, builder):
        links = builder.build_issue_affordances(_issue(), None)

        assert set(links) == {"self", "collection", "timeline"}

    def test_reporter_can_edit_and_boost_but_not_upvote(self, builder):
        links = builder.build_issue_affordances(_issue(), ALICE)

        assert "edit" in links
        assert links["boost"].method == "POST"
        assert links["boost"].href.endswith("/api/payments")
        assert "upvote" not in links

    def test_other_citizen_can_upvote_once(self, builder):
        issue = _issue()
        assert "upvote" in builder.build_issue_affordances(issue, CAROL)

        voted = _issue(upvotes=1, upvoted_by=[CAROL.email])
        links = builder.build_issue_affordances(voted, CAROL)
        assert "upvote" not in links
        assert "edit" not in links

    def test_blocked_citizen_gets_no_upvote(self, builder):
        blocked = CAROL.model_copy(update={"is_blocked": True})

        assert "upvote" not in builder.build_issue_affordances(_issue(), blocked)

    def test_boosted_issue_has_no_boost_link(self, builder):
        links = builder.build_issue_affordances(_issue(priority=IssuePriority.HIGH), ALICE)

        assert "boost" not in links

    def test_admin_moderation_links(self, builder):
        links = builder.build_issue_affordances(_issue(), ADA)

        assert {"assign", "reject", "status"} <= set(links)

    def test_status_link_only_for_assigned_staff(self, builder):
        issue = _issue(status=IssueStatus.IN_PROGRESS, assigned_staff=BOB.to_staff_snapshot())

        assert "status" in builder.build_issue_affordances(issue, BOB)
        assert "status" not in builder.build_issue_affordances(issue, DAN)

    def test_staff_can_assign_but_not_reject(self, builder):
        links = builder.build_issue_affordances(_issue(), DAN)

        assert "assign" in links
        assert "reject" not in links
        assert "assign" not in builder.build_issue_affordances(_issue(), CAROL)

    def test_terminal_issue_has_no_actions(self, builder):
        issue = _issue(status=IssueStatus.RESOLVED)

        for viewer in (ALICE, CAROL, BOB, ADA):
            assert set(builder.build_issue_affordances(issue, viewer)) == {"self", "collection", "timeline"}

    def test_identity_moderation_links(self, builder):
        assert set(builder.build_identity_affordances(CAROL, ADA)) == {"self", "block", "role"}
        assert set(builder.build_identity_affordances(CAROL, CAROL)) == {"self"}
        assert set(builder.build_identity_affordances(ADA, ADA)) == {"self"}


class TestHalFormatter:

    @pytest.fixture
    def formatter(self):
        return create_hal_formatter(BASE_URL)

    def test_format_issue(self, formatter):
        issue = _issue()

        response = formatter.format_issue(issue, CAROL)

        assert response["id"] == issue.id
        assert response["reportedBy"]["email"] == "alice@example.com"
        assert response["status"] == "pending"
        assert response["_links"]["self"]["href"] == f"{BASE_URL}/api/issues/{issue.id}"
        assert "upvote" in response["_links"]

    def test_collection_pagination_links(self, formatter):
        issues = [_issue(title=f"Issue {index}") for index in range(10)]

        response = formatter.format_issue_collection(
            issues, total=25, page=2, limit=10, query_params={"category": "Roads", "status": None}
        )

        assert response["total"] == 25
        assert response["totalPages"] == 3
        assert len(response["_embedded"]["issues"]) == 10
        links = response["_links"]
        assert set(links) == {"self", "first", "prev", "next", "last"}
        assert links["next"]["href"] == f"{BASE_URL}/api/issues?category=Roads&page=3&limit=10"
        assert "status" not in links["self"]["href"]

    def test_single_page_collection(self, formatter):
        response = formatter.format_issue_collection([], total=0, page=1, limit=10)

        assert set(response["_links"]) == {"self"}
        assert response["_embedded"]["issues"] == []

    def test_format_denial(self, formatter):
        body, status = formatter.format_denial(
            DenialReason.ALREADY_UPVOTED, "You have already upvoted this issue.", "/api/issues/1/upvote"
        )

        assert status == 409
        assert body["reason"] == "already-upvoted"
        assert body["type"].endswith("/already-upvoted")
        assert body["instance"] == "/api/issues/1/upvote"

    @pytest.mark.parametrize("reason,status", [
        (DenialReason.NOT_FOUND, 404),
        (DenialReason.FREE_LIMIT_REACHED, 403),
        (DenialReason.NOT_ASSIGNED, 403),
        (DenialReason.TERMINAL_STATE, 409),
        (DenialReason.CONFLICT, 409),
    ])
    def test_denial_status_codes(self, formatter, reason, status):
        assert formatter.format_denial(reason, "", "/x")[1] == status

    def test_validation_error_has_schema_link(self, formatter):
        body = formatter.format_validation_error("Invalid body", "/api/issues", [{"field": "title"}])

        assert body["status"] == 422
        assert body["errors"] == [{"field": "title"}]
        assert "schema" in body["_links"]

    def test_format_timeline(self, formatter):
        response = formatter.format_timeline("abc", [])

        assert response["issueId"] == "abc"
        assert response["_links"]["issue"]["href"] == f"{BASE_URL}/api/issues/abc"
        assert response["_embedded"]["entries"] == []

    def test_formatter_type(self, formatter):
        assert isinstance(formatter, HalFormatter)
