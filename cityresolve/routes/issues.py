# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Issue endpoints: reporting, browsing, upvoting and the moderation workflow.
"""

from flask import current_app, g, jsonify, request
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..domain.issues import IssueFilters
from ..domain.results import WorkflowResult
from ..middleware.auth import optional_auth, require_auth
from ..middleware.error_handler import denial_response, not_found_response
from ..models.enums import DenialReason, UserRole
from ..models.requests import (
    AssignStaffRequest, CreateIssueRequest, IssuePath, IssueQuery,
    RejectIssueRequest, UpdateIssueRequest, UpdateStatusRequest
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

issues_tag = Tag(name="Issues", description="Issue reporting and lifecycle")
issues_bp = APIBlueprint(
    'issues',
    __name__,
    url_prefix='/api',
    abp_tags=[issues_tag]
)

NOT_FOUND_DETAIL = "Issue not found"


def _workflow_response(result: WorkflowResult, status: int = 200):
    """Render an engine result: the updated issue, or a problem document."""
    if not result.success:
        return denial_response(result.reason, result.message)

    body = current_app.hal_formatter.format_issue(result.issue, g.identity)
    if result.timeline_entry is not None:
        body['_embedded'] = {'timelineEntry': result.timeline_entry.to_response()}
    return jsonify(body), status


@issues_bp.get('/issues')
@optional_auth
def list_issues(query: IssueQuery):
    """
    List issues, boosted first and newest first within each priority.

    Supports case-insensitive title search and status/category filters.
    """
    with tracer.start_as_current_span("issues.route.list") as span:
        issues, pagination = current_app.issue_service.list_issues(
            IssueFilters.from_query(query), page=query.page, limit=query.limit
        )
        span.set_attribute("issues.count", len(issues))

        body = current_app.hal_formatter.format_issue_collection(
            issues,
            pagination.total,
            query.page,
            query.limit,
            viewer=g.identity,
            query_params={"search": query.search, "status": query.status, "category": query.category}
        )
        return jsonify(body)


@issues_bp.get('/issues/<issue_id>')
@optional_auth
def get_issue(path: IssuePath):
    """Issue detail with the actions available to the caller."""
    issue = current_app.issue_service.get_issue(path.issue_id)
    if issue is None:
        return not_found_response(NOT_FOUND_DETAIL)
    return jsonify(current_app.hal_formatter.format_issue(issue, g.identity))


@issues_bp.get('/issues/<issue_id>/timeline')
@optional_auth
def get_issue_timeline(path: IssuePath):
    """Timeline of an issue, newest entry first."""
    entries = current_app.issue_service.get_timeline(path.issue_id)
    if entries is None:
        return not_found_response(NOT_FOUND_DETAIL)
    return jsonify(current_app.hal_formatter.format_timeline(path.issue_id, entries))


@issues_bp.post('/issues')
@require_auth()
def create_issue(body: CreateIssueRequest):
    """
    Report a new issue.

    Unverified citizens may report a limited number of issues; blocked
    identities may not report at all.
    """
    result = current_app.issue_service.create_issue(g.identity, body)
    if result.success:
        logger.info("Issue created via API", extra={"issue_id": result.issue.id, "email": g.identity.email})
    return _workflow_response(result, status=201)


@issues_bp.patch('/issues/<issue_id>')
@require_auth()
def edit_issue(path: IssuePath, body: UpdateIssueRequest):
    """Edit the content of your own issue while it is still pending."""
    result = current_app.issue_service.update_content(path.issue_id, g.identity, body.changes())
    return _workflow_response(result)


@issues_bp.patch('/issues/<issue_id>/upvote')
@require_auth()
def upvote_issue(path: IssuePath):
    """Upvote someone else's issue, once."""
    if g.identity.is_blocked:
        return denial_response(DenialReason.BLOCKED, "Blocked identities cannot upvote")

    result = current_app.issue_service.upvote(path.issue_id, g.identity.email)
    return _workflow_response(result)


@issues_bp.patch('/issues/<issue_id>/assign')
@require_auth(roles=[UserRole.STAFF, UserRole.ADMIN])
def assign_issue(path: IssuePath, body: AssignStaffRequest):
    """Assign a staff member; the issue moves to in-progress."""
    staff = current_app.identity_service.lookup(body.staff_email)
    result = current_app.issue_service.assign_staff(path.issue_id, staff, g.identity)
    return _workflow_response(result)


@issues_bp.patch('/issues/<issue_id>/reject')
@require_auth(roles=[UserRole.ADMIN])
def reject_issue(path: IssuePath, body: RejectIssueRequest):
    """Reject an issue that is not yet in a terminal state."""
    result = current_app.issue_service.reject_issue(path.issue_id, g.identity, body.reason)
    return _workflow_response(result)


@issues_bp.patch('/issues/<issue_id>/status')
@require_auth(roles=[UserRole.STAFF, UserRole.ADMIN])
def update_issue_status(path: IssuePath, body: UpdateStatusRequest):
    """Move an issue along its lifecycle."""
    result = current_app.issue_service.update_status(
        path.issue_id, body.status, g.identity, body.message
    )
    return _workflow_response(result)


@issues_bp.get('/my-issues')
@require_auth()
def list_my_issues():
    """Issues reported by the caller, newest first."""
    issues = current_app.issue_service.list_reporter_issues(g.identity.email)
    return jsonify(current_app.hal_formatter.format_issue_list(issues, request.path, g.identity))


@issues_bp.get('/staff/issues')
@require_auth(roles=[UserRole.STAFF, UserRole.ADMIN])
def list_assigned_issues():
    """Issues assigned to the calling staff member."""
    issues = current_app.issue_service.list_assigned_issues(g.identity.email)
    return jsonify(current_app.hal_formatter.format_issue_list(issues, request.path, g.identity))
