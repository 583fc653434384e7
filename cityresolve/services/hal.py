# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode
import math

from ..models.entities import Identity, Issue, TimelineEntry
from ..models.enums import DenialReason, IssuePriority, IssueStatus
from ..models.responses import HalLink

PROBLEM_BASE_URL = "https://api.city-resolve.org/problems/"

# HTTP status for each policy denial
DENIAL_STATUS = {
    DenialReason.NOT_FOUND: 404,
    DenialReason.BLOCKED: 403,
    DenialReason.FREE_LIMIT_REACHED: 403,
    DenialReason.FORBIDDEN: 403,
    DenialReason.NOT_STAFF: 403,
    DenialReason.NOT_ASSIGNED: 403,
    DenialReason.OWN_ISSUE: 409,
    DenialReason.ALREADY_UPVOTED: 409,
    DenialReason.TERMINAL_STATE: 409,
    DenialReason.INVALID_TRANSITION: 409,
    DenialReason.NO_CHANGE: 409,
    DenialReason.ALREADY_BOOSTED: 409,
    DenialReason.NOT_EDITABLE: 409,
    DenialReason.CONFLICT: 409,
}

_DENIAL_TITLES = {
    404: "Resource Not Found",
    403: "Action Not Permitted",
    409: "Issue State Conflict",
}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url + '/', path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "PATCH",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        return self.build_link(
            f"{resource_path}/{action}",
            method=method,
            content_type="application/json",
            title=title or action.title()
        )


def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Dict[str, Any]]:
    return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on role and issue state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_issue_affordances(self, issue: Issue, viewer: Optional[Identity]) -> Dict[str, HalLink]:
        """
        Links for one issue. Actions only appear when the viewer could
        perform them right now; terminal issues only expose read links.
        """
        base_path = f"/api/issues/{issue.id}"
        links = {
            'self': self.link_builder.build_link(base_path, title="Self"),
            'collection': self.link_builder.build_link("/api/issues", title="Collection"),
            'timeline': self.link_builder.build_link(f"{base_path}/timeline", title="Timeline"),
        }

        if viewer is None or issue.is_terminal():
            return links

        is_reporter = issue.is_reporter(viewer.email)

        if not is_reporter and not viewer.is_blocked and viewer.email not in issue.upvoted_by:
            links['upvote'] = self.link_builder.build_action_link(
                base_path, "upvote", title="Upvote issue"
            )

        if is_reporter and issue.status == IssueStatus.PENDING.value and not viewer.is_blocked:
            links['edit'] = self.link_builder.build_link(
                base_path, method="PATCH", content_type="application/json", title="Edit issue"
            )

        if is_reporter and issue.priority == IssuePriority.NORMAL.value:
            links['boost'] = self.link_builder.build_link(
                "/api/payments", method="POST", content_type="application/json",
                title="Boost issue priority"
            )

        if viewer.is_admin() or viewer.is_staff():
            links['assign'] = self.link_builder.build_action_link(
                base_path, "assign", title="Assign staff"
            )

        if viewer.is_admin():
            links['reject'] = self.link_builder.build_action_link(
                base_path, "reject", title="Reject issue"
            )

        assigned_to_viewer = (
            issue.assigned_staff is not None and issue.assigned_staff.email == viewer.email
        )
        if viewer.is_admin() or (viewer.is_staff() and assigned_to_viewer):
            links['status'] = self.link_builder.build_action_link(
                base_path, "status", title="Update status"
            )

        return links

    def build_identity_affordances(self, identity: Identity, viewer: Optional[Identity]) -> Dict[str, HalLink]:
        """Links for an identity; moderation links for admins only."""
        base_path = f"/api/users/{identity.email}"
        links = {'self': self.link_builder.build_link(base_path, title="Self")}

        if viewer is not None and viewer.is_admin() and viewer.email != identity.email:
            admin_path = f"/api/admin/users/{identity.email}"
            links['block'] = self.link_builder.build_action_link(
                admin_path, "block", title="Block or unblock user"
            )
            links['role'] = self.link_builder.build_action_link(
                admin_path, "role", title="Change role"
            )

        return links


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def format_issue(self, issue: Issue, viewer: Optional[Identity] = None) -> Dict[str, Any]:
        """Format an issue with HAL links."""
        response = issue.to_response()
        response['_links'] = _dump_links(self.affordance_builder.build_issue_affordances(issue, viewer))
        return response

    def format_issue_collection(
        self,
        issues: List[Issue],
        total: int,
        page: int,
        limit: int,
        viewer: Optional[Identity] = None,
        collection_path: str = "/api/issues",
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format a page of issues with pagination links."""
        total_pages = math.ceil(total / limit) if limit > 0 else 1
        params = {key: value for key, value in (query_params or {}).items() if value is not None}

        def page_link(number: int, title: str) -> HalLink:
            query = urlencode({**params, 'page': number, 'limit': limit})
            return self.link_builder.build_link(f"{collection_path}?{query}", title=title)

        links = {'self': page_link(page, "Current page")}
        if page > 1:
            links['first'] = page_link(1, "First page")
            links['prev'] = page_link(page - 1, "Previous page")
        if page < total_pages:
            links['next'] = page_link(page + 1, "Next page")
            links['last'] = page_link(total_pages, "Last page")

        return {
            'total': total,
            'page': page,
            'limit': limit,
            'totalPages': total_pages,
            '_links': _dump_links(links),
            '_embedded': {
                'issues': [self.format_issue(issue, viewer) for issue in issues]
            }
        }

    def format_issue_list(self, issues: List[Issue], path: str,
                          viewer: Optional[Identity] = None) -> Dict[str, Any]:
        """Unpaginated list of issues (reporter and staff views)."""
        return {
            'total': len(issues),
            '_links': _dump_links({'self': self.link_builder.build_link(path, title="Self")}),
            '_embedded': {
                'issues': [self.format_issue(issue, viewer) for issue in issues]
            }
        }

    def format_timeline(self, issue_id: str, entries: List[TimelineEntry]) -> Dict[str, Any]:
        """Format an issue timeline, newest first."""
        base_path = f"/api/issues/{issue_id}"
        links = {
            'self': self.link_builder.build_link(f"{base_path}/timeline", title="Self"),
            'issue': self.link_builder.build_link(base_path, title="Issue"),
        }
        return {
            'issueId': issue_id,
            'total': len(entries),
            '_links': _dump_links(links),
            '_embedded': {
                'entries': [entry.to_response() for entry in entries]
            }
        }

    def format_identity(self, identity: Identity, viewer: Optional[Identity] = None) -> Dict[str, Any]:
        """Format an identity with HAL links."""
        response = identity.to_response()
        response['_links'] = _dump_links(
            self.affordance_builder.build_identity_affordances(identity, viewer)
        )
        return response

    def format_resource(self, data: Dict[str, Any], path: str) -> Dict[str, Any]:
        """Attach a self link to a plain resource."""
        response = dict(data)
        response['_links'] = _dump_links({'self': self.link_builder.build_link(path, title="Self")})
        return response

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        reason: Optional[str] = None,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URL}{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if reason is not None:
            error_response['reason'] = reason

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {
            'help': self.link_builder.build_link(f"/docs/errors#{error_type}", title="Error documentation")
        }
        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link("/openapi/openapi.json", title="API schema")

        error_response['_links'] = _dump_links(links)
        return error_response

    def format_denial(self, reason: DenialReason, detail: str, instance: str):
        """
        Format a policy denial.

        Returns:
            Tuple of (problem document, HTTP status)
        """
        reason = DenialReason(reason)
        status = DENIAL_STATUS.get(reason, 409)
        body = self.build_error_response(
            reason.value, _DENIAL_TITLES[status], status, detail or reason.value, instance,
            reason=reason.value
        )
        return body, status

    def format_validation_error(self, detail: str, instance: str,
                                validation_errors: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self.build_error_response(
            "validation-error", "Validation Error", 422, detail, instance,
            validation_errors=validation_errors
        )

    def format_authentication_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            "authentication-required", "Authentication Required", 401, detail, instance
        )

    def format_authorization_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            "insufficient-permissions", "Insufficient Permissions", 403, detail, instance
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            "resource-not-found", "Resource Not Found", 404, detail, instance
        )

    def format_conflict_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            "resource-conflict", "Resource Conflict", 409, detail, instance
        )

    def format_service_unavailable(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            "service-unavailable", "Service Unavailable", 503, detail, instance
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            "internal-server-error", "Internal Server Error", 500, detail, instance
        )


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
