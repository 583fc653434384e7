# SPDX-License-Identifier: Apache-2.0

"""
Issue lifecycle rules.

This module holds the explicit status transition table and the pure
precondition checks for every state-changing operation, plus the builders
for the timeline entries those operations append.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from ..models.entities import Identity, Issue, TimelineEntry, TERMINAL_STATUSES
from ..models.enums import (
    DenialReason, IssuePriority, IssueStatus, TimelineStatus, UserRole
)
from .results import ValidationResult

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    IssueStatus.PENDING.value: frozenset({
        IssueStatus.IN_PROGRESS.value,
        IssueStatus.REJECTED.value
    }),
    IssueStatus.IN_PROGRESS.value: frozenset({
        IssueStatus.RESOLVED.value,
        IssueStatus.CLOSED.value,
        IssueStatus.REJECTED.value
    }),
    IssueStatus.RESOLVED.value: frozenset(),
    IssueStatus.REJECTED.value: frozenset(),
    IssueStatus.CLOSED.value: frozenset()
}

EDITABLE_STATUSES = frozenset({IssueStatus.PENDING.value})

REPORTED_MESSAGE = "Issue reported by citizen"
BOOSTED_MESSAGE = "Issue priority boosted to High"


def _status_value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def _terminal(issue: Issue) -> ValidationResult:
    return ValidationResult.invalid(
        DenialReason.TERMINAL_STATE,
        f"Issue is already {issue.status} and cannot change"
    )


def validate_status_transition(current_status: str, new_status: str) -> ValidationResult:
    """
    Validate a status change against the transition table.

    Args:
        current_status: Current issue status
        new_status: Desired new status

    Returns:
        ValidationResult with the denial reason when the edge is not allowed
    """
    current = _status_value(current_status)
    target = _status_value(new_status)

    if current in TERMINAL_STATUSES:
        return ValidationResult.invalid(
            DenialReason.TERMINAL_STATE,
            f"Issue is already {current} and cannot change"
        )

    if current == target:
        return ValidationResult.invalid(
            DenialReason.NO_CHANGE,
            f"Issue is already {current}"
        )

    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        return ValidationResult.invalid(
            DenialReason.INVALID_TRANSITION,
            f"Invalid status transition from {current} to {target}"
        )

    return ValidationResult.valid()


def validate_assignment(issue: Issue, staff: Optional[Identity]) -> ValidationResult:
    """Check that ``staff`` may be assigned to ``issue``."""
    if issue.is_terminal():
        return _terminal(issue)

    if staff is None or not staff.is_staff():
        return ValidationResult.invalid(
            DenialReason.NOT_STAFF,
            "Issues can only be assigned to staff members"
        )

    if staff.is_blocked:
        return ValidationResult.invalid(
            DenialReason.BLOCKED,
            "Blocked staff members cannot be assigned"
        )

    return ValidationResult.valid()


def validate_rejection(issue: Issue, actor: Identity) -> ValidationResult:
    """Only admins reject, and only non-terminal issues."""
    if not actor.is_admin():
        return ValidationResult.invalid(DenialReason.FORBIDDEN, "Only admins can reject issues")

    return validate_status_transition(issue.status, IssueStatus.REJECTED)


def validate_status_update(issue: Issue, new_status: str, actor: Identity) -> ValidationResult:
    """
    Validate an explicit status update.

    Admins may update any issue; staff only issues assigned to them.
    Rejection goes through the admin rejection path, and work can only
    start once a staff member is assigned.
    """
    if not (actor.is_admin() or actor.is_staff()):
        return ValidationResult.invalid(DenialReason.FORBIDDEN, "Only staff can change issue status")

    if actor.is_staff():
        assigned = issue.assigned_staff
        if assigned is None or assigned.email != actor.email:
            return ValidationResult.invalid(
                DenialReason.NOT_ASSIGNED,
                "Issue is not assigned to you"
            )

    transition = validate_status_transition(issue.status, new_status)
    if not transition.is_valid:
        return transition

    target = _status_value(new_status)
    if target == IssueStatus.REJECTED.value and not actor.is_admin():
        return ValidationResult.invalid(DenialReason.FORBIDDEN, "Only admins can reject issues")

    if target == IssueStatus.IN_PROGRESS.value and issue.assigned_staff is None:
        return ValidationResult.invalid(
            DenialReason.INVALID_TRANSITION,
            "Assign a staff member to start work on an issue"
        )

    return ValidationResult.valid()


def validate_boost(issue: Issue) -> ValidationResult:
    """Priority can be raised on any non-terminal issue, once."""
    if issue.is_terminal():
        return _terminal(issue)

    if issue.priority == IssuePriority.HIGH:
        return ValidationResult.invalid(DenialReason.ALREADY_BOOSTED, "Issue is already boosted")

    return ValidationResult.valid()


def validate_content_edit(issue: Issue, identity: Identity) -> ValidationResult:
    """Only the reporter edits content, and only while the issue is pending."""
    if not issue.is_reporter(identity.email):
        return ValidationResult.invalid(DenialReason.FORBIDDEN, "Only the reporter can edit this issue")

    if identity.is_blocked:
        return ValidationResult.invalid(DenialReason.BLOCKED, "You are blocked from editing issues.")

    if issue.status not in EDITABLE_STATUSES:
        return ValidationResult.invalid(
            DenialReason.NOT_EDITABLE,
            f"Issue can no longer be edited (current status: {issue.status})"
        )

    return ValidationResult.valid()


def assignment_message(staff: Identity) -> str:
    return f"Issue assigned to {staff.name}"


def rejection_message(reason: Optional[str] = None) -> str:
    if reason and reason.strip():
        return f"Issue rejected by admin: {reason.strip()}"
    return "Issue rejected by admin"


def status_message(new_status: str, note: Optional[str] = None) -> str:
    if note and note.strip():
        return note.strip()
    return f"Status changed to {_status_value(new_status)}"


def build_timeline_entry(
    issue_id: str,
    status: str,
    message: str,
    updated_by: str,
    role: str,
    date: Optional[datetime] = None
) -> TimelineEntry:
    """
    Build the timeline entry for one state change.

    Args:
        issue_id: Issue the entry describes
        status: Status reached (or ``boosted`` for priority boosts)
        message: Human-readable description
        updated_by: Actor display name
        role: Actor role
        date: Event time, defaults to now

    Returns:
        Unsaved TimelineEntry
    """
    return TimelineEntry(
        issue_id=issue_id,
        status=TimelineStatus(_status_value(status)),
        message=message,
        updated_by=updated_by,
        role=UserRole(role),
        date=date or datetime.utcnow()
    )
