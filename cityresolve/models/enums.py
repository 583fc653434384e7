# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the City Resolve platform.
"""

from enum import Enum


class IssueStatus(str, Enum):
    """Issue lifecycle status enumeration."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    CLOSED = "closed"


class IssuePriority(str, Enum):
    """Issue priority levels. Only raised, never lowered."""
    NORMAL = "normal"
    HIGH = "high"


class TimelineStatus(str, Enum):
    """Status values recorded on timeline entries."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    CLOSED = "closed"
    BOOSTED = "boosted"


class UserRole(str, Enum):
    """Identity roles."""
    CITIZEN = "citizen"
    STAFF = "staff"
    ADMIN = "admin"


class PaymentType(str, Enum):
    """Kinds of confirmed payments."""
    SUBSCRIPTION = "subscription"
    BOOST = "boost"


class DenialReason(str, Enum):
    """Machine-checkable reasons for policy denials."""
    NOT_FOUND = "not-found"
    BLOCKED = "blocked"
    FREE_LIMIT_REACHED = "free-limit-reached"
    OWN_ISSUE = "own-issue"
    ALREADY_UPVOTED = "already-upvoted"
    TERMINAL_STATE = "terminal-state"
    INVALID_TRANSITION = "invalid-transition"
    NO_CHANGE = "no-change"
    NOT_STAFF = "not-staff"
    NOT_ASSIGNED = "not-assigned"
    FORBIDDEN = "forbidden"
    ALREADY_BOOSTED = "already-boosted"
    NOT_EDITABLE = "not-editable"
    CONFLICT = "conflict"
