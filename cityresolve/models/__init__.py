# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the City Resolve platform.
"""

# Base models
from .base import BaseEntity, ValueObject

# Enumerations
from .enums import (
    IssueStatus,
    IssuePriority,
    TimelineStatus,
    UserRole,
    PaymentType,
    DenialReason
)

# Core entities
from .entities import (
    Reporter,
    StaffSnapshot,
    Identity,
    Issue,
    TimelineEntry,
    Payment,
    TERMINAL_STATUSES,
    PRIORITY_RANK
)

# Payment events
from .events import (
    SubscriptionConfirmed,
    BoostConfirmed,
    PaymentEvent,
    parse_payment_event
)

# Request models
from .requests import (
    RegisterUserRequest,
    CreateIssueRequest,
    UpdateIssueRequest,
    AssignStaffRequest,
    UpdateStatusRequest,
    RejectIssueRequest,
    PaymentRequest,
    BlockUserRequest,
    ChangeRoleRequest,
    IssueQuery,
    IssuePath,
    UserPath
)

# Response models
from .responses import HalLink, ProblemResponse

__all__ = [
    "BaseEntity",
    "ValueObject",
    "IssueStatus",
    "IssuePriority",
    "TimelineStatus",
    "UserRole",
    "PaymentType",
    "DenialReason",
    "Reporter",
    "StaffSnapshot",
    "Identity",
    "Issue",
    "TimelineEntry",
    "Payment",
    "TERMINAL_STATUSES",
    "PRIORITY_RANK",
    "SubscriptionConfirmed",
    "BoostConfirmed",
    "PaymentEvent",
    "parse_payment_event",
    "RegisterUserRequest",
    "CreateIssueRequest",
    "UpdateIssueRequest",
    "AssignStaffRequest",
    "UpdateStatusRequest",
    "RejectIssueRequest",
    "PaymentRequest",
    "BlockUserRequest",
    "ChangeRoleRequest",
    "IssueQuery",
    "IssuePath",
    "UserPath",
    "HalLink",
    "ProblemResponse",
]
