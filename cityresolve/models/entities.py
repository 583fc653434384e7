# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the City Resolve platform.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Dict, Any
from pydantic import Field, field_validator, model_validator
from .base import BaseEntity, ValueObject
from .enums import (
    IssueStatus,
    IssuePriority,
    TimelineStatus,
    UserRole,
    PaymentType
)

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'

TERMINAL_STATUSES = frozenset({
    IssueStatus.RESOLVED.value,
    IssueStatus.REJECTED.value,
    IssueStatus.CLOSED.value
})

# Boosted issues sort first; never compare priority strings directly.
PRIORITY_RANK = {
    IssuePriority.HIGH.value: 0,
    IssuePriority.NORMAL.value: 1
}


def normalize_email(value: str) -> str:
    """Validate email format and lowercase it."""
    value = value.strip().lower()
    if not re.match(EMAIL_PATTERN, value):
        raise ValueError('Invalid email format')
    return value


class Reporter(ValueObject):
    """Snapshot of the citizen who reported an issue."""

    name: str = Field(..., min_length=1, max_length=200, description="Reporter display name")
    email: str = Field(..., description="Reporter email")
    photo: Optional[str] = Field(None, description="Reporter photo URL")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        return normalize_email(v)


class StaffSnapshot(ValueObject):
    """Copy of the staff identity taken at assignment time.

    Later profile edits do not change it.
    """

    id: str = Field(..., description="Staff identity ID")
    name: str = Field(..., description="Staff display name")
    email: str = Field(..., description="Staff email")
    photo: Optional[str] = Field(None, description="Staff photo URL")


class Identity(BaseEntity):
    """Citizen, staff or admin identity as read by the engine."""

    email: str = Field(..., description="Identity email address")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    photo: Optional[str] = Field(None, description="Photo URL")
    role: UserRole = Field(default=UserRole.CITIZEN, description="Identity role")
    is_verified: bool = Field(default=False, alias="isVerified", description="Premium subscriber flag")
    is_blocked: bool = Field(default=False, alias="isBlocked", description="Blocked by an admin")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        return normalize_email(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate display name."""
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()

    def is_staff(self) -> bool:
        return self.role == UserRole.STAFF

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_reporter(self) -> Reporter:
        """Snapshot used as an issue's reporter."""
        return Reporter(name=self.name, email=self.email, photo=self.photo)

    def to_staff_snapshot(self) -> StaffSnapshot:
        """Snapshot used as an issue's assigned staff."""
        return StaffSnapshot(id=self.id, name=self.name, email=self.email, photo=self.photo)


class Issue(BaseEntity):
    """Reported civic problem tracked through its lifecycle."""

    reported_by: Reporter = Field(..., alias="reportedBy", description="Reporter snapshot")
    title: str = Field(..., min_length=1, max_length=200, description="Issue title")
    description: str = Field(default="", max_length=5000, description="Issue description")
    category: str = Field(..., min_length=1, max_length=100, description="Issue category")
    location: str = Field(default="", max_length=500, description="Issue location")
    photo: Optional[str] = Field(None, description="Photo URL")
    status: IssueStatus = Field(default=IssueStatus.PENDING, description="Lifecycle status")
    priority: IssuePriority = Field(default=IssuePriority.NORMAL, description="Triage priority")
    upvotes: int = Field(default=0, ge=0, description="Upvote counter")
    upvoted_by: List[str] = Field(default_factory=list, alias="upvotedBy", description="Voter emails")
    assigned_staff: Optional[StaffSnapshot] = Field(None, alias="assignedStaff", description="Assigned staff")
    updated_at: datetime = Field(default_factory=datetime.utcnow, alias="updatedAt", description="Last update")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Validate issue title."""
        if not v.strip():
            raise ValueError('Issue title cannot be empty')
        return v.strip()

    @field_validator('category')
    @classmethod
    def validate_category(cls, v):
        """Validate issue category."""
        if not v.strip():
            raise ValueError('Issue category cannot be empty')
        return v.strip()

    @model_validator(mode='after')
    def validate_upvote_invariants(self):
        """Upvote counter and voter set must agree."""
        if len(set(self.upvoted_by)) != len(self.upvoted_by):
            raise ValueError('upvotedBy cannot contain duplicates')

        if self.upvotes != len(self.upvoted_by):
            raise ValueError('upvotes must equal the number of voters')

        if self.reported_by.email in self.upvoted_by:
            raise ValueError('Reporter cannot upvote their own issue')

        return self

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK[self.priority]

    def is_terminal(self) -> bool:
        """Check if the issue reached a terminal status."""
        return self.status in TERMINAL_STATUSES

    def is_reporter(self, email: str) -> bool:
        return self.reported_by.email == (email or "").lower()

    def to_document(self) -> Dict[str, Any]:
        document = super().to_document()
        document["priorityRank"] = self.priority_rank
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        data = dict(document)
        data.pop("priorityRank", None)
        return super().from_document(data)


class TimelineEntry(BaseEntity):
    """Append-only audit record of one issue state change."""

    issue_id: str = Field(..., alias="issueId", description="Issue this entry describes")
    status: TimelineStatus = Field(..., description="Status reached by the event")
    message: str = Field(..., min_length=1, max_length=1000, description="What happened")
    updated_by: str = Field(..., alias="updatedBy", description="Actor display name")
    role: UserRole = Field(..., description="Actor role")
    date: datetime = Field(default_factory=datetime.utcnow, description="Event timestamp")


class Payment(BaseEntity):
    """Confirmed payment recorded for accounting and admin statistics."""

    email: str = Field(..., description="Payer email")
    name: Optional[str] = Field(None, description="Payer display name")
    type: PaymentType = Field(..., description="Payment kind")
    price: Decimal = Field(..., ge=0, description="Amount paid")
    issue_id: Optional[str] = Field(None, alias="issueId", description="Boosted issue")
    transaction_id: Optional[str] = Field(None, alias="transactionId", description="Provider reference")
    paid_at: datetime = Field(default_factory=datetime.utcnow, alias="paidAt", description="Payment time")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        return normalize_email(v)

    @model_validator(mode='after')
    def validate_boost_target(self):
        """Boost payments must reference an issue."""
        if self.type == PaymentType.BOOST and not self.issue_id:
            raise ValueError('issueId is required for boost payments')
        return self

    def to_document(self) -> Dict[str, Any]:
        document = super().to_document()
        # BSON has no Decimal type
        document["price"] = float(self.price)
        # transactionId carries a sparse unique index; absent, not null
        if document.get("transactionId") is None:
            document.pop("transactionId", None)
        return document
