# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from .entities import normalize_email
from .enums import IssueStatus, PaymentType, UserRole


class RequestModel(BaseModel):
    """Base model for request bodies accepting camelCase or snake_case keys."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True
    )


class RegisterUserRequest(RequestModel):
    """Request model for registering an identity."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: str = Field(..., description="Email address")
    photo: Optional[str] = Field(None, description="Photo URL")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        return normalize_email(v)


class CreateIssueRequest(RequestModel):
    """Request model for reporting an issue."""

    title: str = Field(..., min_length=1, max_length=200, description="Issue title")
    description: str = Field(default="", max_length=5000, description="Issue description")
    category: str = Field(..., min_length=1, max_length=100, description="Issue category")
    location: str = Field(default="", max_length=500, description="Issue location")
    photo: Optional[str] = Field(None, description="Photo URL")

    @field_validator('title', 'category')
    @classmethod
    def validate_not_blank(cls, v):
        """Reject whitespace-only values."""
        if not v.strip():
            raise ValueError('Value cannot be empty')
        return v.strip()


class UpdateIssueRequest(RequestModel):
    """Request model for editing issue content. Omitted fields are unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=200, description="Issue title")
    description: Optional[str] = Field(None, max_length=5000, description="Issue description")
    category: Optional[str] = Field(None, min_length=1, max_length=100, description="Issue category")
    location: Optional[str] = Field(None, max_length=500, description="Issue location")
    photo: Optional[str] = Field(None, description="Photo URL")

    @field_validator('title', 'category')
    @classmethod
    def validate_not_blank(cls, v):
        """Reject whitespace-only values."""
        if v is not None and not v.strip():
            raise ValueError('Value cannot be empty')
        return v.strip() if v is not None else v

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class AssignStaffRequest(RequestModel):
    """Request model for assigning a staff member to an issue."""

    staff_email: str = Field(..., alias="staffEmail", description="Email of the staff identity")

    @field_validator('staff_email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        return normalize_email(v)


class UpdateStatusRequest(RequestModel):
    """Request model for an explicit status change."""

    status: IssueStatus = Field(..., description="Target status")
    message: Optional[str] = Field(None, max_length=1000, description="Optional note for the timeline")


class RejectIssueRequest(RequestModel):
    """Request model for rejecting an issue."""

    reason: Optional[str] = Field(None, max_length=500, description="Rejection reason")


class PaymentRequest(RequestModel):
    """Confirmed payment reported by the payment collaborator."""

    type: PaymentType = Field(..., description="Payment kind")
    price: Decimal = Field(..., ge=0, description="Amount paid")
    issue_id: Optional[str] = Field(None, alias="issueId", description="Issue to boost")
    transaction_id: Optional[str] = Field(None, alias="transactionId", description="Provider reference")


class BlockUserRequest(RequestModel):
    """Request model for blocking or unblocking an identity."""

    blocked: bool = Field(..., description="New block flag")


class ChangeRoleRequest(RequestModel):
    """Request model for changing an identity's role."""

    role: UserRole = Field(..., description="New role")


class IssueQuery(RequestModel):
    """Query parameters for listing issues."""

    search: Optional[str] = Field(None, max_length=200, description="Case-insensitive title search")
    status: Optional[IssueStatus] = Field(None, description="Status filter")
    category: Optional[str] = Field(None, max_length=100, description="Category filter")
    page: int = Field(default=1, ge=1, description="Page number")
    limit: int = Field(default=10, ge=1, le=100, description="Items per page")


class IssuePath(BaseModel):
    """Path parameters for issue endpoints."""

    issue_id: str = Field(..., description="Issue identifier")


class UserPath(BaseModel):
    """Path parameters for identity endpoints."""

    email: str = Field(..., description="Identity email")
