# SPDX-License-Identifier: Apache-2.0

"""
Result types returned by domain checks and engine operations.

Policy denials are values, not exceptions: callers inspect ``reason``.
"""

from dataclasses import dataclass
from typing import Optional

from ..models.entities import Issue, TimelineEntry
from ..models.enums import DenialReason


@dataclass
class ValidationResult:
    """Result of a precondition check."""
    is_valid: bool
    reason: Optional[DenialReason] = None
    message: Optional[str] = None

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def invalid(cls, reason: DenialReason, message: str) -> "ValidationResult":
        return cls(is_valid=False, reason=reason, message=message)


@dataclass
class QuotaDecision:
    """Outcome of the free-tier submission quota check."""
    allowed: bool
    reason: Optional[DenialReason] = None
    message: Optional[str] = None

    @classmethod
    def allow(cls) -> "QuotaDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason, message: str) -> "QuotaDecision":
        return cls(allowed=False, reason=reason, message=message)


@dataclass
class WorkflowResult:
    """Result of an issue workflow operation."""
    success: bool
    issue: Optional[Issue] = None
    timeline_entry: Optional[TimelineEntry] = None
    reason: Optional[DenialReason] = None
    message: Optional[str] = None

    @classmethod
    def applied(cls, issue: Issue, timeline_entry: Optional[TimelineEntry] = None) -> "WorkflowResult":
        return cls(success=True, issue=issue, timeline_entry=timeline_entry)

    @classmethod
    def denied(cls, reason: DenialReason, message: str, issue: Optional[Issue] = None) -> "WorkflowResult":
        return cls(success=False, issue=issue, reason=reason, message=message)

    @classmethod
    def from_validation(cls, validation: ValidationResult, issue: Optional[Issue] = None) -> "WorkflowResult":
        return cls.denied(validation.reason, validation.message, issue)
