# SPDX-License-Identifier: Apache-2.0

"""
Admin dashboard statistics.
"""

from typing import Any, Dict

from opentelemetry import trace

from ..models.enums import IssueStatus
from .identity import IdentityService
from .issues import ISSUES_COLLECTION, IssueService
from .payments import PaymentService

tracer = trace.get_tracer(__name__)


class StatisticsService:
    """Aggregates platform counters for administrators."""

    def __init__(self, identity_service: IdentityService, issue_service: IssueService,
                 payment_service: PaymentService):
        self.identity_service = identity_service
        self.issue_service = issue_service
        self.payment_service = payment_service

    def admin_stats(self) -> Dict[str, Any]:
        with tracer.start_as_current_span("statistics.admin_stats"):
            return {
                "totalUsers": self.identity_service.count(),
                "totalIssues": self.issue_service.mongodb_service.estimated_count(ISSUES_COLLECTION),
                "totalPayments": self.payment_service.count(),
                "revenue": self.payment_service.total_revenue(),
                "pendingIssues": self.issue_service.count_issues(IssueStatus.PENDING.value),
                "resolvedIssues": self.issue_service.count_issues(IssueStatus.RESOLVED.value),
            }
