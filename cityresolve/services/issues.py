# SPDX-License-Identifier: Apache-2.0

"""
Issue lifecycle and moderation engine.

Every operation here either returns a WorkflowResult (applied or denied by
policy) or raises PersistenceError when MongoDB fails. Status and priority
changes are conditional updates followed by a timeline append; when the
append fails the update is reverted so no change exists without an audit row.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from opentelemetry import trace

from ..domain import lifecycle
from ..domain.issues import (
    ISSUE_SORT, NEWEST_FIRST, IssueFilters, apply_content_changes,
    build_issue_query, build_new_issue, reporter_query
)
from ..domain.quota import FREE_ISSUE_LIMIT, may_create_issue
from ..domain.results import QuotaDecision, WorkflowResult
from ..models.entities import Identity, Issue, TimelineEntry, PRIORITY_RANK
from ..models.enums import (
    DenialReason, IssuePriority, IssueStatus, TimelineStatus, UserRole
)
from ..models.requests import CreateIssueRequest
from .mongodb import MongoDBService, PaginationResult, PersistenceError
from .timeline import TimelineLedger

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ISSUES_COLLECTION = "issues"

NOT_FOUND_MESSAGE = "Issue not found"


class IssueService:
    """Applies lifecycle rules to issues stored in MongoDB."""

    def __init__(self, mongodb_service: MongoDBService,
                 timeline_ledger: Optional[TimelineLedger] = None,
                 free_issue_limit: int = FREE_ISSUE_LIMIT):
        self.mongodb_service = mongodb_service
        self.timeline = timeline_ledger or TimelineLedger(mongodb_service)
        self.free_issue_limit = free_issue_limit

    # Reads

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        document = self.mongodb_service.find_one(ISSUES_COLLECTION, issue_id)
        return Issue.from_document(document) if document else None

    def list_issues(self, filters: IssueFilters, page: int = 1,
                    limit: int = 10) -> Tuple[List[Issue], PaginationResult]:
        """
        Filtered, paginated issue listing in triage order.

        Returns:
            Tuple of (issues on the page, pagination metadata with the total)
        """
        with tracer.start_as_current_span(
            "issues.list",
            attributes={"pagination.page": page, "pagination.limit": limit}
        ) as span:
            result = self.mongodb_service.paginate(
                ISSUES_COLLECTION,
                page=page,
                page_size=limit,
                filters=build_issue_query(filters),
                sort=ISSUE_SORT
            )
            span.set_attribute("db.total_count", result.total)
            return [Issue.from_document(item) for item in result.items], result

    def list_reporter_issues(self, email: str) -> List[Issue]:
        """Issues reported by ``email``, newest first."""
        documents = self.mongodb_service.find(
            ISSUES_COLLECTION, reporter_query(email), sort=NEWEST_FIRST
        )
        return [Issue.from_document(document) for document in documents]

    def list_assigned_issues(self, staff_email: str) -> List[Issue]:
        """Issues currently assigned to a staff member, in triage order."""
        documents = self.mongodb_service.find(
            ISSUES_COLLECTION,
            build_issue_query(IssueFilters(assigned_email=staff_email)),
            sort=ISSUE_SORT
        )
        return [Issue.from_document(document) for document in documents]

    def get_timeline(self, issue_id: str) -> Optional[List[TimelineEntry]]:
        """Timeline of an issue, newest first; None if the issue does not exist."""
        if self.get_issue(issue_id) is None:
            return None
        return self.timeline.entries_for(issue_id)

    def count_issues(self, status: Optional[str] = None) -> int:
        return self.mongodb_service.count(
            ISSUES_COLLECTION, build_issue_query(IssueFilters(status=status))
        )

    # Quota and creation

    def may_create_issue(self, identity: Identity) -> QuotaDecision:
        """Free-tier quota check. Only unverified citizens are counted."""
        existing = 0
        if not identity.is_blocked and not identity.is_verified:
            existing = self.mongodb_service.count(ISSUES_COLLECTION, reporter_query(identity.email))
        return may_create_issue(identity, existing, self.free_issue_limit)

    def create_issue(self, identity: Identity, request: CreateIssueRequest) -> WorkflowResult:
        """Report a new issue as ``pending`` and record it on the timeline."""
        with tracer.start_as_current_span(
            "issues.create",
            attributes={"user.email": identity.email, "issue.category": request.category}
        ) as span:
            decision = self.may_create_issue(identity)
            if not decision.allowed:
                span.set_attribute("issue.denied", decision.reason.value)
                logger.info(
                    "Issue creation denied",
                    extra={"email": identity.email, "reason": decision.reason.value}
                )
                return WorkflowResult.denied(decision.reason, decision.message)

            issue = build_new_issue(request, identity)
            self.mongodb_service.create(ISSUES_COLLECTION, issue.to_document())

            entry = lifecycle.build_timeline_entry(
                issue.id,
                IssueStatus.PENDING,
                lifecycle.REPORTED_MESSAGE,
                identity.name,
                UserRole.CITIZEN,
                date=issue.created_at
            )
            try:
                entry = self.timeline.append(entry)
            except PersistenceError:
                logger.error(
                    "Timeline append failed, removing new issue",
                    extra={"issue_id": issue.id},
                    exc_info=True
                )
                self._undo_create(issue.id)
                raise

            span.set_attribute("issue.id", issue.id)
            logger.info(
                "Issue reported",
                extra={"issue_id": issue.id, "email": identity.email, "category": issue.category}
            )
            return WorkflowResult.applied(issue, entry)

    def _undo_create(self, issue_id: str) -> None:
        try:
            self.mongodb_service.delete(ISSUES_COLLECTION, issue_id)
        except PersistenceError:
            logger.critical(
                "Could not remove issue without timeline entry",
                extra={"issue_id": issue_id},
                exc_info=True
            )

    # Content edits

    def update_content(self, issue_id: str, identity: Identity,
                       changes: Dict[str, Any]) -> WorkflowResult:
        """Edit citizen-supplied fields while the issue is still pending."""
        issue = self.get_issue(issue_id)
        if issue is None:
            return WorkflowResult.denied(DenialReason.NOT_FOUND, NOT_FOUND_MESSAGE)

        validation = lifecycle.validate_content_edit(issue, identity)
        if not validation.is_valid:
            return WorkflowResult.from_validation(validation, issue)

        if not changes:
            return WorkflowResult.applied(issue)

        edited = apply_content_changes(issue, changes)
        updates = {key: getattr(edited, key) for key in changes}
        updates["updatedAt"] = datetime.utcnow()

        document = self.mongodb_service.update_if(
            ISSUES_COLLECTION, issue_id, {"status": IssueStatus.PENDING.value}, updates
        )
        if document is None:
            return self._lost_race(issue_id, DenialReason.NOT_EDITABLE,
                                   "Issue can no longer be edited")

        logger.info("Issue content edited", extra={"issue_id": issue_id, "fields": list(changes)})
        return WorkflowResult.applied(Issue.from_document(document))

    # Upvotes

    def upvote(self, issue_id: str, voter_email: str) -> WorkflowResult:
        """
        Register one upvote per voter. Reporters cannot upvote their own issue.

        Upvotes are popularity, not workflow, and are not written to the timeline.
        """
        with tracer.start_as_current_span("issues.upvote", attributes={"issue.id": issue_id}) as span:
            issue = self.get_issue(issue_id)
            if issue is None:
                return WorkflowResult.denied(DenialReason.NOT_FOUND, NOT_FOUND_MESSAGE)

            voter = voter_email.strip().lower()
            if issue.is_reporter(voter):
                return WorkflowResult.denied(
                    DenialReason.OWN_ISSUE, "You cannot upvote your own issue.", issue
                )

            if voter in issue.upvoted_by:
                return WorkflowResult.denied(
                    DenialReason.ALREADY_UPVOTED, "You have already upvoted this issue.", issue
                )

            document = self.mongodb_service.add_to_set_and_increment(
                ISSUES_COLLECTION,
                issue_id,
                set_field="upvotedBy",
                counter_field="upvotes",
                value=voter,
                guards={"reportedBy.email": {"$ne": voter}}
            )
            if document is None:
                # A concurrent request from the same voter got there first
                span.set_attribute("issue.upvote_race", True)
                return self._lost_race(issue_id, DenialReason.ALREADY_UPVOTED,
                                       "You have already upvoted this issue.")

            updated = Issue.from_document(document)
            span.set_attribute("issue.upvotes", updated.upvotes)
            logger.info("Issue upvoted", extra={"issue_id": issue_id, "upvotes": updated.upvotes})
            return WorkflowResult.applied(updated)

    # Lifecycle transitions

    def assign_staff(self, issue_id: str, staff: Optional[Identity], actor: Identity) -> WorkflowResult:
        """Assign a staff member and move the issue to ``in-progress``."""
        issue = self.get_issue(issue_id)
        if issue is None:
            return WorkflowResult.denied(DenialReason.NOT_FOUND, NOT_FOUND_MESSAGE)

        if not (actor.is_admin() or actor.is_staff()):
            return WorkflowResult.denied(DenialReason.FORBIDDEN, "Only staff or admins can assign issues", issue)

        validation = lifecycle.validate_assignment(issue, staff)
        if not validation.is_valid:
            return WorkflowResult.from_validation(validation, issue)

        updates = {
            "assignedStaff": staff.to_staff_snapshot().model_dump(),
            "status": IssueStatus.IN_PROGRESS.value
        }
        entry = lifecycle.build_timeline_entry(
            issue.id,
            IssueStatus.IN_PROGRESS,
            lifecycle.assignment_message(staff),
            actor.name,
            UserRole.ADMIN
        )
        return self._transition(issue, updates, entry, "issues.assign")

    def reject_issue(self, issue_id: str, actor: Identity, reason: Optional[str] = None) -> WorkflowResult:
        """Admin rejection from any non-terminal status."""
        issue = self.get_issue(issue_id)
        if issue is None:
            return WorkflowResult.denied(DenialReason.NOT_FOUND, NOT_FOUND_MESSAGE)

        validation = lifecycle.validate_rejection(issue, actor)
        if not validation.is_valid:
            return WorkflowResult.from_validation(validation, issue)

        entry = lifecycle.build_timeline_entry(
            issue.id,
            IssueStatus.REJECTED,
            lifecycle.rejection_message(reason),
            actor.name,
            UserRole.ADMIN
        )
        return self._transition(issue, {"status": IssueStatus.REJECTED.value}, entry, "issues.reject")

    def update_status(self, issue_id: str, new_status: str, actor: Identity,
                      note: Optional[str] = None) -> WorkflowResult:
        """Explicit status change by the assigned staff member or an admin."""
        issue = self.get_issue(issue_id)
        if issue is None:
            return WorkflowResult.denied(DenialReason.NOT_FOUND, NOT_FOUND_MESSAGE)

        validation = lifecycle.validate_status_update(issue, new_status, actor)
        if not validation.is_valid:
            return WorkflowResult.from_validation(validation, issue)

        status = IssueStatus(new_status)
        entry = lifecycle.build_timeline_entry(
            issue.id,
            status,
            lifecycle.status_message(status, note),
            actor.name,
            actor.role
        )
        return self._transition(issue, {"status": status.value}, entry, "issues.update_status")

    def boost_issue(self, issue_id: str, actor_name: str) -> WorkflowResult:
        """Raise priority to ``high`` after a confirmed boost payment. Status is unchanged."""
        issue = self.get_issue(issue_id)
        if issue is None:
            return WorkflowResult.denied(DenialReason.NOT_FOUND, NOT_FOUND_MESSAGE)

        validation = lifecycle.validate_boost(issue)
        if not validation.is_valid:
            return WorkflowResult.from_validation(validation, issue)

        updates = {
            "priority": IssuePriority.HIGH.value,
            "priorityRank": PRIORITY_RANK[IssuePriority.HIGH.value]
        }
        entry = lifecycle.build_timeline_entry(
            issue.id,
            TimelineStatus.BOOSTED,
            lifecycle.BOOSTED_MESSAGE,
            actor_name,
            UserRole.CITIZEN
        )
        return self._transition(issue, updates, entry, "issues.boost")

    def _transition(self, issue: Issue, updates: Dict[str, Any], entry: TimelineEntry,
                    span_name: str) -> WorkflowResult:
        """
        Apply a guarded status/priority update, then append its timeline entry.

        The update only matches if status and priority are unchanged since
        ``issue`` was read. If the append fails the update is reverted and
        PersistenceError propagates.
        """
        with tracer.start_as_current_span(
            span_name,
            attributes={"issue.id": issue.id, "issue.status": issue.status}
        ) as span:
            expected = {"status": issue.status, "priority": issue.priority}
            updates = dict(updates, updatedAt=datetime.utcnow())

            document = self.mongodb_service.update_if(ISSUES_COLLECTION, issue.id, expected, updates)
            if document is None:
                span.set_attribute("issue.conflict", True)
                return self._lost_race(issue.id, DenialReason.CONFLICT,
                                       "Issue was modified by another request, please retry")

            try:
                entry = self.timeline.append(entry)
            except PersistenceError:
                logger.error(
                    "Timeline append failed, reverting issue change",
                    extra={"issue_id": issue.id, "updates": list(updates)},
                    exc_info=True
                )
                self._revert(issue, updates, document)
                raise

            updated = Issue.from_document(document)
            span.set_attribute("issue.new_status", updated.status)
            logger.info(
                "Issue transition applied",
                extra={
                    "issue_id": issue.id,
                    "from_status": issue.status,
                    "to_status": updated.status,
                    "priority": updated.priority,
                    "timeline_status": entry.status,
                    "actor": entry.updated_by
                }
            )
            return WorkflowResult.applied(updated, entry)

    def _revert(self, issue: Issue, updates: Dict[str, Any], applied: Dict[str, Any]) -> None:
        previous = issue.to_document()
        restore = {key: previous.get(key) for key in updates}
        expected = {"status": applied["status"], "priority": applied["priority"]}
        try:
            if self.mongodb_service.update_if(ISSUES_COLLECTION, issue.id, expected, restore) is None:
                logger.critical(
                    "Issue changed again before revert; timeline may be missing an entry",
                    extra={"issue_id": issue.id}
                )
        except PersistenceError:
            logger.critical(
                "Could not revert issue change without timeline entry",
                extra={"issue_id": issue.id},
                exc_info=True
            )

    def _lost_race(self, issue_id: str, reason: DenialReason, message: str) -> WorkflowResult:
        current = self.get_issue(issue_id)
        if current is None:
            return WorkflowResult.denied(DenialReason.NOT_FOUND, NOT_FOUND_MESSAGE)
        return WorkflowResult.denied(reason, message, current)
