# SPDX-License-Identifier: Apache-2.0

"""
Issue query and construction helpers.

Pure functions that turn requests into documents and filters into MongoDB
queries; no database access happens here.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING

from ..models.entities import Identity, Issue
from ..models.requests import CreateIssueRequest, IssueQuery

# Boosted first, then newest first; _id breaks ties between equal timestamps.
ISSUE_SORT: List[Tuple[str, int]] = [
    ("priorityRank", ASCENDING),
    ("createdAt", DESCENDING),
    ("_id", DESCENDING)
]

NEWEST_FIRST: List[Tuple[str, int]] = [
    ("createdAt", DESCENDING),
    ("_id", DESCENDING)
]


@dataclass
class IssueFilters:
    """Filters for issue queries."""
    search_term: Optional[str] = None
    status: Optional[str] = None
    category: Optional[str] = None
    reporter_email: Optional[str] = None
    assigned_email: Optional[str] = None

    @classmethod
    def from_query(cls, query: IssueQuery) -> "IssueFilters":
        return cls(
            search_term=query.search,
            status=query.status,
            category=query.category
        )


def build_issue_query(filters: IssueFilters) -> Dict[str, Any]:
    """
    Build a MongoDB query from issue filters.

    The search term matches titles case-insensitively and is escaped, so
    user input is never interpreted as a regular expression.
    """
    query: Dict[str, Any] = {}

    if filters.search_term and filters.search_term.strip():
        query["title"] = {"$regex": re.escape(filters.search_term.strip()), "$options": "i"}

    if filters.status:
        query["status"] = filters.status

    if filters.category:
        query["category"] = filters.category

    if filters.reporter_email:
        query["reportedBy.email"] = filters.reporter_email.lower()

    if filters.assigned_email:
        query["assignedStaff.email"] = filters.assigned_email.lower()

    return query


def reporter_query(email: str) -> Dict[str, Any]:
    """Query matching every issue reported by ``email``."""
    return build_issue_query(IssueFilters(reporter_email=email))


def build_new_issue(request: CreateIssueRequest, reporter: Identity) -> Issue:
    """Create the initial (pending, normal priority) issue for a report."""
    return Issue(
        reported_by=reporter.to_reporter(),
        title=request.title,
        description=request.description,
        category=request.category,
        location=request.location,
        photo=request.photo
    )


def apply_content_changes(issue: Issue, changes: Dict[str, Any]) -> Issue:
    """Return a copy of ``issue`` with citizen content fields replaced."""
    allowed = {"title", "description", "category", "location", "photo"}
    data = issue.model_dump()
    data.update({key: value for key, value in changes.items() if key in allowed})
    return Issue.model_validate(data)
