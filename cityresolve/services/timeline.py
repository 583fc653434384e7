# SPDX-License-Identifier: Apache-2.0

"""
Timeline ledger: the append-only audit trail of issue state changes.

Entries are only ever inserted; this service exposes no update or delete.
"""

import logging
from typing import List, Optional

from opentelemetry import trace
from pymongo import DESCENDING

from ..models.entities import TimelineEntry
from .mongodb import MongoDBService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

TIMELINE_COLLECTION = "timelines"

_LEDGER_ORDER = [("date", DESCENDING), ("_id", DESCENDING)]


class TimelineLedger:
    """Append-only store of TimelineEntry documents."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb_service = mongodb_service

    def latest(self, issue_id: str) -> Optional[TimelineEntry]:
        """Most recent entry for an issue."""
        documents = self.mongodb_service.find(
            TIMELINE_COLLECTION, {"issueId": issue_id}, sort=_LEDGER_ORDER, limit=1
        )
        return TimelineEntry.from_document(documents[0]) if documents else None

    def append(self, entry: TimelineEntry) -> TimelineEntry:
        """
        Append an entry.

        The entry date is never earlier than the previous entry for the same
        issue, so reading by descending date always replays history in order.

        Raises:
            PersistenceError: If the entry could not be stored
        """
        with tracer.start_as_current_span(
            "timeline.append",
            attributes={"issue.id": entry.issue_id, "timeline.status": entry.status}
        ):
            previous = self.latest(entry.issue_id)
            if previous is not None and previous.date > entry.date:
                entry = entry.model_copy(update={"date": previous.date})

            self.mongodb_service.create(TIMELINE_COLLECTION, entry.to_document())

            logger.info(
                "Timeline entry appended",
                extra={
                    "issue_id": entry.issue_id,
                    "status": entry.status,
                    "updated_by": entry.updated_by,
                    "role": entry.role
                }
            )
            return entry

    def entries_for(self, issue_id: str) -> List[TimelineEntry]:
        """All entries for an issue, newest first."""
        documents = self.mongodb_service.find(
            TIMELINE_COLLECTION, {"issueId": issue_id}, sort=_LEDGER_ORDER
        )
        return [TimelineEntry.from_document(document) for document in documents]
