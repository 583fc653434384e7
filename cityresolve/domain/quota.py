# SPDX-License-Identifier: Apache-2.0

"""
Free-tier submission quota.

Unverified citizens may keep a limited number of reported issues; verified
(premium) citizens are unlimited and blocked identities may not report at all.
"""

from ..models.entities import Identity
from ..models.enums import DenialReason
from .results import QuotaDecision

FREE_ISSUE_LIMIT = 3

BLOCKED_MESSAGE = "You are blocked from posting issues."
FREE_LIMIT_MESSAGE = "Free limit reached. Please upgrade to Premium."


def may_create_issue(
    identity: Identity,
    existing_issue_count: int,
    limit: int = FREE_ISSUE_LIMIT
) -> QuotaDecision:
    """
    Decide whether an identity may report another issue.

    Args:
        identity: Reporting identity
        existing_issue_count: Issues already reported by this identity
        limit: Free-tier issue limit for unverified identities

    Returns:
        QuotaDecision allowing or denying the submission
    """
    if identity.is_blocked:
        return QuotaDecision.deny(DenialReason.BLOCKED, BLOCKED_MESSAGE)

    if identity.is_verified:
        return QuotaDecision.allow()

    if existing_issue_count >= limit:
        return QuotaDecision.deny(DenialReason.FREE_LIMIT_REACHED, FREE_LIMIT_MESSAGE)

    return QuotaDecision.allow()
