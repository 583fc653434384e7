# SPDX-License-Identifier: Apache-2.0

"""
Payment recording and payment event handling.

A confirmed payment is stored for accounting, then turned into a payment
event: a subscription verifies the payer, a boost raises the issue priority.
"""

import logging
from typing import Optional, Tuple, Union

from opentelemetry import trace

from ..domain.results import WorkflowResult
from ..models.entities import Identity, Payment
from ..models.enums import DenialReason, PaymentType
from ..models.events import BoostConfirmed, SubscriptionConfirmed
from ..models.requests import PaymentRequest
from .identity import IdentityService
from .issues import IssueService
from .mongodb import MongoDBService, PersistenceError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

PAYMENTS_COLLECTION = "payments"


class PaymentService:
    """Records payments and applies their effects."""

    def __init__(self, mongodb_service: MongoDBService, identity_service: IdentityService,
                 issue_service: IssueService):
        self.mongodb_service = mongodb_service
        self.identity_service = identity_service
        self.issue_service = issue_service

    def record_payment(self, payer: Identity,
                       request: PaymentRequest) -> Tuple[Optional[Payment], WorkflowResult]:
        """
        Store a confirmed payment and apply its event.

        The provider has already charged the payer, so every confirmed
        payment is kept for accounting even when its event is denied (for
        example a boost for an issue that is already high priority). If
        applying the event fails the payment row is removed again and the
        error propagates, so the same transaction can be retried.

        Returns:
            Tuple of (stored payment or None, result of applying the event)
        """
        with tracer.start_as_current_span(
            "payments.record",
            attributes={"payment.type": request.type, "user.email": payer.email}
        ) as span:
            if request.type == PaymentType.BOOST.value and not request.issue_id:
                return None, WorkflowResult.denied(
                    DenialReason.NOT_FOUND, "issueId is required for boost payments"
                )

            try:
                payment = Payment(
                    email=payer.email,
                    name=payer.name,
                    type=request.type,
                    price=request.price,
                    issue_id=request.issue_id,
                    transaction_id=request.transaction_id
                )
            except ValueError as e:
                return None, WorkflowResult.denied(DenialReason.CONFLICT, str(e))

            try:
                self.mongodb_service.create(PAYMENTS_COLLECTION, payment.to_document())
            except ValueError:
                logger.warning(
                    "Duplicate payment ignored",
                    extra={"transaction_id": request.transaction_id, "email": payer.email}
                )
                return None, WorkflowResult.denied(
                    DenialReason.CONFLICT, "Payment with this transaction has already been recorded"
                )

            logger.info(
                "Payment recorded",
                extra={"payment_id": payment.id, "type": payment.type, "email": payer.email}
            )

            if payment.type == PaymentType.SUBSCRIPTION.value:
                event = SubscriptionConfirmed(email=payer.email)
            else:
                event = BoostConfirmed(issue_id=payment.issue_id, actor_name=payer.name)

            try:
                result = self.apply_event(event)
            except Exception:
                self._undo_record(payment)
                raise

            if not result.success:
                span.set_attribute("payment.denied", result.reason.value)
            return payment, result

    def _undo_record(self, payment: Payment) -> None:
        try:
            self.mongodb_service.delete(PAYMENTS_COLLECTION, payment.id)
        except PersistenceError:
            logger.critical(
                "Could not remove payment whose event failed",
                extra={"payment_id": payment.id, "transaction_id": payment.transaction_id},
                exc_info=True
            )
        else:
            logger.warning(
                "Payment removed after its event failed",
                extra={"payment_id": payment.id, "transaction_id": payment.transaction_id}
            )

    def apply_event(self, event: Union[SubscriptionConfirmed, BoostConfirmed]) -> WorkflowResult:
        """Apply a confirmed payment event from the payment collaborator."""
        with tracer.start_as_current_span("payments.apply_event", attributes={"event.kind": event.kind}):
            if isinstance(event, SubscriptionConfirmed):
                identity = self.identity_service.mark_verified(event.email)
                if identity is None:
                    logger.warning("Subscription for unknown identity", extra={"email": event.email})
                    return WorkflowResult.denied(DenialReason.NOT_FOUND, "Identity not found")
                return WorkflowResult(success=True)

            result = self.issue_service.boost_issue(event.issue_id, event.actor_name)
            if not result.success:
                logger.warning(
                    "Boost event not applied",
                    extra={"issue_id": event.issue_id, "reason": result.reason.value}
                )
            return result

    def count(self) -> int:
        return self.mongodb_service.estimated_count(PAYMENTS_COLLECTION)

    def total_revenue(self) -> float:
        """Sum of all recorded payment amounts."""
        results = self.mongodb_service.aggregate(
            PAYMENTS_COLLECTION,
            [{"$group": {"_id": None, "total": {"$sum": "$price"}}}]
        )
        return float(results[0]["total"]) if results else 0.0
