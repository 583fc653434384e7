#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0

"""
Payment worker: applies payment events consumed from the AMQP queue.
"""

import logging
import os

from ..observability.config import setup_observability
from ..services.amqp import create_amqp_service
from ..services.identity import IdentityService
from ..services.issues import IssueService
from ..services.mongodb import close_mongodb_connection, get_mongodb_service
from ..services.payments import PaymentService
from ..services.timeline import TimelineLedger

logger = logging.getLogger(__name__)


def build_payment_service() -> PaymentService:
    mongodb_service = get_mongodb_service()
    issue_service = IssueService(
        mongodb_service,
        TimelineLedger(mongodb_service),
        int(os.getenv('FREE_ISSUE_LIMIT', '3'))
    )
    return PaymentService(mongodb_service, IdentityService(mongodb_service), issue_service)


def main():
    setup_observability()
    payment_service = build_payment_service()
    amqp_service = create_amqp_service()

    logger.info("Payment worker starting")
    try:
        amqp_service.consume_payment_events(payment_service.apply_event)
    finally:
        close_mongodb_connection()
        logger.info("Payment worker stopped")


if __name__ == "__main__":
    main()
