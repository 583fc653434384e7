# SPDX-License-Identifier: Apache-2.0

"""
Payment events emitted by the payment collaborator into the engine.
"""

from typing import Annotated, Any, Dict, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from .entities import normalize_email


class SubscriptionConfirmed(BaseModel):
    """A premium subscription was paid; the identity becomes verified."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["subscription_confirmed"] = "subscription_confirmed"
    email: str = Field(..., description="Subscriber email")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        return normalize_email(v)


class BoostConfirmed(BaseModel):
    """A boost was paid for an issue; its priority becomes high."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["boost_confirmed"] = "boost_confirmed"
    issue_id: str = Field(..., alias="issueId", description="Boosted issue")
    actor_name: str = Field(..., alias="actorName", min_length=1, description="Payer display name")


PaymentEvent = Annotated[
    Union[SubscriptionConfirmed, BoostConfirmed],
    Field(discriminator="kind")
]

_event_adapter = TypeAdapter(PaymentEvent)


def parse_payment_event(payload: Dict[str, Any]) -> Union[SubscriptionConfirmed, BoostConfirmed]:
    """Validate a raw event payload (for example an AMQP message body)."""
    return _event_adapter.validate_python(payload)
