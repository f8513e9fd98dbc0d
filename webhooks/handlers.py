"""
Default Stripe event handlers.

Subscription and billing side effects belong to the billing service; these
handlers record receipt so operators can trace deliveries.
"""

from __future__ import annotations

import logging

from webhooks.dispatcher import EventDispatcher
from webhooks.models import WebhookEvent

logger = logging.getLogger(__name__)


def _object(event: WebhookEvent) -> dict:
    data = event.payload.get("data") or {}
    return data.get("object") or {}


async def checkout_session_completed(event: WebhookEvent) -> None:
    session = _object(event)
    logger.info(
        "Checkout session completed: session=%s customer=%s",
        session.get("id"), session.get("customer"),
    )


async def subscription_changed(event: WebhookEvent) -> None:
    subscription = _object(event)
    logger.info(
        "Subscription %s: id=%s status=%s",
        event.type.rsplit(".", 1)[-1], subscription.get("id"), subscription.get("status"),
    )


def register_default_handlers(dispatcher: EventDispatcher) -> EventDispatcher:
    dispatcher.register("checkout.session.completed", checkout_session_completed)
    dispatcher.register("customer.subscription.updated", subscription_changed)
    dispatcher.register("customer.subscription.deleted", subscription_changed)
    return dispatcher
