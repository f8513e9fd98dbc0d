"""
Webhook intake — verify the raw body, then dispatch.

Route prefix: /api/v1/webhooks
"""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, Request

from api.dependencies import WEBHOOK_SIGNATURE_HEADERS, get_event_dispatcher, get_webhook_verifier
from core.errors import VerificationError
from webhooks.dispatcher import EventDispatcher
from webhooks.models import DispatchStatus
from webhooks.verifier import WebhookVerifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/{provider}")
async def receive_webhook(
    provider: str,
    request: Request,
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
) -> Dict[str, bool]:
    """
    Acknowledge with 200 once the signature checks out, whatever the
    handlers do.  Verification failures return 400 so the provider retries.
    """
    raw_body = await request.body()
    signature = request.headers.get(WEBHOOK_SIGNATURE_HEADERS[provider])

    try:
        event = verifier.verify(raw_body, signature)
    except VerificationError as exc:
        logger.warning(
            "Rejected %s webhook from %s: %s",
            provider, request.client.host if request.client else "?", exc.reason,
        )
        raise

    result = await dispatcher.dispatch(event)
    if result.status is DispatchStatus.FAILED:
        logger.error(
            "Webhook %s (%s) acknowledged with handler failures: %s",
            event.event_id, event.type, "; ".join(result.errors),
        )
    return {"received": True}
