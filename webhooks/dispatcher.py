"""
EventDispatcher — routes verified webhook events to registered handlers.

An event id is dispatched at most once per seen-store: redeliveries are
acknowledged without re-running handler side effects.  Handler failures are
logged and reported in the ``DispatchResult`` but never turn into a
rejection, because the provider would only redeliver into the same failing
handler.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from webhooks.models import DispatchResult, DispatchStatus, WebhookEvent
from webhooks.seen_store import MemorySeenStore, SeenStore

logger = logging.getLogger(__name__)

Handler = Callable[[WebhookEvent], Union[Any, Awaitable[Any]]]


class EventDispatcher:
    """Maps event type → handlers, with de-duplication by event id."""

    def __init__(self, seen_store: Optional[SeenStore] = None) -> None:
        self._seen_store: SeenStore = seen_store or MemorySeenStore()
        self._handlers: Dict[str, List[Handler]] = {}

    def register(self, event_type: str, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def on(self, event_type: str) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`register`."""

        def decorator(fn: Handler) -> Handler:
            self.register(event_type, fn)
            return fn

        return decorator

    def handlers_for(self, event_type: str) -> List[Handler]:
        return list(self._handlers.get(event_type, []))

    async def dispatch(self, event: WebhookEvent) -> DispatchResult:
        if not await self._seen_store.mark_seen(event.dedup_key):
            logger.info("Duplicate webhook %s (%s) acknowledged", event.event_id, event.type)
            return DispatchResult(event_id=event.event_id, status=DispatchStatus.DUPLICATE)

        handlers = self.handlers_for(event.type)
        if not handlers:
            logger.info("Unhandled webhook type %s (%s)", event.type, event.event_id)
            return DispatchResult(event_id=event.event_id, status=DispatchStatus.UNHANDLED)

        handled_by: List[str] = []
        errors: List[str] = []
        for handler in handlers:
            name = getattr(handler, "__name__", repr(handler))
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
                handled_by.append(name)
            except Exception as exc:
                logger.exception(
                    "Webhook handler %s failed for %s (%s)", name, event.event_id, event.type,
                )
                errors.append(f"{name}: {exc}")

        status = DispatchStatus.FAILED if errors else DispatchStatus.DISPATCHED
        return DispatchResult(
            event_id=event.event_id,
            status=status,
            handled_by=handled_by,
            errors=errors,
        )
