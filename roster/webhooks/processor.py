"""Dispatch verified Clerk events to the user store."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from roster.logging import get_logger, log_info
from roster.users.protocol import UserUpsert
from roster.webhooks.models import EventType

if typ.TYPE_CHECKING:
    from roster.users.protocol import UserStore
    from roster.webhooks.models import ClerkWebhookEvent

__all__ = ["WebhookOutcome", "WebhookProcessor"]

logger = get_logger(__name__)

REASON_MISSING_ID = "missing id"
REASON_UNHANDLED_TYPE = "unhandled event type"


@dc.dataclass(frozen=True, slots=True)
class WebhookOutcome:
    """Acknowledgement returned to the webhook sender.

    Attributes
    ----------
    event_type
        Raw ``type`` from the delivery, echoed back unchanged.
    ignored
        ``True`` when the event was valid but caused no store call.
    reason
        Why the event was ignored, when it was.

    """

    event_type: str
    ignored: bool = False
    reason: str | None = None

    def as_media(self) -> dict[str, typ.Any]:
        """Render the acknowledgement body."""
        media: dict[str, typ.Any] = {
            "ok": True,
            "type": self.event_type,
            "ignored": self.ignored,
        }
        if self.reason is not None:
            media["reason"] = self.reason
        return media


class WebhookProcessor:
    """Apply a decoded Clerk event to a :class:`UserStore`.

    Events are processed once; store failures propagate to the caller
    unchanged because retrying is the sender's job.
    """

    def __init__(self, store: UserStore) -> None:
        """Bind the processor to the store it writes to."""
        self._store = store

    async def process(self, event: ClerkWebhookEvent) -> WebhookOutcome:
        """Dispatch ``event`` by type and describe what happened."""
        match event.event_type:
            case EventType.USER_CREATED | EventType.USER_UPDATED:
                if not event.subject_id:
                    return self._ignore(event, REASON_MISSING_ID)
                await self._store.upsert_with_role(
                    UserUpsert(
                        clerk_id=event.subject_id,
                        name=event.display_name,
                        username=event.username,
                        email=event.primary_email,
                        first_name=event.first_name,
                        last_name=event.last_name,
                    )
                )
            case EventType.USER_DELETED:
                if not event.subject_id:
                    return self._ignore(event, REASON_MISSING_ID)
                await self._store.soft_delete(event.subject_id)
            case _:
                return self._ignore(event, REASON_UNHANDLED_TYPE)

        log_info(
            logger, "Applied %s for user %s", event.type_name, event.subject_id
        )
        return WebhookOutcome(event_type=event.type_name)

    @staticmethod
    def _ignore(event: ClerkWebhookEvent, reason: str) -> WebhookOutcome:
        log_info(logger, "Ignored %r webhook: %s", event.type_name, reason)
        return WebhookOutcome(
            event_type=event.type_name, ignored=True, reason=reason
        )
