"""Clerk webhook verification, decoding and dispatch."""

from __future__ import annotations

from .models import (
    ClerkEmailAddress,
    ClerkUserData,
    ClerkWebhookEvent,
    EventType,
    MalformedWebhookError,
    decode_event,
    derive_display_name,
    select_primary_email,
)
from .processor import WebhookOutcome, WebhookProcessor
from .signature import (
    InvalidWebhookSecretError,
    compute_svix_signature,
    verify_svix_signature,
)

__all__ = [
    "ClerkEmailAddress",
    "ClerkUserData",
    "ClerkWebhookEvent",
    "EventType",
    "InvalidWebhookSecretError",
    "MalformedWebhookError",
    "WebhookOutcome",
    "WebhookProcessor",
    "compute_svix_signature",
    "decode_event",
    "derive_display_name",
    "select_primary_email",
    "verify_svix_signature",
]
