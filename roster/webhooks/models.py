"""Typed Clerk webhook payloads and the normalisation rules applied to them.

Only the fields Roster consumes are declared.  Unknown fields are ignored
and ``null`` or absent values fall back to empty defaults, so new Clerk
payload revisions keep decoding.
"""

from __future__ import annotations

import enum
import typing as typ

import msgspec

__all__ = [
    "ClerkEmailAddress",
    "ClerkUserData",
    "ClerkWebhookEvent",
    "EventType",
    "MalformedWebhookError",
    "decode_event",
    "derive_display_name",
    "select_primary_email",
]

FALLBACK_DISPLAY_NAME = "User"


class EventType(enum.StrEnum):
    """Clerk event types Roster acts upon."""

    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
    USER_DELETED = "user.deleted"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: str) -> EventType:
        """Map a raw ``type`` string onto a member, defaulting to ``OTHER``."""
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


class MalformedWebhookError(ValueError):
    """Raised when a verified body is not a decodable Clerk event."""

    def __init__(self, detail: str) -> None:
        """Keep the decoder's message for logging."""
        self.detail = detail
        super().__init__(f"malformed webhook payload: {detail}")


class ClerkEmailAddress(msgspec.Struct, kw_only=True):
    """Entry of ``data.email_addresses``."""

    id: str | None = None
    email_address: str | None = None


class ClerkUserData(msgspec.Struct, kw_only=True):
    """The ``data`` object of a Clerk ``user.*`` event."""

    id: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    primary_email_address_id: str | None = None
    email_addresses: list[ClerkEmailAddress | None] | None = None


_EMPTY_USER_DATA = ClerkUserData()


class ClerkWebhookEvent(msgspec.Struct, kw_only=True):
    """Envelope of a Clerk webhook delivery.

    Attributes
    ----------
    type : str | None
        Raw event type as sent by Clerk; read it through :attr:`type_name`.
    data : ClerkUserData | None
        User payload; read it through :attr:`user`, which treats a missing
        or ``null`` object as empty.

    """

    type: str | None = None
    data: ClerkUserData | None = None

    @property
    def type_name(self) -> str:
        """Return the raw event type, echoed back in acknowledgements."""
        return self.type or ""

    @property
    def user(self) -> ClerkUserData:
        """Return the user payload, empty when absent or ``null``."""
        return self.data if self.data is not None else _EMPTY_USER_DATA

    @property
    def event_type(self) -> EventType:
        """Return the recognised event type."""
        return EventType.parse(self.type_name)

    @property
    def subject_id(self) -> str:
        """Return the trimmed Clerk user id; empty when absent."""
        return (self.user.id or "").strip()

    @property
    def username(self) -> str:
        """Return the trimmed username; empty when absent."""
        return (self.user.username or "").strip()

    @property
    def first_name(self) -> str:
        """Return the trimmed first name; empty when absent."""
        return (self.user.first_name or "").strip()

    @property
    def last_name(self) -> str:
        """Return the trimmed last name; empty when absent."""
        return (self.user.last_name or "").strip()

    @property
    def display_name(self) -> str:
        """Return the derived display name (never empty)."""
        return derive_display_name(
            self.user.first_name, self.user.last_name, self.user.username
        )

    @property
    def primary_email(self) -> str:
        """Return the selected, lower-cased email or an empty string."""
        candidates = [
            (address.id or "", address.email_address or "")
            for address in self.user.email_addresses or ()
            if address is not None
        ]
        return select_primary_email(
            self.user.primary_email_address_id or "", candidates
        )


def select_primary_email(
    primary_id: str,
    candidates: typ.Iterable[tuple[str, str]],
) -> str:
    """Pick the address to store for a user.

    The candidate whose id equals ``primary_id`` wins when its address is
    not blank; otherwise the first non-blank address in list order is used.
    The result is trimmed and lower-cased, or empty when nothing qualifies.

    >>> select_primary_email("b", [("a", "X@y.com"), ("b", "z@w.com")])
    'z@w.com'
    >>> select_primary_email("missing", [("a", "X@y.com"), ("b", "z@w.com")])
    'x@y.com'

    """
    ordered = list(candidates)
    if primary_id:
        for candidate_id, address in ordered:
            if candidate_id == primary_id and address.strip():
                return address.strip().lower()
    for _candidate_id, address in ordered:
        if address.strip():
            return address.strip().lower()
    return ""


def derive_display_name(
    first_name: str | None,
    last_name: str | None,
    username: str | None,
) -> str:
    """Join first and last name, falling back to username, then ``"User"``."""
    full_name = f"{first_name or ''} {last_name or ''}".strip()
    if full_name:
        return full_name
    fallback = (username or "").strip()
    return fallback or FALLBACK_DISPLAY_NAME


_DECODER = msgspec.json.Decoder(ClerkWebhookEvent)


def decode_event(body: bytes) -> ClerkWebhookEvent:
    """Decode a raw webhook body.

    Raises
    ------
    MalformedWebhookError
        If the body is not JSON, is not an object, or has fields of the
        wrong type.

    """
    try:
        return _DECODER.decode(body)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        raise MalformedWebhookError(str(exc)) from exc
