"""Transport interface consumed by :class:`~umbrella_imap.message.Message`."""

from __future__ import annotations

import abc
import email.message
import email.parser
import email.policy
from dataclasses import dataclass, field

from .addresses import RawAddress
from .structure import StructureNode


@dataclass(frozen=True)
class OverviewRecord:
    """Summary data the server keeps for a message."""

    subject: str = ""
    date: str | None = None
    size: int = 0
    flags: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class HeaderRecord:
    """Parsed message headers.

    Address fields are ``None`` when the header is absent, which lets
    callers tell a missing Reply-To apart from an empty one.
    """

    from_: list[RawAddress]
    to: list[RawAddress] | None = None
    cc: list[RawAddress] | None = None
    reply_to: list[RawAddress] | None = None
    date: str | None = None
    subject: str = ""
    message_id: str = ""


class Transport(abc.ABC):
    """Server operations a message needs.

    Implementations raise :class:`~umbrella_imap.errors.TransportFailure`
    when a call cannot be completed.
    """

    @abc.abstractmethod
    def fetch_overview(self, uid: str) -> OverviewRecord:
        """Return subject, date, size and flags for *uid*."""

    @abc.abstractmethod
    def fetch_raw_headers(self, uid: str) -> bytes:
        """Return the raw RFC 822 header block of *uid*."""

    @abc.abstractmethod
    def fetch_structure(self, uid: str) -> StructureNode:
        """Return the root of the body structure of *uid*."""

    @abc.abstractmethod
    def fetch_body(self, uid: str, part_id: str | None = None) -> bytes:
        """Return raw body bytes: the whole text if *part_id* is ``None``."""

    @abc.abstractmethod
    def set_flag(self, uid: str, flag_token: str, enable: bool) -> bool:
        """Set or clear *flag_token* (e.g. ``\\Seen``) on *uid*."""

    @abc.abstractmethod
    def delete(self, uid: str) -> bool:
        """Mark *uid* for deletion; removal happens on expunge."""


def _address_list(headers: email.message.EmailMessage, name: str) -> list[RawAddress] | None:
    header = headers.get(name)
    if header is None:
        return None

    addresses: list[RawAddress] = []
    for address in getattr(header, "addresses", ()):
        if not address.username:
            continue
        addresses.append(
            RawAddress(
                mailbox=address.username,
                host=address.domain,
                personal=address.display_name or None,
            )
        )
    return addresses


def parse_headers(raw_headers: bytes) -> HeaderRecord:
    """Parse a raw header block into a :class:`HeaderRecord`.

    Only the headers are parsed; a body following them is ignored.
    """
    parser = email.parser.BytesHeaderParser(policy=email.policy.default)
    headers = parser.parsebytes(raw_headers)

    date = headers.get("Date")
    return HeaderRecord(
        from_=_address_list(headers, "From") or [],
        to=_address_list(headers, "To"),
        cc=_address_list(headers, "Cc"),
        reply_to=_address_list(headers, "Reply-To"),
        date=str(date) if date is not None else None,
        subject=str(headers.get("Subject", "")),
        message_id=str(headers.get("Message-ID", "")),
    )
