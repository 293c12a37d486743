"""Address records as parsed from headers, and their normalized form."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class RawAddress:
    """One address as split by the header parser."""

    mailbox: str
    host: str
    personal: str | None = None


@dataclass(frozen=True)
class Address:
    """A normalized ``mailbox@host`` address with an optional display name."""

    address: str
    name: str | None = None

    def __str__(self) -> str:
        if self.name is not None:
            return f"{self.name} <{self.address}>"
        return self.address


def normalize_addresses(raw: Iterable[RawAddress] | None) -> list[Address]:
    """Turn header-parser records into :class:`Address` values.

    Anything that is not a list or tuple of records yields an empty list.
    """
    if not isinstance(raw, (list, tuple)):
        return []

    return [
        Address(
            address=f"{record.mailbox}@{record.host}",
            name=record.personal,
        )
        for record in raw
    ]


def format_addresses(addresses: Iterable[Address]) -> str:
    """Render addresses as a header value: ``Name <a@b>, c@d``."""
    return ", ".join(str(address) for address in addresses)
