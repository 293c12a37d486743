"""A single message in a mailbox, loaded through a :class:`Transport`."""

from __future__ import annotations

import email.utils
import re
from collections.abc import Mapping
from datetime import datetime
from enum import Enum

import structlog
from bs4 import BeautifulSoup

from .addresses import Address, format_addresses, normalize_addresses
from .config import MessageConfig
from .decoding import decode_content
from .errors import MissingSender
from .flags import FLAG_TYPES, FlagSet
from .structure import AttachmentSpec, StructureNode, walk_structure
from .transport import HeaderRecord, OverviewRecord, Transport, parse_headers

logger = structlog.get_logger()

_LINE_BREAK = re.compile(r"(\r\n|\n\r|\n|\r)")


class AddressKind(str, Enum):
    """Address headers exposed by :meth:`Message.get_addresses`."""

    TO = "to"
    CC = "cc"
    FROM = "from"
    REPLY_TO = "reply-to"


def plaintext_to_html(text: str) -> str:
    """Insert ``<br />`` before every line break, keeping the break."""
    return _LINE_BREAK.sub(r"<br />\1", text)


def html_to_plaintext(html: str) -> str:
    """Strip all markup from *html*, keeping the text content."""
    return BeautifulSoup(html, "html.parser").get_text()


class Attachment:
    """A body part carrying a file name, fetched on demand."""

    def __init__(
        self,
        message: Message,
        structure: StructureNode,
        part_id: str | None,
        filename: str,
    ) -> None:
        self.message = message
        self.structure = structure
        self.part_id = part_id
        self.filename = filename
        self._data: bytes | None = None

    @property
    def mime_type(self) -> str:
        return self.structure.mime_type

    @property
    def encoding(self) -> str | int | None:
        return self.structure.encoding

    @property
    def size(self) -> int | None:
        return self.structure.size

    @property
    def data(self) -> bytes:
        """Transfer-decoded content, fetched once."""
        if self._data is None:
            raw = self.message.transport.fetch_body(self.message.uid, self.part_id)
            self._data = decode_content(raw, self.structure.encoding)
        return self._data

    def __repr__(self) -> str:
        return f"Attachment(filename={self.filename!r}, part_id={self.part_id!r})"


class Message:
    """One message, identified by its server uid.

    Construction loads everything: overview, headers, structure and the
    bodies and attachments found in the structure.  Any failure propagates
    out of the constructor.  Instances are not safe to share between
    threads.

    Forced reloads replace the cached group they name.  Reloading the
    structure does not walk it again; call :meth:`process_structure` to
    rebuild bodies and attachments from the new tree.
    """

    def __init__(
        self,
        uid: str,
        transport: Transport,
        config: MessageConfig | None = None,
        flag_types: tuple[str, ...] = FLAG_TYPES,
    ) -> None:
        self._uid = str(uid)
        self._transport = transport
        self._config = config or MessageConfig()
        self._flags = FlagSet(flag_types)

        self._overview: OverviewRecord | None = None
        self._overview_loaded = False
        self._headers: HeaderRecord | None = None
        self._headers_loaded = False
        self._structure: StructureNode | None = None
        self._structure_loaded = False

        self.subject = ""
        self.size = 0
        self._date_string: str | None = None

        self._to: list[Address] = []
        self._cc: list[Address] = []
        self._from: list[Address] = []
        self._reply_to: list[Address] = []

        self._plaintext: str | None = None
        self._html: str | None = None
        self._attachments: list[Attachment] = []

        self._load()

    @property
    def uid(self) -> str:
        return self._uid

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def flags(self) -> Mapping[str, bool]:
        return self._flags.as_mapping()

    @property
    def date(self) -> datetime | None:
        if not self._date_string:
            return None
        try:
            return email.utils.parsedate_to_datetime(self._date_string)
        except (TypeError, ValueError):
            return None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load(self) -> None:
        self.load_overview()
        self.load_headers()
        self.process_structure()
        logger.debug(
            "message_loaded",
            uid=self._uid,
            attachments=len(self._attachments),
        )

    def load_overview(self, force_reload: bool = False) -> OverviewRecord:
        if force_reload or not self._overview_loaded:
            overview = self._transport.fetch_overview(self._uid)
            self._overview = overview
            self._overview_loaded = True

            self.subject = overview.subject
            self.size = overview.size
            self._date_string = overview.date
            self._flags.update(overview.flags)

        assert self._overview is not None
        return self._overview

    def load_headers(self, force_reload: bool = False) -> HeaderRecord:
        if force_reload or not self._headers_loaded:
            headers = parse_headers(self._transport.fetch_raw_headers(self._uid))
            senders = normalize_addresses(headers.from_)
            if not senders:
                raise MissingSender(self._uid)

            self._headers = headers
            self._headers_loaded = True

            self._from = senders
            self._to = normalize_addresses(headers.to)
            self._cc = normalize_addresses(headers.cc)
            self._reply_to = (
                normalize_addresses(headers.reply_to) if headers.reply_to is not None else senders
            )

        assert self._headers is not None
        return self._headers

    def load_structure(self, force_reload: bool = False) -> StructureNode:
        if force_reload or not self._structure_loaded:
            self._structure = self._transport.fetch_structure(self._uid)
            self._structure_loaded = True

        assert self._structure is not None
        return self._structure

    def process_structure(self) -> None:
        """Rebuild bodies and attachments from the cached structure."""
        structure = self.load_structure()
        result = walk_structure(
            structure,
            lambda part_id: self._transport.fetch_body(self._uid, part_id),
            charset=self._config.charset,
        )

        self._plaintext = result.plaintext
        self._html = result.html
        self._attachments = [self._make_attachment(spec) for spec in result.attachments]

    def _make_attachment(self, spec: AttachmentSpec) -> Attachment:
        return Attachment(self, spec.node, spec.part_id, spec.filename)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_body(self, html: bool = False) -> str | None:
        """Return the plaintext (default) or HTML body.

        When the requested kind is missing the other one is converted:
        plaintext gets ``<br />`` line breaks, HTML is stripped of markup.
        ``None`` means the message has neither.
        """
        if html:
            if self._html is not None:
                return self._html
            if self._plaintext is not None:
                return plaintext_to_html(self._plaintext)
        else:
            if self._plaintext is not None:
                return self._plaintext
            if self._html is not None:
                return html_to_plaintext(self._html)
        return None

    def get_addresses(
        self,
        kind: AddressKind | str,
        as_string: bool = False,
    ) -> Address | list[Address] | str | None:
        """Return the addresses of one header.

        ``from`` yields a single :class:`Address`, the other kinds a list.
        With *as_string* the addresses are rendered as a header value.
        Unknown kinds and empty headers return ``None``.
        """
        try:
            kind = AddressKind(kind)
        except ValueError:
            return None

        addresses = {
            AddressKind.TO: self._to,
            AddressKind.CC: self._cc,
            AddressKind.FROM: self._from,
            AddressKind.REPLY_TO: self._reply_to,
        }[kind]

        if not addresses:
            return None
        if as_string:
            return format_addresses(addresses)
        if kind is AddressKind.FROM:
            return addresses[0]
        return list(addresses)

    def get_attachments(self, filename: str | None = None) -> Attachment | list[Attachment] | None:
        """Return attachments, optionally only those named *filename*.

        A single match is returned bare, several as a list, none as ``None``.
        """
        if not self._attachments:
            return None
        if filename is None:
            return list(self._attachments)

        matches = [a for a in self._attachments if a.filename == filename]
        if not matches:
            return None
        if len(matches) == 1:
            return matches[0]
        return matches

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def check_flag(self, flag: str = "flagged") -> bool:
        return self._flags.check(flag)

    def set_flag(self, flag: str, enable: bool = True) -> bool:
        """Set or clear *flag* on the server.

        Raises :class:`~umbrella_imap.errors.InvalidFlag` for unknown flags
        and for ``recent``.  Local flag state changes on the next forced
        overview reload.
        """
        token = self._flags.token(flag)
        result = self._transport.set_flag(self._uid, token, enable)
        logger.info("message_flag_changed", uid=self._uid, flag=token, enable=enable, ok=result)
        return result

    def delete(self) -> bool:
        """Mark the message for deletion; it is removed on expunge."""
        result = self._transport.delete(self._uid)
        logger.info("message_marked_deleted", uid=self._uid, ok=result)
        return result

    def __repr__(self) -> str:
        return f"Message(uid={self._uid!r}, subject={self.subject!r})"
