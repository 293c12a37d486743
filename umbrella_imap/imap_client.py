"""Blocking IMAP transport built on stdlib imaplib."""

from __future__ import annotations

import email
import email.header
import email.message
import email.policy
import email.utils
import imaplib
import re
from typing import Any

import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import ImapConfig, RetryConfig
from .errors import TransportFailure
from .structure import BodyType, StructureNode
from .transport import OverviewRecord, Transport

logger = structlog.get_logger()

_SIZE = re.compile(rb"RFC822\.SIZE (\d+)")

OVERVIEW_ITEMS = "(FLAGS RFC822.SIZE BODY.PEEK[HEADER.FIELDS (SUBJECT DATE)])"


def _param_value(value: Any) -> str:
    """Collapse RFC 2231 tuples and decode RFC 2047 encoded words."""
    text = email.utils.collapse_rfc2231_value(value)
    if "=?" in text:
        text = str(email.header.make_header(email.header.decode_header(text)))
    return text


def _params(part: email.message.Message, header: str) -> tuple[tuple[str, str], ...]:
    if part.get(header) is None:
        return ()
    # The first entry is the bare value ("text/plain", "attachment").
    params = part.get_params(header=header) or []
    return tuple((name, _param_value(value)) for name, value in params[1:])


def build_structure(part: email.message.Message) -> StructureNode:
    """Convert a parsed MIME tree into :class:`StructureNode` objects.

    Encapsulated ``message/*`` parts are kept as leaves.
    """
    maintype = part.get_content_maintype()
    children: tuple[StructureNode, ...] = ()
    size: int | None = None

    if maintype == "multipart" and part.is_multipart():
        children = tuple(build_structure(child) for child in part.get_payload())
    else:
        payload = part.get_payload()
        if isinstance(payload, str):
            size = len(payload)

    return StructureNode(
        type=BodyType.from_label(maintype),
        subtype=part.get_content_subtype(),
        encoding=str(part.get("Content-Transfer-Encoding", "7bit")).strip().lower(),
        parameters=_params(part, "content-type"),
        dparameters=_params(part, "content-disposition"),
        parts=children,
        size=size,
    )


def _literal(data: list[Any]) -> bytes:
    """Return the first literal payload of a FETCH response."""
    for piece in data:
        if isinstance(piece, tuple) and len(piece) > 1:
            return piece[1]
    raise TransportFailure("FETCH response carried no message data")


def _metadata(data: list[Any]) -> bytes:
    """Join the non-literal parts of a FETCH response."""
    chunks: list[bytes] = []
    for piece in data:
        if isinstance(piece, tuple):
            chunks.append(piece[0])
        elif isinstance(piece, bytes):
            chunks.append(piece)
    return b" ".join(chunks)


class ImapTransport(Transport):
    """Synchronous IMAP transport addressing messages by UID.

    Connection attempts are retried with exponential backoff on network
    errors.  Every other failure raises :class:`TransportFailure`.
    """

    def __init__(self, config: ImapConfig, retry: RetryConfig | None = None) -> None:
        self._config = config
        self._retry = retry or RetryConfig()
        self._conn: imaplib.IMAP4_SSL | imaplib.IMAP4 | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Connect, login, and select the configured mailbox."""
        retrying = Retrying(
            stop=stop_after_attempt(self._retry.max_attempts),
            wait=wait_exponential(
                multiplier=self._retry.multiplier,
                min=self._retry.initial_wait_seconds,
                max=self._retry.max_wait_seconds,
            ),
            retry=retry_if_exception_type((OSError, imaplib.IMAP4.abort)),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    self._connect_once()
        except (imaplib.IMAP4.error, OSError) as exc:
            self._conn = None
            raise TransportFailure(f"Cannot open {self._config.host}: {exc}") from exc

        logger.info(
            "imap_connected",
            host=self._config.host,
            mailbox=self._config.mailbox,
        )

    def _connect_once(self) -> None:
        timeout = self._config.timeout_seconds
        if self._config.use_ssl:
            self._conn = imaplib.IMAP4_SSL(self._config.host, self._config.port, timeout=timeout)
        else:
            self._conn = imaplib.IMAP4(self._config.host, self._config.port, timeout=timeout)
        try:
            self._conn.login(self._config.username, self._config.password.get_secret_value())
            status, data = self._conn.select(self._config.mailbox)
            if status != "OK":
                raise TransportFailure(f"Cannot select {self._config.mailbox}: {data!r}")
        except Exception:
            self._abandon()
            raise

    def _abandon(self) -> None:
        """Drop a half-opened session without selecting a mailbox."""
        assert self._conn is not None
        try:
            self._conn.logout()
        except (imaplib.IMAP4.error, OSError):
            pass
        self._conn = None

    def disconnect(self) -> None:
        """Close mailbox and logout."""
        if self._conn is None:
            return
        try:
            self._conn.close()
        except imaplib.IMAP4.error:
            pass
        try:
            self._conn.logout()
        except imaplib.IMAP4.error:
            pass
        self._conn = None
        logger.info("imap_disconnected")

    def is_connected(self) -> bool:
        """Check connection liveness with a NOOP command."""
        if self._conn is None:
            return False
        try:
            status, _ = self._conn.noop()
            return status == "OK"
        except (imaplib.IMAP4.error, OSError):
            return False

    def __enter__(self) -> ImapTransport:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _uid(self, command: str, *args: str) -> tuple[str, list[Any]]:
        if self._conn is None:
            raise TransportFailure("Not connected")
        try:
            return self._conn.uid(command, *args)
        except (imaplib.IMAP4.error, OSError) as exc:
            raise TransportFailure(f"UID {command} failed: {exc}") from exc

    def _fetch(self, uid: str, items: str) -> list[Any]:
        status, data = self._uid("FETCH", uid, items)
        if status != "OK" or not data or data[0] is None:
            raise TransportFailure(f"FETCH {items} failed for uid {uid}: {status}")
        return data

    def fetch_overview(self, uid: str) -> OverviewRecord:
        data = self._fetch(uid, OVERVIEW_ITEMS)
        headers = email.message_from_bytes(_literal(data), policy=email.policy.default)
        meta = _metadata(data)

        size = _SIZE.search(meta)
        flags = frozenset(flag.decode() for flag in imaplib.ParseFlags(meta))
        date = headers.get("Date")

        return OverviewRecord(
            subject=str(headers.get("Subject", "")),
            date=str(date) if date is not None else None,
            size=int(size.group(1)) if size else 0,
            flags=flags,
        )

    def fetch_raw_headers(self, uid: str) -> bytes:
        return _literal(self._fetch(uid, "(BODY.PEEK[HEADER])"))

    def fetch_structure(self, uid: str) -> StructureNode:
        # The whole message is parsed locally; sections are still fetched
        # from the server by part id, so text parts cross the wire twice.
        # TODO: parse the server's BODYSTRUCTURE response instead of
        # downloading BODY[] to avoid the double transfer on large messages.
        raw = _literal(self._fetch(uid, "(BODY.PEEK[])"))
        parsed = email.message_from_bytes(raw, policy=email.policy.compat32)
        return build_structure(parsed)

    def fetch_body(self, uid: str, part_id: str | None = None) -> bytes:
        section = part_id if part_id is not None else "TEXT"
        return _literal(self._fetch(uid, f"(BODY.PEEK[{section}])"))

    def set_flag(self, uid: str, flag_token: str, enable: bool) -> bool:
        action = "+FLAGS" if enable else "-FLAGS"
        status, _ = self._uid("STORE", uid, action, f"({flag_token})")
        return status == "OK"

    def delete(self, uid: str) -> bool:
        status, _ = self._uid("STORE", uid, "+FLAGS", "(\\Deleted)")
        return status == "OK"

    def expunge(self) -> bool:
        """Permanently remove messages marked as deleted."""
        if self._conn is None:
            raise TransportFailure("Not connected")
        try:
            status, _ = self._conn.expunge()
        except (imaplib.IMAP4.error, OSError) as exc:
            raise TransportFailure(f"EXPUNGE failed: {exc}") from exc
        return status == "OK"
