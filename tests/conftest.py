"""Shared test fixtures for the umbrella_imap test suite."""

from __future__ import annotations

from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import pytest

from umbrella_imap.config import ImapConfig, RetryConfig
from umbrella_imap.errors import TransportFailure
from umbrella_imap.structure import BodyType, StructureNode
from umbrella_imap.transport import OverviewRecord, Transport


# ------------------------------------------------------------------
# Structure builders
# ------------------------------------------------------------------


def text_node(
    subtype: str = "plain",
    *,
    encoding: str | int = "7bit",
    charset: str | None = None,
) -> StructureNode:
    parameters = (("CHARSET", charset),) if charset else ()
    return StructureNode(type=BodyType.TEXT, subtype=subtype, encoding=encoding, parameters=parameters)


def attachment_node(
    filename: str,
    *,
    type: int = BodyType.APPLICATION,
    subtype: str = "octet-stream",
    encoding: str | int = "base64",
    use_name: bool = False,
) -> StructureNode:
    if use_name:
        return StructureNode(type=type, subtype=subtype, encoding=encoding, parameters=(("NAME", filename),))
    return StructureNode(type=type, subtype=subtype, encoding=encoding, dparameters=(("FILENAME", filename),))


def multipart_node(*parts: StructureNode, subtype: str = "mixed") -> StructureNode:
    return StructureNode(type=BodyType.MULTIPART, subtype=subtype, parts=tuple(parts))


def raw_headers(
    *,
    from_addr: str | None = "A B <a@b.com>",
    to_addr: str | None = "recipient@example.com",
    cc: str | None = None,
    reply_to: str | None = None,
    subject: str = "Test Subject",
) -> bytes:
    lines = [f"Subject: {subject}", "Date: Mon, 02 Jun 2025 12:00:00 +0000", "Message-ID: <test-001@example.com>"]
    if from_addr is not None:
        lines.append(f"From: {from_addr}")
    if to_addr is not None:
        lines.append(f"To: {to_addr}")
    if cc is not None:
        lines.append(f"Cc: {cc}")
    if reply_to is not None:
        lines.append(f"Reply-To: {reply_to}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode()


class FakeTransport(Transport):
    """In-memory transport recording every call."""

    def __init__(
        self,
        structure: StructureNode,
        bodies: dict[str | None, bytes] | None = None,
        *,
        headers: bytes | None = None,
        overview: OverviewRecord | None = None,
        flag_result: bool = True,
        delete_result: bool = True,
    ) -> None:
        self.structure = structure
        self.bodies = bodies or {}
        self.headers = headers if headers is not None else raw_headers()
        self.overview = overview or OverviewRecord(
            subject="Test Subject",
            date="Mon, 02 Jun 2025 12:00:00 +0000",
            size=1024,
            flags=frozenset({"\\Seen"}),
        )
        self.flag_result = flag_result
        self.delete_result = delete_result
        self.calls: list[tuple] = []

    def fetch_overview(self, uid: str) -> OverviewRecord:
        self.calls.append(("overview", uid))
        return self.overview

    def fetch_raw_headers(self, uid: str) -> bytes:
        self.calls.append(("headers", uid))
        return self.headers

    def fetch_structure(self, uid: str) -> StructureNode:
        self.calls.append(("structure", uid))
        return self.structure

    def fetch_body(self, uid: str, part_id: str | None = None) -> bytes:
        self.calls.append(("body", uid, part_id))
        try:
            return self.bodies[part_id]
        except KeyError:
            raise TransportFailure(f"no body for part {part_id}") from None

    def set_flag(self, uid: str, flag_token: str, enable: bool) -> bool:
        self.calls.append(("set_flag", uid, flag_token, enable))
        return self.flag_result

    def delete(self, uid: str) -> bool:
        self.calls.append(("delete", uid))
        return self.delete_result

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


@pytest.fixture
def imap_config() -> ImapConfig:
    return ImapConfig(
        host="imap.test.com",
        port=993,
        use_ssl=True,
        username="testuser",
        password="testpass",
        mailbox="INBOX",
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(max_attempts=2, initial_wait_seconds=0, max_wait_seconds=0)


# ------------------------------------------------------------------
# Sample EML builders
# ------------------------------------------------------------------


def _build_plain_email(*, body: str = "Hello, World!") -> bytes:
    msg = MIMEText(body, "plain")
    msg["Subject"] = "Test Subject"
    msg["From"] = "Sender <sender@example.com>"
    msg["To"] = "recipient@example.com"
    msg["Date"] = "Mon, 02 Jun 2025 12:00:00 +0000"
    return msg.as_bytes()


def _build_multipart_email(
    *,
    body_text: str = "Plain body",
    body_html: str = "<p>HTML body</p>",
    attachments: list[tuple[str, str, bytes]] | None = None,
) -> bytes:
    """Build a multipart email with text, HTML, and optional attachments."""
    msg = MIMEMultipart("mixed")
    msg["Subject"] = "Multipart Email"
    msg["From"] = "sender@example.com"
    msg["To"] = "recipient@example.com"
    msg["Date"] = "Mon, 02 Jun 2025 12:00:00 +0000"

    alt = MIMEMultipart("alternative")
    alt.attach(MIMEText(body_text, "plain"))
    alt.attach(MIMEText(body_html, "html"))
    msg.attach(alt)

    for filename, content_type, payload in attachments or []:
        maintype, subtype = content_type.split("/", 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(payload)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=filename)
        msg.attach(part)

    return msg.as_bytes()


@pytest.fixture
def plain_eml_bytes() -> bytes:
    return _build_plain_email()


@pytest.fixture
def multipart_eml_bytes() -> bytes:
    return _build_multipart_email(
        attachments=[
            ("report.pdf", "application/pdf", b"%PDF-1.4 fake pdf content"),
            ("data.csv", "text/csv", b"col1,col2\na,b\n"),
        ],
    )
