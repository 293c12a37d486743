"""MIME body-structure tree and the walker that turns it into bodies.

The walker visits the tree depth-first, left to right.  Every node gets a
dotted part identifier (``"2.1"``) locating it for body fetches; the root
has none and is fetched as the whole message text.  Nodes carrying a
``name`` or ``filename`` parameter become attachments.  Remaining text
leaves are fetched, decoded and appended to either the plaintext or the
HTML body.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum

import structlog

from .decoding import decode_content, to_text

logger = structlog.get_logger()

PLAINTEXT_SEPARATOR = "\n\n"
HTML_SEPARATOR = "<br><br>"

BodyFetcher = Callable[[str | None], bytes]


class BodyType(IntEnum):
    """Primary body type codes as reported by IMAP libraries."""

    TEXT = 0
    MULTIPART = 1
    MESSAGE = 2
    APPLICATION = 3
    AUDIO = 4
    IMAGE = 5
    VIDEO = 6
    OTHER = 7

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_code(cls, code: int) -> BodyType:
        try:
            return cls(code)
        except ValueError:
            return cls.OTHER

    @classmethod
    def from_label(cls, label: str) -> BodyType:
        try:
            return cls[label.upper()]
        except KeyError:
            return cls.OTHER


# Leaves of these types are read as body text.  A type 1 node without
# children is opaque, so it is read as plaintext.
INLINE_TYPES = frozenset({BodyType.TEXT, BodyType.MULTIPART})

ATTACHMENT_PARAMETERS = ("filename", "name")


@dataclass(frozen=True)
class StructureNode:
    """One node of a message body structure."""

    type: int
    subtype: str = ""
    encoding: str | int | None = None
    parameters: tuple[tuple[str, str], ...] = ()
    dparameters: tuple[tuple[str, str], ...] = ()
    parts: tuple[StructureNode, ...] = ()
    size: int | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.parts

    @property
    def mime_type(self) -> str:
        return f"{BodyType.from_code(self.type).label}/{self.subtype.lower()}"


@dataclass(frozen=True)
class AttachmentSpec:
    """A structure node classified as an attachment."""

    node: StructureNode
    part_id: str | None
    filename: str


@dataclass
class WalkResult:
    plaintext: str | None = None
    html: str | None = None
    attachments: list[AttachmentSpec] = field(default_factory=list)


def extract_parameters(node: StructureNode) -> dict[str, str]:
    """Merge content-type and disposition parameters into one map.

    Keys are lower-cased.  Disposition parameters are applied last and win
    on collision.
    """
    parameters: dict[str, str] = {}
    for attribute, value in node.parameters or ():
        parameters[attribute.lower()] = value
    for attribute, value in node.dparameters or ():
        parameters[attribute.lower()] = value
    return parameters


def attachment_filename(parameters: dict[str, str]) -> str | None:
    for key in ATTACHMENT_PARAMETERS:
        if key in parameters:
            return parameters[key]
    return None


def child_part_id(parent_id: str | None, index: int) -> str:
    """Identifier of the child at 0-based *index* below *parent_id*."""
    if parent_id is None:
        return str(index + 1)
    return f"{parent_id}.{index + 1}"


class _Walker:
    def __init__(self, fetch_body: BodyFetcher, charset: str) -> None:
        self._fetch_body = fetch_body
        self._charset = charset
        self._plaintext: list[str] = []
        self._html: list[str] = []
        self._attachments: list[AttachmentSpec] = []

    def visit(self, node: StructureNode, part_id: str | None) -> None:
        parameters = extract_parameters(node)
        filename = attachment_filename(parameters)

        if filename is not None:
            self._attachments.append(AttachmentSpec(node=node, part_id=part_id, filename=filename))
        elif node.is_leaf and node.type in INLINE_TYPES:
            self._read_fragment(node, part_id, parameters.get("charset"))
        elif node.is_leaf:
            logger.debug(
                "structure_part_skipped",
                part_id=part_id,
                mime_type=node.mime_type,
            )

        for index, child in enumerate(node.parts):
            self.visit(child, child_part_id(part_id, index))

    def _read_fragment(self, node: StructureNode, part_id: str | None, charset: str | None) -> None:
        raw = self._fetch_body(part_id)
        payload = decode_content(raw, node.encoding)
        text = to_text(payload, charset, self._charset).strip()

        if node.subtype.lower() == "plain" or node.type == BodyType.MULTIPART:
            self._plaintext.append(text)
        else:
            self._html.append(text)

    def result(self) -> WalkResult:
        return WalkResult(
            plaintext=PLAINTEXT_SEPARATOR.join(self._plaintext) if self._plaintext else None,
            html=HTML_SEPARATOR.join(self._html) if self._html else None,
            attachments=list(self._attachments),
        )


def walk_structure(
    root: StructureNode,
    fetch_body: BodyFetcher,
    charset: str = "UTF-8",
) -> WalkResult:
    """Walk *root* and collect bodies and attachments.

    *fetch_body* receives the dotted part identifier of each text leaf, or
    ``None`` when the root itself is the text leaf, and returns its raw
    (still transfer-encoded) bytes.  Fetches happen in depth-first order.
    """
    walker = _Walker(fetch_body, charset)
    walker.visit(root, None)
    result = walker.result()
    logger.debug(
        "structure_walked",
        has_plaintext=result.plaintext is not None,
        has_html=result.html is not None,
        attachments=len(result.attachments),
    )
    return result
