"""Umbrella IMAP: message bodies, attachments and flags from a mailbox."""

from .addresses import Address, RawAddress, format_addresses, normalize_addresses
from .config import ImapConfig, LoggingConfig, MessageConfig, RetryConfig
from .decoding import decode_content
from .errors import (
    CharsetConversionError,
    ImapMessageError,
    InvalidFlag,
    MissingSender,
    TransportFailure,
)
from .flags import FLAG_TYPES, FlagSet
from .imap_client import ImapTransport
from .logging import setup_logging
from .message import AddressKind, Attachment, Message
from .structure import (
    AttachmentSpec,
    BodyType,
    StructureNode,
    WalkResult,
    extract_parameters,
    walk_structure,
)
from .transport import HeaderRecord, OverviewRecord, Transport, parse_headers

__all__ = [
    "FLAG_TYPES",
    "Address",
    "AddressKind",
    "Attachment",
    "AttachmentSpec",
    "BodyType",
    "CharsetConversionError",
    "FlagSet",
    "HeaderRecord",
    "ImapConfig",
    "ImapMessageError",
    "ImapTransport",
    "InvalidFlag",
    "LoggingConfig",
    "Message",
    "MessageConfig",
    "MissingSender",
    "OverviewRecord",
    "RawAddress",
    "RetryConfig",
    "StructureNode",
    "Transport",
    "TransportFailure",
    "WalkResult",
    "decode_content",
    "extract_parameters",
    "format_addresses",
    "normalize_addresses",
    "parse_headers",
    "setup_logging",
    "walk_structure",
]
