"""Transfer-encoding and charset handling for body fragments."""

from __future__ import annotations

import base64
import binascii
import codecs
import quopri
import re

import structlog

from .errors import CharsetConversionError

logger = structlog.get_logger()

# Numeric codes used by IMAP libraries for Content-Transfer-Encoding.
ENC_BASE64 = 3
ENC_QUOTED_PRINTABLE = 4

_QUOTED_PRINTABLE = ("quoted-printable", ENC_QUOTED_PRINTABLE)
_BASE64 = ("base64", ENC_BASE64)

_NON_BASE64 = re.compile(rb"[^A-Za-z0-9+/]")


def _normalize_encoding(encoding: str | int | None) -> str | int | None:
    if isinstance(encoding, str):
        token = encoding.strip().lower()
        return int(token) if token.isdigit() else token
    return encoding


def decode_content(data: bytes, encoding: str | int | None) -> bytes:
    """Undo the transfer encoding of *data*.

    Quoted-printable and base64 are decoded; any other token (7bit, 8bit,
    binary, unknown or mislabelled values) returns *data* unchanged.
    """
    encoding = _normalize_encoding(encoding)

    if encoding in _QUOTED_PRINTABLE:
        return quopri.decodestring(data)

    if encoding in _BASE64:
        # Padding is often missing; restore it before decoding.
        stripped = _NON_BASE64.sub(b"", data)
        try:
            return base64.b64decode(stripped + b"=" * (-len(stripped) % 4))
        except (binascii.Error, ValueError):
            logger.warning("base64_decode_failed", length=len(data))
            return data

    return data


def codec_name(charset: str) -> str:
    """Strip iconv-style suffixes such as ``//TRANSLIT`` from *charset*."""
    return charset.split("//", 1)[0].strip()


def is_known_charset(charset: str) -> bool:
    try:
        codecs.lookup(codec_name(charset))
    except LookupError:
        return False
    return True


def needs_transliteration(declared: str | None, target: str) -> bool:
    """Whether a fragment labelled *declared* must be re-encoded to *target*.

    Only us-ascii fragments are converted, and only when the target is
    neither UTF-8 nor ISO-8859-1 derived (both are ASCII supersets already).
    """
    if declared is None or declared == target:
        return False
    target = target.lower()
    if target.startswith("utf-8") or target.startswith("iso-8859-1"):
        return False
    return declared.lower() == "us-ascii"


def transliterate(data: bytes, source: str, target: str) -> bytes:
    try:
        return data.decode(codec_name(source)).encode(codec_name(target))
    except (LookupError, UnicodeError) as exc:
        raise CharsetConversionError(
            f"Cannot convert body from {source} to {target}: {exc}"
        ) from exc


def to_text(data: bytes, declared: str | None, target: str) -> str:
    """Decode body bytes to ``str``, applying the us-ascii conversion rule.

    Bytes are read in the declared charset when Python knows it, otherwise
    in the target charset.  Undecodable bytes are replaced.
    """
    charset = target
    if needs_transliteration(declared, target):
        data = transliterate(data, declared, target)  # type: ignore[arg-type]
    elif declared is not None and is_known_charset(declared):
        charset = declared

    try:
        return data.decode(codec_name(charset), errors="replace")
    except LookupError as exc:
        raise CharsetConversionError(f"Unknown output charset {target}") from exc
