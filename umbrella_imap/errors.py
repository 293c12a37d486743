"""Exception hierarchy for IMAP message processing."""

from __future__ import annotations


class ImapMessageError(Exception):
    """Base class for every error raised by this package."""


class InvalidFlag(ImapMessageError):
    """A flag name is not in the vocabulary or cannot be set by clients."""

    def __init__(self, flag: str) -> None:
        super().__init__(f'Unable to set invalid flag "{flag}"')
        self.flag = flag


class TransportFailure(ImapMessageError):
    """A call to the transport collaborator failed."""


class CharsetConversionError(TransportFailure):
    """Re-encoding a body fragment into the output charset failed."""


class MissingSender(ImapMessageError):
    """The message headers carry no From address."""

    def __init__(self, uid: str) -> None:
        super().__init__(f"Message {uid} has no From address")
        self.uid = uid
