"""IMAP system flags tracked per message."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from .errors import InvalidFlag

FLAG_TYPES: tuple[str, ...] = ("recent", "flagged", "answered", "deleted", "seen", "draft")

# Assigned by the server; clients may read it but never STORE it.
READ_ONLY_FLAGS: frozenset[str] = frozenset({"recent"})


class FlagSet:
    """Boolean state for a fixed vocabulary of flags.

    State is replaced from overview records only; setting a flag on the
    server does not touch it until the overview is reloaded.
    """

    def __init__(self, vocabulary: Iterable[str] = FLAG_TYPES) -> None:
        self._vocabulary = tuple(vocabulary)
        self._status: dict[str, bool] = {flag: False for flag in self._vocabulary}

    @property
    def vocabulary(self) -> tuple[str, ...]:
        return self._vocabulary

    def update(self, server_flags: Iterable[str]) -> None:
        """Replace the state from flag names reported by the server."""
        present = {flag.lstrip("\\").lower() for flag in server_flags}
        self._status = {flag: flag in present for flag in self._vocabulary}

    def check(self, flag: str) -> bool:
        return self._status.get(flag, False)

    def validate_settable(self, flag: str) -> None:
        if flag not in self._vocabulary or flag in READ_ONLY_FLAGS:
            raise InvalidFlag(flag)

    def token(self, flag: str) -> str:
        """Server token for *flag*, e.g. ``\\Flagged``."""
        self.validate_settable(flag)
        return "\\" + flag.capitalize()

    def as_mapping(self) -> Mapping[str, bool]:
        return MappingProxyType(self._status)
