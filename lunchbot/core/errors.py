"""LunchBot error taxonomy.

Parse problems are not exceptions: the parser returns a ``ParseError``
value (see ``lunchbot.core.parser``). Everything raised lives here.
"""

from __future__ import annotations


class LunchBotError(Exception):
    """Base class for all LunchBot errors."""


class DomainError(LunchBotError):
    """A command was well-formed but conflicts with the current state."""


class DuplicateGroupError(DomainError):
    """Raised when creating a group whose name is already taken."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Group {name} already exists")
        self.name = name


class UnknownGroupError(DomainError):
    """Raised when a command refers to a group that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No such group: {name}")
        self.name = name


class PersistenceError(LunchBotError):
    """Raised when a snapshot cannot be read, parsed or written."""
