"""Roster port — who is currently in the channel, under which nickname.

Core modules depend on this protocol, never on a specific chat provider.
"""

from __future__ import annotations

from typing import Protocol


class RosterPort(Protocol):
    """Abstract channel roster used by the dispatcher."""

    def get_list_of_users(self) -> list[str]: ...
