"""Seen-users roster — implements RosterPort.

Telegram does not let a bot list everyone in a group chat, so the roster
is built from the people who have spoken. Each person is remembered under
the nickname they used last (``alice|wfh`` replaces ``alice``).
"""

from __future__ import annotations

import logging
from collections import OrderedDict

from lunchbot.core.names import normalize

logger = logging.getLogger(__name__)


class SeenUsersRoster:
    """RosterPort implementation backed by recently seen senders."""

    def __init__(self, maxsize: int = 256) -> None:
        self.maxsize = maxsize
        self._nicks: OrderedDict[str, str] = OrderedDict()

    def record(self, nick: str) -> None:
        """Remember ``nick`` as the current nickname of its base identity."""
        nick = nick.strip()
        if not nick:
            return
        base = normalize(nick)
        if self._nicks.get(base) != nick:
            logger.debug("Roster: %s is now %s", base, nick)
        self._nicks[base] = nick
        self._nicks.move_to_end(base)
        if len(self._nicks) > self.maxsize:
            self._nicks.popitem(last=False)

    def get_list_of_users(self) -> list[str]:
        return list(self._nicks.values())
