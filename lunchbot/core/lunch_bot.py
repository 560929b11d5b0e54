"""
LunchBot — Guarded state and lifecycle hooks.

One ``LunchBot`` owns the Group Store and the Proposal Store. Two
activities touch them: command handling (one chat message at a time) and
the snapshot timer. Both go through ``self._lock``, so a snapshot never
sees a half-applied command.

The transport only calls the four hooks:

    on_startup()              restore the last snapshot
    on_message(text, sender)  parse + dispatch, returns the reply
    on_timer_tick()           save if anything changed
    on_shutdown()             final save
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, tzinfo
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from lunchbot.adapters.seen_roster import SeenUsersRoster
from lunchbot.core.dispatcher import Dispatcher, Response
from lunchbot.core.errors import PersistenceError
from lunchbot.core.parser import parse
from lunchbot.data import snapshot
from lunchbot.data.groups import GroupStore
from lunchbot.data.proposals import ProposalStore

if TYPE_CHECKING:
    from lunchbot.data.snapshot import SnapshotManager

logger = logging.getLogger(__name__)


class LunchBot:
    """The command processor plus the state it guards."""

    def __init__(
        self,
        snapshots: SnapshotManager | None = None,
        prefix: str = "lb",
        grace: timedelta | None = None,
        tz: tzinfo | None = None,
        roster: SeenUsersRoster | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.snapshots = snapshots
        self.prefix = prefix
        self.grace = grace
        self.tz = tz
        self.roster = roster or SeenUsersRoster()
        self._clock = clock
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._save_seq = 0
        self._written_seq = 0
        self._install(GroupStore(), ProposalStore(grace=grace, clock=self.now))

    @classmethod
    def from_settings(cls) -> LunchBot:
        from lunchbot.config import settings
        from lunchbot.data.snapshot import SnapshotManager

        snapshots = SnapshotManager(settings.SNAPSHOT_PATH) if settings.SNAPSHOT_PATH else None
        return cls(
            snapshots=snapshots,
            prefix=settings.COMMAND_PREFIX,
            grace=settings.proposal_grace,
            tz=ZoneInfo(settings.TIMEZONE),
        )

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        if self.tz is None:
            return datetime.now().astimezone()
        return datetime.now(self.tz)

    def _install(self, groups: GroupStore, proposals: ProposalStore) -> None:
        self.groups = groups
        self.proposals = proposals
        self.dispatcher = Dispatcher(groups, proposals, self.roster)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def strip_prefix(self, text: str) -> str | None:
        """Return the command part of ``text``, or None if not addressed to us."""
        if not self.prefix:
            return text.strip()
        words = text.strip().split(None, 1)
        if not words or words[0].lower() != self.prefix.lower():
            return None
        return words[1] if len(words) > 1 else ""

    def handle(self, line: str) -> Response:
        """Parse and dispatch one prefix-less command under the state lock."""
        cmd = parse(line)
        with self._lock:
            response = self.dispatcher.dispatch(cmd)
            if response.mutated and self.snapshots is not None:
                self.snapshots.mark_dirty()
        return response

    def on_message(self, text: str, sender: str | None = None) -> str | None:
        """Handle one chat line. Returns the reply, or None to stay silent."""
        line = self.strip_prefix(text)
        if line is None:
            return None
        if sender:
            with self._lock:
                self.roster.record(sender)
        try:
            return self.handle(line).text
        except Exception as exc:
            logger.exception("Unexpected error handling '%s': %s", line, exc)
            return "Sorry, something went wrong while handling that command."

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def on_startup(self) -> None:
        """Restore the last snapshot; start empty if there is none or it is bad."""
        if self.snapshots is None:
            logger.info("Snapshots disabled; starting with empty state")
            return
        try:
            blob = self.snapshots.read()
            if blob is None:
                logger.info("No snapshot at %s; starting with empty state", self.snapshots.path)
                return
            groups, proposals = snapshot.restore(
                blob, grace=self.grace, now=self.now(), clock=self.now,
            )
        except PersistenceError as exc:
            logger.error("Failed to recover state: %s", exc)
            return
        with self._lock:
            self._install(groups, proposals)

    def save(self, force: bool = False) -> bool:
        """Write a snapshot. Returns True if one was written.

        The blob is built under the state lock; the file write happens
        after the lock is released. Each blob carries a sequence number,
        and a blob older than the last one written is dropped, so a slow
        save can never overwrite a newer snapshot.
        """
        if self.snapshots is None:
            return False
        with self._lock:
            if not force and not self.snapshots.dirty:
                return False
            blob = snapshot.save(self.groups, self.proposals, now=self.now())
            self._save_seq += 1
            seq = self._save_seq
            self.snapshots.dirty = False
        try:
            with self._write_lock:
                if seq <= self._written_seq:
                    logger.debug("Snapshot #%d superseded by #%d; not written", seq, self._written_seq)
                    return False
                self.snapshots.write(blob)
                self._written_seq = seq
        except PersistenceError as exc:
            logger.error("Failed to backup the state: %s", exc)
            with self._lock:
                self.snapshots.mark_dirty()
            return False
        logger.info("State saved to %s", self.snapshots.path)
        return True

    def on_timer_tick(self) -> bool:
        return self.save()

    def on_shutdown(self) -> None:
        logger.info("Shutting down; saving state")
        self.save(force=True)
