"""
LunchBot — Proposal Store.

Owns the active lunch proposals. A proposal is either Active or Expired;
expiry happens only through the sweep in ``expire()``, which every read
path runs first. There is no background deletion task and no way to
edit or manually delete a proposal: "changing" one means proposing again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, time, timedelta

from lunchbot.data.models import Proposal, is_expired

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ProposalStore:
    """In-memory store of proposals, oldest first."""

    def __init__(
        self,
        grace: timedelta | None = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.grace = grace
        self._clock = clock
        self._proposals: list[Proposal] = []
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._proposals)

    @property
    def next_id(self) -> int:
        return self._next_id

    def now(self) -> datetime:
        return self._clock()

    def add_proposal(
        self,
        place: str,
        time: time,
        target_group: str | None = None,
        *,
        meet_place: str | None = None,
        meet_time: time | None = None,
        now: datetime | None = None,
    ) -> int:
        """Record a new proposal and return its id.

        ``target_group`` is kept as a plain reference; it may name a group
        that does not exist (yet).
        """
        proposal = Proposal(
            id=self._next_id,
            place=place,
            time=time,
            created_at=now or self.now(),
            group=target_group,
            meet_place=meet_place,
            meet_time=meet_time,
        )
        self._next_id += 1
        self._proposals.append(proposal)
        logger.info("Proposal #%d added: %s", proposal.id, proposal)
        return proposal.id

    def expire(self, now: datetime | None = None) -> int:
        """Drop every expired proposal. Returns the number removed."""
        now = now or self.now()
        before = len(self._proposals)
        self._proposals = [p for p in self._proposals if not is_expired(p, now, self.grace)]
        removed = before - len(self._proposals)
        if removed:
            logger.info("Removing %d old proposals", removed)
        return removed

    def list_active(self, now: datetime | None = None) -> list[Proposal]:
        """Sweep expired proposals, then return the rest oldest first."""
        self.expire(now)
        return sorted(self._proposals, key=lambda p: (p.created_at, p.id))

    @classmethod
    def from_proposals(
        cls,
        proposals: Iterable[Proposal],
        next_id: int = 1,
        grace: timedelta | None = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> ProposalStore:
        """Rebuild a store from saved proposals; the id counter never goes back."""
        store = cls(grace=grace, clock=clock)
        store._proposals = list(proposals)
        highest = max((p.id for p in store._proposals), default=0)
        store._next_id = max(next_id, highest + 1)
        return store
