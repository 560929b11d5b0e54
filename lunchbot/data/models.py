"""
LunchBot — Data Models.

Groups are named sets of people who usually go to lunch together.
Proposals are immutable "let's go to X at T" records; they disappear once
their time has sufficiently passed and are never edited in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta


@dataclass
class Group:
    """A named lunch group.

    ``members`` holds base names (no status suffix), unique, in the order
    they joined.
    """

    name: str
    members: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return ", ".join(self.members)


@dataclass(frozen=True)
class Proposal:
    """A suggested lunch place and time, optionally aimed at a group."""

    id: int
    place: str
    time: time                         # time of day, minute precision
    created_at: datetime
    group: str | None = None           # group name, not validated
    meet_place: str | None = None      # where to gather before leaving
    meet_time: time | None = None

    def __str__(self) -> str:
        text = f"{self.place} at {format_time(self.time)}"
        if self.group:
            text += f" to {self.group}"
        if self.meet_place:
            text += f" (meet at {self.meet_place}"
            if self.meet_time is not None:
                text += f" {format_time(self.meet_time)}"
            text += ")"
        return text


def format_time(value: time) -> str:
    """Render a time of day as HH:MM."""
    return value.strftime("%H:%M")


def due_at(proposal: Proposal) -> datetime:
    """The proposed time on the day the proposal was made."""
    return datetime.combine(
        proposal.created_at.date(), proposal.time, tzinfo=proposal.created_at.tzinfo,
    )


def is_expired(proposal: Proposal, now: datetime, grace: timedelta | None = None) -> bool:
    """Return True once the proposal's time has sufficiently passed.

    With ``grace=None`` a proposal lives until the end of its day.
    Otherwise it lives until ``grace`` after its proposed time.
    """
    due = due_at(proposal)
    if due.tzinfo is not None and now.tzinfo is not None:
        now = now.astimezone(due.tzinfo)
    if grace is None:
        return now.date() > due.date()
    return now > due + grace
