"""
LunchBot — Snapshot Manager.

Serializes the combined Group Store + Proposal Store into one JSON blob
and back. The blob is built while the caller holds the state lock;
``SnapshotManager.write()`` runs afterwards, outside it, so a slow disk
never stalls command replies.

Expired proposals are never written and are dropped again on restore.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path

from pydantic import AwareDatetime, BaseModel, ValidationError

from lunchbot.core.errors import PersistenceError
from lunchbot.data.groups import GroupStore
from lunchbot.data.models import Group, Proposal
from lunchbot.data.proposals import ProposalStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------


class GroupRecord(BaseModel):
    name: str
    members: list[str] = []


class ProposalRecord(BaseModel):
    id: int
    place: str
    time: dt.time
    created_at: AwareDatetime
    group: str | None = None
    meet_place: str | None = None
    meet_time: dt.time | None = None


class SnapshotModel(BaseModel):
    """Everything needed to rebuild the bot state after a restart.

    JSON example:
    {
        "saved_at": "2026-10-19T11:05:00+02:00",
        "next_proposal_id": 3,
        "groups": [{"name": "Lunchers", "members": ["alice", "bob"]}],
        "proposals": [{"id": 2, "place": "Pizzeria", "time": "12:00:00",
                       "created_at": "2026-10-19T10:58:00+02:00",
                       "group": "Lunchers", "meet_place": null, "meet_time": null}]
    }
    """
    saved_at: AwareDatetime
    next_proposal_id: int = 1
    groups: list[GroupRecord] = []
    proposals: list[ProposalRecord] = []


# ---------------------------------------------------------------------------
# save / restore
# ---------------------------------------------------------------------------


def save(groups: GroupStore, proposals: ProposalStore, now: dt.datetime | None = None) -> str:
    """Serialize both stores. Must be called under the state lock."""
    now = now or proposals.now()
    snapshot = SnapshotModel(
        saved_at=now,
        next_proposal_id=proposals.next_id,
        groups=[GroupRecord(name=g.name, members=g.members) for g in groups.list_groups()],
        proposals=[
            ProposalRecord(
                id=p.id,
                place=p.place,
                time=p.time,
                created_at=p.created_at,
                group=p.group,
                meet_place=p.meet_place,
                meet_time=p.meet_time,
            )
            for p in proposals.list_active(now)
        ],
    )
    return snapshot.model_dump_json(indent=2)


def restore(
    blob: str | bytes,
    grace: dt.timedelta | None = None,
    now: dt.datetime | None = None,
    clock: Callable[[], dt.datetime] | None = None,
) -> tuple[GroupStore, ProposalStore]:
    """Rebuild both stores from a blob produced by ``save()``.

    Raises PersistenceError if the blob is not a valid snapshot.
    """
    try:
        snapshot = SnapshotModel.model_validate_json(blob)
    except ValidationError as exc:
        raise PersistenceError(f"Corrupted snapshot: {exc.error_count()} validation errors") from exc

    groups = GroupStore.from_groups(
        Group(name=g.name, members=list(g.members)) for g in snapshot.groups
    )

    kwargs = {"clock": clock} if clock is not None else {}
    proposals = ProposalStore.from_proposals(
        (
            Proposal(
                id=p.id,
                place=p.place,
                time=p.time,
                created_at=p.created_at,
                group=p.group,
                meet_place=p.meet_place,
                meet_time=p.meet_time,
            )
            for p in snapshot.proposals
        ),
        next_id=snapshot.next_proposal_id,
        grace=grace,
        **kwargs,
    )
    proposals.expire(now)

    logger.info(
        "Snapshot from %s restored: %d groups, %d proposals",
        snapshot.saved_at.isoformat(), len(groups), len(proposals),
    )
    return groups, proposals


# ---------------------------------------------------------------------------
# File persistence
# ---------------------------------------------------------------------------


class SnapshotManager:
    """Reads and writes the snapshot file, and tracks unsaved changes."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.dirty = False

    def mark_dirty(self) -> None:
        """Persistence hint: state changed since the last successful write."""
        self.dirty = True

    def read(self) -> str | None:
        """Return the saved blob, or None if no snapshot exists yet."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Cannot read snapshot {self.path}: {exc}") from exc

    def write(self, blob: str) -> None:
        """Atomically replace the snapshot file with ``blob``."""
        tmp_path: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent,
                prefix=f".{self.path.name}.", suffix=".tmp", delete=False,
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(blob)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as exc:
            raise PersistenceError(f"Cannot write snapshot {self.path}: {exc}") from exc
        finally:
            if tmp_path:
                Path(tmp_path).unlink(missing_ok=True)
        logger.debug("Snapshot written to %s", self.path)
