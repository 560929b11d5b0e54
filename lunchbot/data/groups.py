"""
LunchBot — Group Store.

Owns the mapping of group name → members. Every user name passes through
the Name Resolver before it is stored or compared, so ``alice`` and
``alice|wfh`` are one member.

Not thread-safe on its own: callers go through ``LunchBot``'s lock.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from lunchbot.core.errors import DuplicateGroupError, UnknownGroupError
from lunchbot.core.names import normalize
from lunchbot.data.models import Group

logger = logging.getLogger(__name__)


def _dedupe(names: Iterable[str]) -> list[str]:
    """Normalize names and drop repeats, keeping first-seen order."""
    members: list[str] = []
    for name in names:
        base = normalize(name)
        if base and base not in members:
            members.append(base)
    return members


class GroupStore:
    """In-memory registry of lunch groups, in creation order."""

    def __init__(self) -> None:
        self._groups: dict[str, Group] = {}

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, name: str) -> bool:
        return name in self._groups

    def _get(self, name: str) -> Group:
        group = self._groups.get(name)
        if group is None:
            raise UnknownGroupError(name)
        return group

    def add_group(self, name: str, member_names: Iterable[str]) -> Group:
        """Create a group. Raises DuplicateGroupError if the name is taken."""
        if name in self._groups:
            raise DuplicateGroupError(name)
        group = Group(name=name, members=_dedupe(member_names))
        self._groups[name] = group
        logger.info("Group added: '%s' with %d members", name, len(group.members))
        return Group(name=group.name, members=list(group.members))

    def remove_group(self, name: str) -> Group:
        """Delete a group. Raises UnknownGroupError if absent."""
        self._get(name)
        group = self._groups.pop(name)
        logger.info("Group removed: '%s'", name)
        return group

    def add_member(self, group_name: str, user_name: str) -> bool:
        """Add a user to a group.

        Returns False if the user (in any variant) is already a member.
        """
        group = self._get(group_name)
        base = normalize(user_name)
        if base in group.members:
            return False
        group.members.append(base)
        logger.info("Member '%s' added to group '%s'", base, group_name)
        return True

    def remove_member(self, group_name: str, user_name: str) -> bool:
        """Remove a user from a group. Returns False if they were not in it."""
        group = self._get(group_name)
        base = normalize(user_name)
        if base not in group.members:
            return False
        group.members.remove(base)
        logger.info("Member '%s' removed from group '%s'", base, group_name)
        return True

    def list_groups(self) -> list[Group]:
        """All groups in creation order (copies, safe to hand out)."""
        return [Group(name=g.name, members=list(g.members)) for g in self._groups.values()]

    def resolve_group(self, name: str) -> list[str] | None:
        """Members of ``name``, or None if there is no such group."""
        group = self._groups.get(name)
        if group is None:
            return None
        return list(group.members)

    @classmethod
    def from_groups(cls, groups: Iterable[Group]) -> GroupStore:
        """Rebuild a store from previously saved groups (later duplicates win)."""
        store = cls()
        for group in groups:
            store._groups[group.name] = Group(name=group.name, members=_dedupe(group.members))
        return store
