"""
LunchBot — Command Dispatcher.

Stateless service layer: applies a parsed command to the Group Store and
Proposal Store and returns a structured response. Domain failures are
turned into user-facing text here, so nothing a user types can raise out
of ``dispatch()``.

The caller owns locking (see ``LunchBot``); this class assumes it runs
inside the state's critical section.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lunchbot.core.errors import DomainError
from lunchbot.core.names import current_nicks
from lunchbot.core.parser import (
    USAGE,
    AddMemberCommand,
    GroupAddCommand,
    GroupRemoveCommand,
    HelpCommand,
    ListCommand,
    ParseError,
    ParseErrorKind,
    ProposeCommand,
    RemoveMemberCommand,
)
from lunchbot.data.models import Group, format_time

if TYPE_CHECKING:
    from lunchbot.core.parser import ParserResponse
    from lunchbot.data.groups import GroupStore
    from lunchbot.data.proposals import ProposalStore
    from lunchbot.ports.roster_port import RosterPort

logger = logging.getLogger(__name__)


@dataclass
class Response:
    """Reply text plus whether the command changed stored state."""

    text: str
    mutated: bool = False


def _format_group(group: Group) -> str:
    return f"{group.name}: {group}"


def render_parse_error(error: ParseError) -> str:
    if error.kind is ParseErrorKind.UNKNOWN_COMMAND:
        return f"{error.message}\n{USAGE}"
    return f"{error.message}. Type 'help' for usage."


class Dispatcher:
    """Maps each command to store operations and formats the reply."""

    def __init__(
        self,
        groups: GroupStore,
        proposals: ProposalStore,
        roster: RosterPort | None = None,
    ) -> None:
        self.groups = groups
        self.proposals = proposals
        self.roster = roster

    def dispatch(self, cmd: ParserResponse) -> Response:
        if isinstance(cmd, ParseError):
            return Response(render_parse_error(cmd))

        logger.info("Incoming command: %s", cmd.model_dump())
        try:
            if isinstance(cmd, ProposeCommand):
                return self._propose(cmd)
            if isinstance(cmd, ListCommand):
                return self._list(cmd)
            if isinstance(cmd, GroupAddCommand):
                group = self.groups.add_group(cmd.name, cmd.members)
                return Response(f"New group: {group.name} - {group}", mutated=True)
            if isinstance(cmd, GroupRemoveCommand):
                self.groups.remove_group(cmd.name)
                return Response(f"Group {cmd.name} has been removed", mutated=True)
            if isinstance(cmd, AddMemberCommand):
                return self._add_member(cmd)
            if isinstance(cmd, RemoveMemberCommand):
                return self._remove_member(cmd)
            if isinstance(cmd, HelpCommand):
                return Response(USAGE)
        except DomainError as exc:
            logger.info("Command rejected: %s", exc)
            return Response(str(exc))

        logger.warning("No handler for command: %r", cmd)
        return Response(USAGE)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _propose(self, cmd: ProposeCommand) -> Response:
        self.proposals.add_proposal(
            cmd.place, cmd.time, cmd.group, meet_place=cmd.meet_place, meet_time=cmd.meet_time,
        )
        what = f"{cmd.place} at {format_time(cmd.time)}"
        if cmd.meet_place:
            what += f", meet at {cmd.meet_place}"
            if cmd.meet_time is not None:
                what += f" {format_time(cmd.meet_time)}"

        if cmd.group is None:
            return Response(f"New proposal: {what}", mutated=True)

        members = self.groups.resolve_group(cmd.group)
        if members is None:
            return Response(
                f"New proposal: {what} to {cmd.group} (-No such group- yet)", mutated=True,
            )

        text = f"New proposal: {what} to {cmd.group}"
        nicks = self._present_nicks(members)
        if nicks:
            text += f"\n{', '.join(nicks)}: go to {what}"
        return Response(text, mutated=True)

    def _present_nicks(self, members: list[str]) -> list[str]:
        if self.roster is None:
            return []
        return current_nicks(members, self.roster.get_list_of_users())

    def _list(self, cmd: ListCommand) -> Response:
        if cmd.what == "groups":
            groups = self.groups.list_groups()
            if not groups:
                return Response("No groups")
            return Response("Groups: " + "; ".join(_format_group(g) for g in groups))

        proposals = self.proposals.list_active()
        if not proposals:
            return Response("No active proposals")
        return Response("Proposals: " + "; ".join(str(p) for p in proposals))

    def _add_member(self, cmd: AddMemberCommand) -> Response:
        if not self.groups.add_member(cmd.group, cmd.user):
            return Response(f"{cmd.user} is already in {cmd.group}")
        members = self.groups.resolve_group(cmd.group) or []
        return Response(f"Group {cmd.group} updated: {', '.join(members)}", mutated=True)

    def _remove_member(self, cmd: RemoveMemberCommand) -> Response:
        if not self.groups.remove_member(cmd.group, cmd.user):
            return Response(f"{cmd.user} is not in {cmd.group}")
        members = self.groups.resolve_group(cmd.group) or []
        listing = ", ".join(members) or "(no members)"
        return Response(f"Group {cmd.group} updated: {listing}", mutated=True)
