"""
LunchBot — Command Parser.

Turns one line of chat text into a structured command. The grammar is
loose on purpose: connective words (``at``, ``to``, ``meet``, ``from``)
may be typed or left out without changing the result, so the parser is a
small tokenizer plus a handful of optional-token matchers rather than a
fixed-format split.

Parsing is total: ``parse()`` returns either a command model or a
``ParseError`` value and never raises.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from enum import Enum
from typing import Callable, Literal, Union

from pydantic import BaseModel

from lunchbot.core.names import normalize

logger = logging.getLogger(__name__)

USAGE = """\
Usage:
  propose <place> [at] <time> [to <group>] [meet [at] <place> <time>]
  list [groups|proposals]
  group add <group> <user1>,<user2>,...
  group remove <group>
  add <user> [to] <group>
  remove <user> [from] <group>
  help"""


# ---------------------------------------------------------------------------
# Command models
# ---------------------------------------------------------------------------


class ProposeCommand(BaseModel):
    """Suggest a place and time, optionally for a group and with a meeting point.

    Example: ``propose Pizzeria at 12:00 to Lunchers meet lobby 11:50``
    """
    intent: Literal["propose"] = "propose"
    place: str
    time: dt.time
    group: str | None = None
    meet_place: str | None = None
    meet_time: dt.time | None = None


class ListCommand(BaseModel):
    """``list groups`` / ``list proposals`` (bare ``list`` means proposals)."""
    intent: Literal["list"] = "list"
    what: Literal["groups", "proposals"] = "proposals"


class GroupAddCommand(BaseModel):
    """``group add Lunchers alice,bob`` — members already normalized."""
    intent: Literal["group_add"] = "group_add"
    name: str
    members: list[str]


class GroupRemoveCommand(BaseModel):
    intent: Literal["group_remove"] = "group_remove"
    name: str


class AddMemberCommand(BaseModel):
    intent: Literal["add_member"] = "add_member"
    user: str
    group: str


class RemoveMemberCommand(BaseModel):
    intent: Literal["remove_member"] = "remove_member"
    user: str
    group: str


class HelpCommand(BaseModel):
    intent: Literal["help"] = "help"


Command = Union[
    ProposeCommand,
    ListCommand,
    GroupAddCommand,
    GroupRemoveCommand,
    AddMemberCommand,
    RemoveMemberCommand,
    HelpCommand,
]


class ParseErrorKind(str, Enum):
    UNKNOWN_COMMAND = "unknown_command"
    BAD_TIME = "bad_time"
    MALFORMED_USER_LIST = "malformed_user_list"
    BAD_ARGUMENTS = "bad_arguments"


class ParseError(BaseModel):
    """Why a line could not be turned into a command."""
    kind: ParseErrorKind
    message: str


ParserResponse = Union[Command, ParseError]


class _ParseFailure(Exception):
    """Internal: unwinds the descent parser; always caught in ``parse()``."""

    def __init__(self, kind: ParseErrorKind, message: str) -> None:
        super().__init__(message)
        self.error = ParseError(kind=kind, message=message)


# ---------------------------------------------------------------------------
# Time parsing
# ---------------------------------------------------------------------------

_TIME_SHAPE = re.compile(r"^(?:\d{1,4}(?:[:.]\d{1,2})?(?:am|pm|h)?|noon|midday)$", re.IGNORECASE)
_CLOCK = re.compile(r"^(?P<h>\d{1,2})(?:[:.](?P<m>\d{2}))?(?P<suffix>am|pm|h)?$", re.IGNORECASE)
_COMPACT = re.compile(r"^(?P<h>\d{1,2})(?P<m>\d{2})$")


def looks_like_time(token: str) -> bool:
    """True for tokens shaped like a time of day, valid or not (``25:00`` counts)."""
    return bool(_TIME_SHAPE.match(token))


def parse_time(token: str) -> dt.time | None:
    """Parse a time of day; returns None when the token is not a valid time.

    Accepted: ``12:00``, ``9:30``, ``12.30``, ``1230``, ``12``, ``12h``,
    ``12pm``, ``1:30pm``, ``noon``.
    """
    token = token.strip().lower()
    if token in ("noon", "midday"):
        return dt.time(12, 0)

    match = _CLOCK.match(token) or _COMPACT.match(token)
    if match is None:
        return None

    hour = int(match.group("h"))
    minute = int(match.group("m") or 0)
    suffix = match.groupdict().get("suffix")
    suffix = suffix.lower() if suffix else None

    if suffix in ("am", "pm"):
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if suffix == "pm" else 0)

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return dt.time(hour, minute)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def tokenize(line: str) -> list[str]:
    return line.split()


class _Tokens:
    """Cursor over the words of one command line."""

    def __init__(self, words: list[str]) -> None:
        self._words = words
        self._pos = 0

    @property
    def at_end(self) -> bool:
        return self._pos >= len(self._words)

    def peek(self, offset: int = 0) -> str | None:
        index = self._pos + offset
        return self._words[index] if index < len(self._words) else None

    def peek_is(self, *words: str, offset: int = 0) -> bool:
        token = self.peek(offset)
        return token is not None and token.lower() in words

    def next(self) -> str:
        token = self._words[self._pos]
        self._pos += 1
        return token

    def accept(self, *words: str) -> bool:
        """Consume the next token if it is one of ``words`` (case-insensitive)."""
        if self.peek_is(*words):
            self._pos += 1
            return True
        return False

    def expect(self, what: str) -> str:
        if self.at_end:
            raise _ParseFailure(ParseErrorKind.BAD_ARGUMENTS, f"Missing {what}")
        return self.next()

    def remaining(self) -> list[str]:
        return self._words[self._pos:]

    def rest(self) -> str:
        words = self.remaining()
        self._pos = len(self._words)
        return " ".join(words)

    def finish(self) -> None:
        if not self.at_end:
            raise _ParseFailure(
                ParseErrorKind.BAD_ARGUMENTS, f"Unexpected text: {' '.join(self.remaining())}",
            )


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------


def _place_then_time(
    tokens: _Tokens, what: str, stop: tuple[str, ...] = (),
) -> tuple[str, dt.time]:
    """Match ``<words...>[ at] <time>``.

    The time is the first valid time-shaped token that has at least one
    place word before it and is not itself followed by another time-shaped
    token, so numbers inside a place name ("Pho 24", "5 Guys") stay part of
    the place. An ``at`` right before the time is filler; any other ``at``
    belongs to the place name.
    Scanning ends at the first word in ``stop``.
    """
    rest = tokens.remaining()
    for i, token in enumerate(rest):
        if token.lower() in stop:
            rest = rest[:i]
            break

    def place_words(index: int) -> list[str]:
        words = rest[:index]
        if words and words[-1].lower() == "at":
            words = words[:-1]
        return words

    shaped = [i for i, token in enumerate(rest) if looks_like_time(token) and place_words(i)]
    if not shaped:
        if not rest or any(looks_like_time(token) for token in rest):
            raise _ParseFailure(ParseErrorKind.BAD_ARGUMENTS, f"Missing {what}")
        raise _ParseFailure(ParseErrorKind.BAD_TIME, f"Missing time for {' '.join(rest)}")

    valid = [i for i in shaped if parse_time(rest[i]) is not None]
    if not valid:
        raw = rest[shaped[0]]
        raise _ParseFailure(ParseErrorKind.BAD_TIME, f"Cannot understand time '{raw}'")

    index = next(
        (i for i in valid if i + 1 == len(rest) or not looks_like_time(rest[i + 1])),
        valid[0],
    )
    words = place_words(index)
    for _ in range(index + 1):
        tokens.next()
    return " ".join(words), parse_time(rest[index])


def _bare_group_follows(tokens: _Tokens) -> bool:
    """Decide whether the word after the proposal time is a group name.

    Without ``to`` the next word is a group when it stands alone, is
    followed by ``meet``, or leaves at least ``<place> <time>`` behind it.
    Otherwise the remainder is a meeting point.
    """
    rest = tokens.remaining()
    if not rest or rest[0].lower() == "meet" or looks_like_time(rest[0]):
        return False
    if len(rest) == 1 or rest[1].lower() == "meet":
        return True
    return len(rest) >= 3 and looks_like_time(rest[-1])


def _parse_propose(tokens: _Tokens) -> ProposeCommand:
    place, when = _place_then_time(tokens, "place", stop=("meet",))

    group = None
    if tokens.accept("to"):
        group = tokens.expect("group name")
    elif _bare_group_follows(tokens):
        group = tokens.next()

    meet_place = meet_time = None
    meet_keyword = tokens.accept("meet")
    if meet_keyword or not tokens.at_end:
        tokens.accept("at")
        meet_place, meet_time = _place_then_time(tokens, "meeting place")

    tokens.finish()
    return ProposeCommand(
        place=place, time=when, group=group, meet_place=meet_place, meet_time=meet_time,
    )


def _parse_list(tokens: _Tokens) -> ListCommand:
    if tokens.at_end:
        return ListCommand()
    what = tokens.next().lower()
    if what not in ("groups", "proposals"):
        raise _ParseFailure(ParseErrorKind.BAD_ARGUMENTS, f"Cannot list '{what}'")
    tokens.finish()
    return ListCommand(what=what)


def _parse_user_list(text: str) -> list[str]:
    """Split ``alice,bob|wfh, carol`` into normalized names."""
    if not text.strip():
        raise _ParseFailure(ParseErrorKind.MALFORMED_USER_LIST, "Missing list of users")
    users: list[str] = []
    for item in text.split(","):
        item = item.strip()
        if not item or len(item.split()) > 1:
            raise _ParseFailure(
                ParseErrorKind.MALFORMED_USER_LIST,
                f"Malformed user list '{text}', use comma-separated names",
            )
        users.append(normalize(item))
    return users


def _parse_group(tokens: _Tokens) -> GroupAddCommand | GroupRemoveCommand:
    if tokens.accept("add"):
        name = tokens.expect("group name")
        members = _parse_user_list(tokens.rest())
        return GroupAddCommand(name=name, members=members)
    if tokens.accept("remove"):
        name = tokens.expect("group name")
        tokens.finish()
        return GroupRemoveCommand(name=name)
    sub = tokens.peek() or ""
    raise _ParseFailure(ParseErrorKind.UNKNOWN_COMMAND, f"Unknown command: group {sub}".rstrip())


def _parse_add(tokens: _Tokens) -> AddMemberCommand:
    user = normalize(tokens.expect("user name"))
    tokens.accept("to")
    group = tokens.expect("group name")
    tokens.finish()
    return AddMemberCommand(user=user, group=group)


def _parse_remove(tokens: _Tokens) -> RemoveMemberCommand:
    user = normalize(tokens.expect("user name"))
    tokens.accept("from")
    group = tokens.expect("group name")
    tokens.finish()
    return RemoveMemberCommand(user=user, group=group)


def _parse_help(tokens: _Tokens) -> HelpCommand:
    return HelpCommand()


_COMMANDS: dict[str, Callable[[_Tokens], Command]] = {
    "propose": _parse_propose,
    "list": _parse_list,
    "group": _parse_group,
    "add": _parse_add,
    "remove": _parse_remove,
    "help": _parse_help,
}


# ---------------------------------------------------------------------------
# Parser function
# ---------------------------------------------------------------------------


def parse(line: str) -> ParserResponse:
    """Parse one command line into a command model or a ParseError."""
    tokens = _Tokens(tokenize(line))
    if tokens.at_end:
        return ParseError(kind=ParseErrorKind.UNKNOWN_COMMAND, message="Empty command")

    keyword = tokens.next()
    handler = _COMMANDS.get(keyword.lower())
    if handler is None:
        return ParseError(kind=ParseErrorKind.UNKNOWN_COMMAND, message=f"Unknown command: {keyword}")

    try:
        command = handler(tokens)
    except _ParseFailure as exc:
        logger.debug("Parse error for '%s': %s", line, exc.error.message)
        return exc.error

    logger.debug("Parsed %s from '%s'", command.intent, line)
    return command
