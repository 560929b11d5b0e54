"""
LunchBot — Name Resolver.

Chat users decorate their nicknames with a status suffix (alice|wfh,
alice|lunch, alice|ooo). Group membership is always stored under the
base name so that every variant counts as the same person.

No I/O: this module only transforms strings.
"""

from __future__ import annotations

from collections.abc import Iterable

STATUS_SEPARATOR = "|"


def normalize(name: str) -> str:
    """Return the base identity of a (possibly augmented) nickname.

    ``alice|wfh`` → ``alice``. Names without a separator are returned
    stripped but otherwise unchanged. A name that would normalize to an
    empty string (``|wfh``) is its own base form.
    """
    stripped = name.strip()
    base, sep, _status = stripped.partition(STATUS_SEPARATOR)
    if not sep:
        return stripped
    base = base.strip()
    return base or stripped


def is_variant_of(base: str, nick: str) -> bool:
    """True when ``nick`` is ``base`` itself or ``base`` plus a status suffix."""
    return normalize(nick) == base


def current_nicks(members: Iterable[str], present: Iterable[str]) -> list[str]:
    """Map base member names to the nicknames they currently use.

    For each member, the first nickname in ``present`` that resolves to it
    is returned. Members that are not present are left out.
    """
    present = list(present)
    nicks: list[str] = []
    for member in members:
        for nick in present:
            if is_variant_of(member, nick):
                nicks.append(nick)
                break
    return nicks
