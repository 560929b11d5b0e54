"""Tests for lunchbot.data.models — Group/Proposal and the expiry predicate."""

from dataclasses import FrozenInstanceError
from datetime import datetime, time, timedelta, timezone

import pytest

from lunchbot.data.models import Group, Proposal, due_at, format_time, is_expired

from tests.fakes import NOW, TZ


def _proposal(**overrides):
    fields = dict(id=1, place="Pizzeria", time=time(12, 0), created_at=NOW)
    fields.update(overrides)
    return Proposal(**fields)


def test_group_str_lists_members():
    assert str(Group("Lunchers", ["alice", "bob"])) == "alice, bob"


def test_proposal_str_minimal():
    assert str(_proposal()) == "Pizzeria at 12:00"


def test_proposal_str_with_group_and_meeting_point():
    p = _proposal(group="Lunchers", meet_place="lobby", meet_time=time(11, 50))
    assert str(p) == "Pizzeria at 12:00 to Lunchers (meet at lobby 11:50)"


def test_proposal_is_immutable():
    p = _proposal()
    with pytest.raises(FrozenInstanceError):
        p.place = "Sushi"


def test_format_time_pads():
    assert format_time(time(9, 5)) == "09:05"


def test_due_at_uses_creation_day_and_zone():
    assert due_at(_proposal()) == datetime(2026, 10, 19, 12, 0, tzinfo=TZ)


class TestIsExpiredEndOfDay:
    def test_active_later_same_day(self):
        assert is_expired(_proposal(), NOW.replace(hour=23, minute=59)) is False

    def test_past_time_same_day_still_active(self):
        assert is_expired(_proposal(time=time(9, 0)), NOW) is False

    def test_expired_next_day(self):
        assert is_expired(_proposal(), NOW + timedelta(days=1)) is True

    def test_compares_in_proposal_timezone(self):
        # 22:30 UTC is already the next day at UTC+2
        now_utc = datetime(2026, 10, 19, 22, 30, tzinfo=timezone.utc)
        assert is_expired(_proposal(), now_utc) is True


class TestIsExpiredWithGrace:
    def test_within_grace(self):
        grace = timedelta(hours=2)
        assert is_expired(_proposal(), NOW.replace(hour=13, minute=59), grace) is False

    def test_beyond_grace(self):
        grace = timedelta(hours=2)
        assert is_expired(_proposal(), NOW.replace(hour=14, minute=1), grace) is True

    def test_zero_grace(self):
        assert is_expired(_proposal(), NOW.replace(hour=12, minute=1), timedelta(0)) is True
