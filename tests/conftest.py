"""Shared test fixtures and configuration.

Sets up fake environment variables so lunchbot.config doesn't sys.exit(),
and provides stores and a bot driven by a controllable clock.
"""

import os

# Patch env vars BEFORE any lunchbot imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("SNAPSHOT_PATH", "")
os.environ.setdefault("TIMEZONE", "UTC")

import pytest

from tests.fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def group_store():
    from lunchbot.data.groups import GroupStore
    return GroupStore()


@pytest.fixture
def proposal_store(clock):
    """ProposalStore with the default end-of-day expiry."""
    from lunchbot.data.proposals import ProposalStore
    return ProposalStore(clock=clock)


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "lunchbot.json"


@pytest.fixture
def lunch_bot(snapshot_path, clock):
    """A LunchBot with snapshots in a temp dir and the fake clock."""
    from lunchbot.core.lunch_bot import LunchBot
    from lunchbot.data.snapshot import SnapshotManager
    return LunchBot(snapshots=SnapshotManager(snapshot_path), prefix="lb", clock=clock)
