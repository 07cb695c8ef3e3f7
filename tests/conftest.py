"""
Shared fixtures: a freshly seeded portal per test and a steppable clock.
"""

from datetime import datetime, timedelta, timezone

import pytest

from finvault.audit import AuditLog
from finvault.portal import create_portal


class FakeClock:
    """Returns a fixed instant; advance() moves it forward."""
    def __init__(self, start=None):
        self.now = start or datetime(2024, 3, 20, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=1):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def portal(clock):
    return create_portal(audit=AuditLog(clock=clock), on_delete="reject")


@pytest.fixture
def users(portal):
    """Seed identities by first name: alice, bob, charlie, david, eve, frank, isabella."""
    by_id = {u.id: u for u in portal.directory.list()}
    return {
        "alice": by_id["a"],
        "bob": by_id["b"],
        "charlie": by_id["c"],
        "david": by_id["d"],
        "eve": by_id["e"],
        "frank": by_id["f_acc"],
        "isabella": by_id["i_acc"],
    }


@pytest.fixture
def login(portal):
    """Factory: a new session logged in as the given identity id."""
    def _login(identity_id):
        session = portal.new_session()
        assert session.login(identity_id) is not None
        return session
    return _login
