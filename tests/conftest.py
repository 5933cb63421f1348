"""Shared test fixtures.

JWT_SECRET must be in the environment before config.settings is imported.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")

import copy
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.sl_session.application.locks import SessionLocks
from src.sl_session.domain.models import ChipStackUpdate, Session
from src.sl_staking.domain.models import ManualStakerProfile, StakeContract

# ---------------------------------------------------------------------------
# In-memory repositories
#
# Each read hands out a copy, so a service only changes stored state through
# an explicit save/append, the same as with the SQL repositories.
# ---------------------------------------------------------------------------


class InMemorySessionRepository:
    def __init__(self) -> None:
        self.sessions: dict[str, Session] = {}
        self.appended: list[ChipStackUpdate] = []

    async def get_session(self, db, session_id, for_update=False):
        stored = self.sessions.get(session_id)
        return copy.deepcopy(stored) if stored else None

    async def create_session(self, db, session):
        self.sessions[session.id] = copy.deepcopy(session)

    async def save_session(self, db, session):
        persisted_updates = self.sessions[session.id].chip_updates
        stored = copy.deepcopy(session)
        stored.chip_updates = persisted_updates
        self.sessions[session.id] = stored

    async def append_chip_updates(self, db, updates):
        for update in updates:
            self.sessions[update.session_id].chip_updates.append(update)
            self.appended.append(update)

    async def delete_session(self, db, session_id):
        del self.sessions[session_id]

    async def list_sessions_for_player(self, db, player_id, limit):
        owned = [s for s in self.sessions.values() if s.player_id == player_id]
        return [copy.deepcopy(s) for s in owned[:limit]]


class InMemoryStakeRepository:
    def __init__(self) -> None:
        self.stakes: dict[str, StakeContract] = {}
        self.save_count = 0

    async def get_stake(self, db, stake_id, for_update=False):
        stored = self.stakes.get(stake_id)
        return copy.deepcopy(stored) if stored else None

    async def create_stake(self, db, stake):
        self.stakes[stake.id] = copy.deepcopy(stake)

    async def save_stake(self, db, stake):
        self.save_count += 1
        self.stakes[stake.id] = copy.deepcopy(stake)

    async def list_stakes_for_session(self, db, session_id, for_update=False):
        return [copy.deepcopy(s) for s in self.stakes.values() if s.session_id == session_id]

    async def list_stakes_for_user(self, db, user_id, limit):
        mine = [s for s in self.stakes.values() if s.is_party(user_id)]
        return [copy.deepcopy(s) for s in mine[:limit]]


class InMemoryManualStakerRepository:
    def __init__(self) -> None:
        self.profiles: dict[str, ManualStakerProfile] = {}

    async def create(self, db, profile):
        self.profiles[profile.id] = copy.deepcopy(profile)

    async def get(self, db, profile_id):
        stored = self.profiles.get(profile_id)
        return copy.deepcopy(stored) if stored else None

    async def list_for_user(self, db, user_id):
        return [p for p in self.profiles.values() if p.created_by_user_id == user_id]


class StaticDirectory:
    """Directory with a fixed name table; unknown ids resolve to None."""

    def __init__(self, names: dict[str, str] | None = None) -> None:
        self.names = names or {}

    async def resolve_display_name(self, db, staker_id, is_off_app):
        return self.names.get(staker_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def session_repo() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def stake_repo() -> InMemoryStakeRepository:
    return InMemoryStakeRepository()


@pytest.fixture
def manual_repo() -> InMemoryManualStakerRepository:
    return InMemoryManualStakerRepository()


@pytest.fixture
def directory() -> StaticDirectory:
    return StaticDirectory()


@pytest.fixture
def locks() -> SessionLocks:
    return SessionLocks()


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
