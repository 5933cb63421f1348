# src/sl_staking/domain/repository.py
"""Repository and directory Protocols for sl_staking."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_staking.domain.models import ManualStakerProfile, StakeContract


class StakeRepositoryProtocol(Protocol):
    async def get_stake(
        self, db: AsyncSession, stake_id: str, for_update: bool = False
    ) -> StakeContract | None: ...

    async def create_stake(self, db: AsyncSession, stake: StakeContract) -> None: ...

    async def save_stake(self, db: AsyncSession, stake: StakeContract) -> None: ...

    async def list_stakes_for_session(
        self, db: AsyncSession, session_id: str, for_update: bool = False
    ) -> list[StakeContract]: ...

    async def list_stakes_for_user(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[StakeContract]: ...


class ManualStakerRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, profile: ManualStakerProfile) -> None: ...

    async def get(self, db: AsyncSession, profile_id: str) -> ManualStakerProfile | None: ...

    async def list_for_user(
        self, db: AsyncSession, user_id: str
    ) -> list[ManualStakerProfile]: ...


class StakerDirectoryProtocol(Protocol):
    """Best-effort display-name lookup. Returns None when the name is unknown."""

    async def resolve_display_name(
        self, db: AsyncSession, staker_id: str, is_off_app: bool
    ) -> str | None: ...
