# src/sl_session/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock or in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_session.domain.models import ChipStackUpdate, Session


class SessionRepositoryProtocol(Protocol):
    async def get_session(
        self, db: AsyncSession, session_id: str, for_update: bool = False
    ) -> Session | None: ...

    async def create_session(self, db: AsyncSession, session: Session) -> None: ...

    async def save_session(self, db: AsyncSession, session: Session) -> None: ...

    async def append_chip_updates(
        self, db: AsyncSession, updates: list[ChipStackUpdate]
    ) -> None: ...

    async def delete_session(self, db: AsyncSession, session_id: str) -> None: ...

    async def list_sessions_for_player(
        self, db: AsyncSession, player_id: str, limit: int
    ) -> list[Session]: ...
