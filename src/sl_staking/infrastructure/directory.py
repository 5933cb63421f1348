"""StakerDirectory — display names for stakers.

Off-app stakers are looked up in the local manual_stakers table. App users
live in the external profile service and are fetched over HTTP:

    GET {PROFILE_SERVICE_URL}/users/{user_id}  ->  {"display_name": ..., "username": ...}

Lookups return None when the name is unknown; the staking service applies the
timeout and the placeholder text.
"""

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sl_staking.domain.repository import ManualStakerRepositoryProtocol


class StakerDirectory:
    def __init__(
        self,
        manual_repo: ManualStakerRepositoryProtocol,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        self._manual_repo = manual_repo
        self._client = client
        self._base_url = base_url if base_url is not None else settings.PROFILE_SERVICE_URL

    async def resolve_display_name(
        self, db: AsyncSession, staker_id: str, is_off_app: bool
    ) -> str | None:
        if is_off_app:
            profile = await self._manual_repo.get(db, staker_id)
            return profile.name if profile else None
        return await self._fetch_app_user_name(staker_id)

    async def _fetch_app_user_name(self, user_id: str) -> str | None:
        if self._client is not None:
            return await self._get_name(self._client, user_id)
        if not self._base_url:
            return None
        async with httpx.AsyncClient(
            base_url=self._base_url, timeout=settings.STAKER_NAME_TIMEOUT_SECONDS
        ) as client:
            return await self._get_name(client, user_id)

    @staticmethod
    async def _get_name(client: httpx.AsyncClient, user_id: str) -> str | None:
        response = await client.get(f"/users/{user_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        body = response.json()
        return body.get("display_name") or body.get("username") or None
