"""Fitbit intraday REST client using aiohttp.

High-resolution endpoints (heart rate, HRV, breathing rate, SpO2 and
steps) used by the recent-wellness provider. Token refresh is owned by the
OAuth flow; this client only reads the stored bearer token.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import aiohttp

if TYPE_CHECKING:
    from src.wearable.store import WearableStore

logger = logging.getLogger(__name__)


class WearableAPIError(Exception):
    """The vendor API could not be reached or returned a non-200 status."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class FitbitClient:
    """Authenticated GETs against the Fitbit Web API for one user at a time."""

    def __init__(
        self,
        tokens: WearableStore,
        api_base: str = "https://api.fitbit.com/1/user/-",
        timeout_s: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._tokens = tokens
        self._api_base = api_base.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        """Return (and lazily create) the shared aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _get(self, user_id: str, endpoint: str) -> dict[str, Any]:
        token = await self._tokens.get_access_token(user_id)
        if not token:
            raise WearableAPIError("No valid Fitbit access token available")

        url = f"{self._api_base}{endpoint}"
        session = self._get_session()
        try:
            async with session.get(url, headers={"Authorization": f"Bearer {token}"}) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise WearableAPIError(
                        f"Fitbit API error: {resp.status} - {text[:200]}", status=resp.status
                    )
                return await resp.json()
        except aiohttp.ClientError as exc:
            raise WearableAPIError(f"Fitbit API unreachable: {exc}") from exc

    # -- Endpoints -------------------------------------------------------------

    async def heart_rate(
        self, user_id: str, date: str, start: str | None = None, end: str | None = None
    ) -> dict[str, Any]:
        """Intraday heart rate at 1-minute resolution, optionally windowed (HH:MM)."""
        endpoint = f"/activities/heart/date/{date}/1d/1min.json"
        if start and end:
            endpoint = f"/activities/heart/date/{date}/1d/1min/time/{start}/{end}.json"
        return await self._get(user_id, endpoint)

    async def steps(
        self,
        user_id: str,
        date: str,
        start: str | None = None,
        end: str | None = None,
        detail: str = "15min",
    ) -> dict[str, Any]:
        endpoint = f"/activities/steps/date/{date}/1d/{detail}.json"
        if start and end:
            endpoint = f"/activities/steps/date/{date}/1d/{detail}/time/{start}/{end}.json"
        return await self._get(user_id, endpoint)

    async def hrv(self, user_id: str, date: str = "today") -> dict[str, Any]:
        return await self._get(user_id, f"/hrv/date/{date}.json")

    async def breathing_rate(self, user_id: str, date: str = "today") -> dict[str, Any]:
        return await self._get(user_id, f"/br/date/{date}.json")

    async def spo2(self, user_id: str, date: str = "today") -> dict[str, Any]:
        return await self._get(user_id, f"/spo2/date/{date}.json")
