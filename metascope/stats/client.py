# stats/client.py – API de stats agrégées (REST type PostgREST)

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from metascope.config import settings
from metascope.errors import NetworkError, StatsAPIError
from metascope.models.patch import ChampionStats, LaneRole, parse_enum

log = logging.getLogger(__name__)

TABLE = "champion_stats_aggregated"

# Rôles tels qu'écrits par l'agrégateur (TOP, JUNGLE, MIDDLE, BOTTOM, UTILITY)
ROLE_ALIASES = {
    "middle": LaneRole.MID,
    "bottom": LaneRole.ADC,
    "bot": LaneRole.ADC,
    "utility": LaneRole.SUPPORT,
    "sup": LaneRole.SUPPORT,
}


def _is_transient(exc: BaseException) -> bool:
    """Transport failures and 5xx are retried; other API answers are final."""
    if isinstance(exc, StatsAPIError):
        return exc.status >= 500
    return isinstance(exc, NetworkError)


def parse_role(raw: Optional[str]) -> LaneRole:
    if not raw:
        return LaneRole.UNKNOWN
    alias = ROLE_ALIASES.get(raw.strip().lower())
    if alias is not None:
        return alias
    return parse_enum(LaneRole, raw, LaneRole.UNKNOWN)


@dataclass
class AggregatedChampionStats:
    champion_id: str
    patch_version: str
    region: str
    tier: str
    role: Optional[str] = None
    total_matches: int = 0
    win_rate: Optional[float] = None
    pick_rate: Optional[float] = None
    ban_rate: Optional[float] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AggregatedChampionStats":
        return cls(
            champion_id=str(row["champion_id"]),
            patch_version=str(row.get("patch_version", "")),
            region=str(row.get("region", "")),
            tier=str(row.get("tier", "")),
            role=row.get("role"),
            total_matches=int(row.get("total_matches") or 0),
            win_rate=row.get("win_rate"),
            pick_rate=row.get("pick_rate"),
            ban_rate=row.get("ban_rate"),
        )

    def to_champion_stats(self) -> ChampionStats:
        return ChampionStats(
            id=self.champion_id,
            name=self.champion_id,
            tier=self.tier or "?",
            role=parse_role(self.role),
            win_rate=self.win_rate if self.win_rate is not None else 50.0,
            pick_rate=self.pick_rate or 0.0,
            ban_rate=self.ban_rate or 0.0,
        )


@dataclass
class MetaChange:
    champion_id: str
    win_rate_diff: float
    pick_rate_diff: float
    ban_rate_diff: float


class StatsClient:
    """Async client for the aggregated champion statistics API."""

    def __init__(self, base_url: str, api_key: str, timeout: int = settings.HTTP_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls) -> Optional["StatsClient"]:
        """Client configuré via STATS_API_URL / STATS_API_KEY, ou None."""
        if not settings.STATS_API_URL or not settings.STATS_API_KEY:
            return None
        return cls(settings.STATS_API_URL, settings.STATS_API_KEY)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ───────────────────────────── Helper with retry ──────────────────
    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _call(self, method: str, url: str, params: Optional[Dict[str, str]] = None) -> Any:
        """
        Perform one request and decode the JSON body (3 attempts on
        transport errors and 5xx).

        Raises:
            StatsAPIError: Non-2xx answer (status and body kept for diagnostics).
            NetworkError: Transport failure.
        """
        session = await self._get_session()
        try:
            async with session.request(method, url, params=params) as resp:
                if resp.status < 200 or resp.status >= 300:
                    body = await resp.text()
                    log.warning(f"Stats API {resp.status} for {url}: {body[:200]}")
                    raise StatsAPIError(resp.status, body)
                return await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise NetworkError(f"Stats API unreachable: {e}") from e

    async def _select(self, params: Dict[str, str]) -> List[AggregatedChampionStats]:
        rows = await self._call("GET", f"{self.base_url}/rest/v1/{TABLE}", params=params)
        return [AggregatedChampionStats.from_row(r) for r in rows or []]

    async def get_champion_stats(self, champion_id: str, patch: str, region: str,
                                 tier: Optional[str] = None,
                                 role: Optional[str] = None) -> List[AggregatedChampionStats]:
        params = {
            "champion_id": f"eq.{champion_id}",
            "patch_version": f"eq.{patch}",
            "region": f"eq.{region}",
            "role": f"eq.{role}" if role else "is.null",
        }
        if tier:
            params["tier"] = f"eq.{tier}"
        return await self._select(params)

    async def get_patch_stats(self, patch: str, region: str,
                              tier: Optional[str] = None,
                              by_role: bool = False) -> List[AggregatedChampionStats]:
        """Every champion of a patch; ``role=is.null`` rows unless ``by_role``."""
        params = {
            "patch_version": f"eq.{patch}",
            "region": f"eq.{region}",
            "tier": f"eq.{tier or settings.DEFAULT_TIER}",
            "order": "win_rate.desc",
        }
        if by_role:
            params["role"] = "not.is.null"
        else:
            params["role"] = "is.null"
        return await self._select(params)

    async def get_available_patches(self) -> List[str]:
        patches = await self._call("POST", f"{self.base_url}/rest/v1/rpc/get_stats_patches")
        return [str(p) for p in patches or []]

    async def get_meta_changes(self, from_patch: str, to_patch: str, region: str,
                               tier: Optional[str] = None) -> List[MetaChange]:
        """Stat deltas per champion between two patches (zero when the old patch has no row)."""
        from_stats = await self.get_patch_stats(from_patch, region, tier)
        to_stats = await self.get_patch_stats(to_patch, region, tier)
        log.debug(f"Meta changes {from_patch} -> {to_patch}: {len(from_stats)} / {len(to_stats)} rows")

        previous = {(s.champion_id, s.role): s for s in from_stats}
        changes = []
        for cur in to_stats:
            old = previous.get((cur.champion_id, cur.role))
            if old is None:
                changes.append(MetaChange(cur.champion_id, 0.0, 0.0, 0.0))
                continue
            changes.append(MetaChange(
                champion_id=cur.champion_id,
                win_rate_diff=(cur.win_rate or 0.0) - (old.win_rate or 0.0),
                pick_rate_diff=(cur.pick_rate or 0.0) - (old.pick_rate or 0.0),
                ban_rate_diff=(cur.ban_rate or 0.0) - (old.ban_rate or 0.0),
            ))
        return changes

    async def check_status(self) -> bool:
        try:
            await self._call("GET", f"{self.base_url}/rest/v1/{TABLE}", params={"limit": "1"})
        except NetworkError as e:
            log.info(f"Stats API not available: {e}")
            return False
        return True
