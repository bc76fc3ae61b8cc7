# metascope/services/meta_service.py
# ============================================================================
# Couche application : un seul verrou autour du store et du cache tier list
# Récupération (cache d'abord), analyse, tier list, historiques, sync
# ============================================================================

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import List, Optional

from metascope.config import settings
from metascope.db.history_store import HistoryStore
from metascope.errors import NetworkError, StoreError
from metascope.logging_config import EventLog
from metascope.models.patch import (
    ChampionHistoryEntry,
    ChampionStats,
    LaneRole,
    MetaAnalysisDiff,
    PatchCategory,
    PatchNoteEntry,
    PatchSnapshot,
    TierEntry,
)
from metascope.scraper.client import PatchNotesClient
from metascope.scraper.document import parse_document
from metascope.services import analyzer, extractor
from metascope.services.tier_list import TierAggregator
from metascope.stats.client import StatsClient

log = logging.getLogger(__name__)


def placeholder_champions(notes: List[PatchNoteEntry]) -> List[ChampionStats]:
    """Champions déduits des notes quand aucune source de stats ne répond."""
    return [
        ChampionStats(
            id=note.title,
            name=note.title,
            tier="?",
            role=LaneRole.MID,
            win_rate=50.0,
            pick_rate=0.0,
            ban_rate=0.0,
            image_url=note.image_url,
        )
        for note in notes
        if note.category is PatchCategory.CHAMPIONS
    ]


class MetaService:
    """
    Entry point for every read/write over patch history.

    All access to the history store and to the tier-list cache goes through
    ``self._lock``; network fetches run outside of it.
    """

    def __init__(self,
                 store: HistoryStore,
                 notes_client: PatchNotesClient,
                 stats_client: Optional[StatsClient] = None,
                 aggregator: Optional[TierAggregator] = None,
                 events: Optional[EventLog] = None,
                 sync_delay: float = settings.SYNC_DELAY_SECONDS,
                 region: str = settings.DEFAULT_REGION):
        self.store = store
        self.notes_client = notes_client
        self.stats_client = stats_client
        self.aggregator = aggregator or TierAggregator()
        self.events = events or EventLog()
        self.sync_delay = sync_delay
        self.region = region
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        await self.notes_client.close()
        if self.stats_client is not None:
            await self.stats_client.close()

    # ─────────────────────────── Récupération ──────────────────────────────
    async def _fetch_champions(self, version: str) -> List[ChampionStats]:
        if self.stats_client is None:
            return []
        try:
            rows = await self.stats_client.get_patch_stats(version, self.region)
        except NetworkError as e:
            log.warning(f"Stats unavailable for {version}: {e}")
            return []
        return [r.to_champion_stats() for r in rows]

    async def fetch_snapshot(self, version: str) -> PatchSnapshot:
        """
        Download and assemble one patch.

        Raises:
            NetworkError: When the patch-notes page cannot be fetched. A
            missing stats source only leaves the champion list empty.
        """
        champions = await self._fetch_champions(version)

        html = await self.notes_client.fetch_patch_notes(version)
        notes = extractor.extract(parse_document(html)) if html else []

        if not champions and notes:
            champions = placeholder_champions(notes)

        return PatchSnapshot(
            version=version,
            fetched_at=dt.datetime.now(dt.timezone.utc),
            champions=champions,
            notes=notes,
        )

    async def _get_or_fetch(self, version: str, force_refresh: bool) -> PatchSnapshot:
        # Appelant : verrou tenu
        if not force_refresh:
            cached = self.store.get(version)
            if cached is not None:
                return cached

        self.events.info(f"Fetching patch data for {version} from web...")
        try:
            snapshot = await self.fetch_snapshot(version)
        except NetworkError as e:
            self.events.error(f"Failed to fetch patch {version}: {e}")
            raise

        try:
            self.store.put(snapshot)
        except StoreError as e:
            self.events.error(f"Failed to save patch {version}: {e}")
            raise

        self.events.success(f"Data for {version} fetched and saved.")
        return snapshot

    async def get_or_fetch_patch(self, version: str, force_refresh: bool = False) -> PatchSnapshot:
        """
        Stored snapshot for ``version``, fetched and saved on a miss.

        Raises:
            NetworkError: The patch-notes page could not be fetched.
            StoreError: The fetched snapshot could not be saved.
        """
        async with self._lock:
            return await self._get_or_fetch(version, force_refresh)

    async def get_patch(self, version: str) -> PatchSnapshot:
        return await self.get_or_fetch_patch(version, force_refresh=False)

    async def get_latest_patch(self) -> Optional[PatchSnapshot]:
        async with self._lock:
            recent = self.store.get_recent(1)
        return recent[0] if recent else None

    # ─────────────────────────── Analyse ───────────────────────────────────
    async def analyze_patch(self, version: str, force: bool = False) -> List[MetaAnalysisDiff]:
        """Diff ``version`` against the most recent stored patch with another version."""
        async with self._lock:
            current = await self._get_or_fetch(version, force)
            recent = self.store.get_recent(settings.ANALYSIS_WINDOW)

        previous = next((p for p in recent if p.version != version), None)
        if previous is None:
            log.info(f"No previous patch to compare {version} with")
            return []
        return analyzer.compare_patches(current, previous)

    async def get_tier_list(self) -> List[TierEntry]:
        async with self._lock:
            snapshots = self.store.get_recent(settings.HISTORY_WINDOW)
            if self.aggregator.is_cached(snapshots):
                self.events.emit("DEBUG", "Tier list cache hit")
            else:
                self.events.emit("DEBUG", f"Tier list cache miss ({len(snapshots)} patches)")
            return self.aggregator.rank(snapshots)

    # ─────────────────────────── Historiques ───────────────────────────────
    async def get_champion_history(self, champion_name: str) -> List[ChampionHistoryEntry]:
        async with self._lock:
            return self.store.get_champion_history(champion_name)

    async def get_item_history(self, item_name: str) -> List[ChampionHistoryEntry]:
        async with self._lock:
            return self.store.get_item_history(item_name)

    async def get_rune_history(self, rune_name: str) -> List[ChampionHistoryEntry]:
        async with self._lock:
            return self.store.get_rune_history(rune_name)

    async def get_changed_itemsrunes_titles(self) -> List[str]:
        async with self._lock:
            snapshots = self.store.get_recent(settings.HISTORY_WINDOW)
        titles = {
            note.title
            for snapshot in snapshots
            for note in snapshot.notes
            if note.category is PatchCategory.ITEMS_RUNES
        }
        return sorted(titles)

    # ─────────────────────────── Maintenance ───────────────────────────────
    async def sync_patch_history(self) -> List[str]:
        """
        Download every listed patch missing from the store, one at a time.

        A failed download or save is logged and skipped (no retry in the
        same pass). Returns the versions that were saved.
        """
        self.events.info("Starting full history sync...")
        versions = await self.notes_client.fetch_available_patches()
        self.events.info(f"Found {len(versions)} patches to check.")

        saved: List[str] = []
        for version in versions:
            async with self._lock:
                exists = self.store.get(version) is not None
            if exists:
                continue

            self.events.info(f"Downloading missing patch: {version} ...")
            try:
                snapshot = await self.fetch_snapshot(version)
            except NetworkError as e:
                self.events.error(f"Failed to download {version}: {e}")
            else:
                async with self._lock:
                    try:
                        self.store.put(snapshot)
                    except StoreError as e:
                        self.events.error(f"Failed to save {version}: {e}")
                    else:
                        saved.append(version)
                        self.events.success(f"Saved patch {version}")

            await asyncio.sleep(self.sync_delay)

        self.events.success("History sync completed.")
        return saved

    async def clear_database(self) -> None:
        async with self._lock:
            self.store.clear()
            self.aggregator.invalidate()
        self.events.info("Patch history cleared.")
