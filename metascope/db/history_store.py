# db/history_store.py – historique des patchs (SQLAlchemy)

from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from metascope.database import PatchRecord, SessionLocal
from metascope.errors import SerializationError, StoreError
from metascope.models.patch import ChampionHistoryEntry, PatchCategory, PatchSnapshot

log = logging.getLogger(__name__)

HISTORY_LIMIT = 20

CHAMPION_CATEGORIES = (PatchCategory.CHAMPIONS,)
ITEM_CATEGORIES = (PatchCategory.ITEMS, PatchCategory.ITEMS_RUNES)
RUNE_CATEGORIES = (PatchCategory.RUNES, PatchCategory.ITEMS_RUNES)


def _as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite rend des datetimes naïfs
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


def _decode(record: PatchRecord) -> PatchSnapshot:
    try:
        return PatchSnapshot.from_content(record.version, _as_utc(record.fetched_at), record.data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SerializationError(f"Cannot decode patch {record.version}: {e}") from e


class HistoryStore:
    """put / get / get_recent / clear over patch snapshots keyed by version."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def put(self, snapshot: PatchSnapshot) -> None:
        """Insert or replace the snapshot stored under ``snapshot.version``."""
        try:
            content = snapshot.content_dict()
        except (AttributeError, TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode patch {snapshot.version}: {e}") from e

        try:
            with self._session() as session:
                session.merge(PatchRecord(
                    version=snapshot.version,
                    fetched_at=snapshot.fetched_at,
                    data=content,
                ))
                session.commit()
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode patch {snapshot.version}: {e}") from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save patch {snapshot.version}: {e}") from e
        log.debug(f"Saved patch {snapshot.version}")

    def get(self, version: str) -> Optional[PatchSnapshot]:
        try:
            with self._session() as session:
                record = session.get(PatchRecord, version)
                if record is None:
                    return None
                return _decode(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read patch {version}: {e}") from e

    def _recent_records(self, limit: int) -> List[PatchRecord]:
        with self._session() as session:
            stmt = (
                select(PatchRecord)
                .order_by(PatchRecord.fetched_at.desc(), PatchRecord.version.desc())
                .limit(limit)
            )
            records = list(session.scalars(stmt))
            session.expunge_all()
            return records

    def get_recent(self, limit: int) -> List[PatchSnapshot]:
        """Most recently fetched snapshots first."""
        try:
            records = self._recent_records(limit)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list patches: {e}") from e
        return [_decode(r) for r in records]

    def clear(self) -> None:
        try:
            with self._session() as session:
                session.execute(delete(PatchRecord))
                session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to clear patches: {e}") from e
        log.info("Patch history cleared")

    # ─────────────────────────── Historiques ───────────────────────────────
    def _history(self, name: str, categories: Iterable[PatchCategory]) -> List[ChampionHistoryEntry]:
        wanted: Tuple[PatchCategory, ...] = tuple(categories)
        search = name.lower()
        try:
            records = self._recent_records(HISTORY_LIMIT)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list patches: {e}") from e

        history: List[ChampionHistoryEntry] = []
        for record in records:
            try:
                snapshot = _decode(record)
            except SerializationError as e:
                log.warning(f"Skipping unreadable patch in history: {e}")
                continue
            for note in snapshot.notes:
                if note.category in wanted and (
                    note.id.lower() == search or note.title.lower() == search
                ):
                    history.append(ChampionHistoryEntry(
                        patch_version=snapshot.version,
                        date=snapshot.fetched_at,
                        change=note,
                    ))
        history.sort(key=lambda h: h.date)
        return history

    def get_champion_history(self, champion_name: str) -> List[ChampionHistoryEntry]:
        return self._history(champion_name, CHAMPION_CATEGORIES)

    def get_item_history(self, item_name: str) -> List[ChampionHistoryEntry]:
        return self._history(item_name, ITEM_CATEGORIES)

    def get_rune_history(self, rune_name: str) -> List[ChampionHistoryEntry]:
        return self._history(rune_name, RUNE_CATEGORIES)
