"""Shared fixtures: in-memory history store and snapshot builders."""

import datetime as dt

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from metascope.database import init_db
from metascope.db.history_store import HistoryStore
from metascope.models.patch import (
    ChampionStats,
    ChangeBlock,
    ChangeType,
    LaneRole,
    PatchCategory,
    PatchNoteEntry,
    PatchSnapshot,
)

BASE_TIME = dt.datetime(2025, 1, 8, 12, 0, tzinfo=dt.timezone.utc)


def champ(name, win_rate=50.0, pick_rate=5.0, role=LaneRole.MID, image_url=None):
    return ChampionStats(
        id=name, name=name, tier="A", role=role,
        win_rate=win_rate, pick_rate=pick_rate, ban_rate=1.0,
        image_url=image_url,
    )


def note(title, *changes, category=PatchCategory.CHAMPIONS,
         change_type=ChangeType.ADJUSTED, image_url=None):
    details = [ChangeBlock(title=None, icon_url=None, changes=list(changes))] if changes else []
    return PatchNoteEntry(
        id=title, title=title, image_url=image_url, category=category,
        change_type=change_type, summary="", details=details,
    )


def snapshot(version, days=0, champions=(), notes=()):
    return PatchSnapshot(
        version=version,
        fetched_at=BASE_TIME + dt.timedelta(days=days),
        champions=list(champions),
        notes=list(notes),
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return HistoryStore(session_factory)
