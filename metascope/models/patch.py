# metascope/models/patch.py
# ============================================================================
# Modèle de données : snapshots de patch, stats champions, patch notes
# Sérialisation JSON explicite (to_dict / from_dict) pour le blob en base
# ============================================================================

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Type, TypeVar


class LaneRole(str, Enum):
    TOP = "Top"
    JUNGLE = "Jungle"
    MID = "Mid"
    ADC = "Adc"
    SUPPORT = "Support"
    UNKNOWN = "Unknown"


class PatchCategory(str, Enum):
    CHAMPIONS = "Champions"
    ITEMS = "Items"
    RUNES = "Runes"
    ITEMS_RUNES = "ItemsRunes"
    MODES = "Modes"
    SKINS = "Skins"
    SYSTEMS = "Systems"
    BUG_FIXES = "BugFixes"
    NEW_CONTENT = "NewContent"
    COSMETICS = "Cosmetics"
    UNKNOWN = "Unknown"


class ChangeType(str, Enum):
    BUFF = "Buff"
    NERF = "Nerf"
    ADJUSTED = "Adjusted"
    NEW = "New"
    FIX = "Fix"
    NONE = "None"


E = TypeVar("E", bound=Enum)


def parse_enum(cls: Type[E], value: Any, default: E) -> E:
    """Lit une valeur d'enum tolérante à la casse ; valeur inconnue → default."""
    if isinstance(value, cls):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        for member in cls:
            if member.value.lower() == lowered or member.name.lower() == lowered:
                return member
    return default


def _utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


@dataclass
class ItemStat:
    name: str
    image_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "image_url": self.image_url}

    @classmethod
    def from_dict(cls, data: dict) -> "ItemStat":
        return cls(name=data["name"], image_url=data.get("image_url"))


@dataclass
class ChampionStats:
    id: str
    name: str
    tier: str = "?"
    role: LaneRole = LaneRole.UNKNOWN
    win_rate: float = 50.0      # échelle 0-100
    pick_rate: float = 0.0
    ban_rate: float = 0.0
    image_url: Optional[str] = None
    core_items: List[ItemStat] = field(default_factory=list)
    popular_runes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tier": self.tier,
            "role": self.role.value,
            "win_rate": self.win_rate,
            "pick_rate": self.pick_rate,
            "ban_rate": self.ban_rate,
            "image_url": self.image_url,
            "core_items": [i.to_dict() for i in self.core_items],
            "popular_runes": list(self.popular_runes),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChampionStats":
        return cls(
            id=data["id"],
            name=data["name"],
            tier=data.get("tier", "?"),
            role=parse_enum(LaneRole, data.get("role"), LaneRole.UNKNOWN),
            win_rate=float(data.get("win_rate", 50.0)),
            pick_rate=float(data.get("pick_rate", 0.0)),
            ban_rate=float(data.get("ban_rate", 0.0)),
            image_url=data.get("image_url"),
            core_items=[ItemStat.from_dict(i) for i in data.get("core_items", [])],
            popular_runes=list(data.get("popular_runes", [])),
        )


@dataclass
class ChangeBlock:
    """Un groupe de lignes de changement (sort, "Statistiques de base", ...)."""
    title: Optional[str] = None
    icon_url: Optional[str] = None
    changes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"title": self.title, "icon_url": self.icon_url, "changes": list(self.changes)}

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeBlock":
        return cls(
            title=data.get("title"),
            icon_url=data.get("icon_url"),
            changes=list(data.get("changes", [])),
        )


@dataclass
class PatchNoteEntry:
    id: str
    title: str
    image_url: Optional[str] = None
    category: PatchCategory = PatchCategory.UNKNOWN
    change_type: ChangeType = ChangeType.ADJUSTED
    summary: str = ""
    details: List[ChangeBlock] = field(default_factory=list)

    def change_lines(self) -> List[str]:
        return [line for block in self.details for line in block.changes]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "image_url": self.image_url,
            "category": self.category.value,
            "change_type": self.change_type.value,
            "summary": self.summary,
            "details": [b.to_dict() for b in self.details],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PatchNoteEntry":
        return cls(
            id=data["id"],
            title=data["title"],
            image_url=data.get("image_url"),
            category=parse_enum(PatchCategory, data.get("category"), PatchCategory.UNKNOWN),
            change_type=parse_enum(ChangeType, data.get("change_type"), ChangeType.ADJUSTED),
            summary=data.get("summary", ""),
            details=[ChangeBlock.from_dict(b) for b in data.get("details", [])],
        )


@dataclass(frozen=True)
class PatchSnapshot:
    """Un patch récupéré et stocké : stats + notes, clé = version."""
    version: str
    fetched_at: dt.datetime
    champions: List[ChampionStats] = field(default_factory=list)
    notes: List[PatchNoteEntry] = field(default_factory=list)

    def __post_init__(self):
        object.__setattr__(self, "fetched_at", _utc(self.fetched_at))

    def content_dict(self) -> dict:
        """Contenu du blob stocké (version et date vivent dans leurs colonnes)."""
        return {
            "champions": [c.to_dict() for c in self.champions],
            "patch_notes": [n.to_dict() for n in self.notes],
        }

    def to_dict(self) -> dict:
        data = self.content_dict()
        data["version"] = self.version
        data["fetched_at"] = self.fetched_at.isoformat()
        return data

    @classmethod
    def from_content(cls, version: str, fetched_at: dt.datetime, content: Any) -> "PatchSnapshot":
        # Ancien format : le blob ne contenait que la liste des champions
        if isinstance(content, list):
            content = {"champions": content, "patch_notes": []}
        return cls(
            version=version,
            fetched_at=fetched_at,
            champions=[ChampionStats.from_dict(c) for c in content.get("champions", [])],
            notes=[PatchNoteEntry.from_dict(n) for n in content.get("patch_notes", [])],
        )

    @classmethod
    def from_dict(cls, data: dict) -> "PatchSnapshot":
        return cls.from_content(
            data["version"],
            dt.datetime.fromisoformat(data["fetched_at"]),
            data,
        )


@dataclass
class MetaAnalysisDiff:
    champion_name: str
    role: LaneRole
    win_rate_diff: float
    pick_rate_diff: float
    predicted_change: Optional[ChangeType] = None
    champion_image_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "champion_name": self.champion_name,
            "role": self.role.value,
            "win_rate_diff": self.win_rate_diff,
            "pick_rate_diff": self.pick_rate_diff,
            "predicted_change": self.predicted_change.value if self.predicted_change else None,
            "champion_image_url": self.champion_image_url,
        }


@dataclass
class TierEntry:
    name: str
    category: PatchCategory
    buffs: int = 0
    nerfs: int = 0
    adjusted: int = 0
    icon_url: Optional[str] = None

    @property
    def score(self) -> int:
        return self.buffs - self.nerfs

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "category": self.category.value,
            "buffs": self.buffs,
            "nerfs": self.nerfs,
            "adjusted": self.adjusted,
            "icon_url": self.icon_url,
        }


@dataclass
class ChampionHistoryEntry:
    patch_version: str
    date: dt.datetime
    change: PatchNoteEntry

    def to_dict(self) -> dict:
        return {
            "patch_version": self.patch_version,
            "date": self.date.isoformat(),
            "change": self.change.to_dict(),
        }
