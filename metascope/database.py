# database.py – SQLAlchemy setup + table des patchs

from pathlib import Path
from sqlalchemy import create_engine, Column, String, DateTime, JSON
from sqlalchemy.orm import declarative_base, sessionmaker

from metascope.config import settings


# Si on utilise SQLite, créer le dossier parent du fichier .db
if settings.DB_URL.startswith("sqlite:///"):
    db_file = settings.DB_URL.replace("sqlite:///", "")
    if db_file and db_file != ":memory:":
        Path(db_file).parent.mkdir(parents=True, exist_ok=True)

# Engine & session
engine = create_engine(settings.DB_URL, future=True)
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)

# Base pour les modèles
Base = declarative_base()


class PatchRecord(Base):
    """Un snapshot de patch. 1 ligne par version (upsert)."""
    __tablename__ = "patches"
    version    = Column(String, primary_key=True)
    fetched_at = Column(DateTime(timezone=True), nullable=False, index=True)
    data       = Column(JSON, nullable=False)   # {"champions": [...], "patch_notes": [...]}


def init_db(bind=None):
    """Créer les tables si elles n'existent pas encore."""
    Base.metadata.create_all(bind=bind or engine)
