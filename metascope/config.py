# config.py – Chargement des paramètres via pydantic-settings

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # — Database —
    DB_URL: str = "sqlite:///data/metascope.db"

    # — Logging —
    LOG_LEVEL: str = "INFO"

    # — Patch notes (leagueoflegends.com) —
    PATCH_NOTES_BASE_URL: str = "https://www.leagueoflegends.com"
    PATCH_NOTES_LOCALE: str = "ru-ru"      # locale des pages game-updates
    DDRAGON_URL: str = "https://ddragon.leagueoflegends.com"
    DDRAGON_FALLBACK_VERSION: str = "14.23.1"
    HTTP_TIMEOUT: int = 10                  # secondes, par requête

    # — Stats agrégées (API REST type PostgREST) —
    STATS_API_URL: Optional[str] = None
    STATS_API_KEY: Optional[str] = None
    DEFAULT_REGION: str = "euw1"
    DEFAULT_TIER: str = "DIAMOND_PLUS"

    # — Historique —
    HISTORY_WINDOW: int = 20        # nb de patchs scannés pour tier list / historiques
    ANALYSIS_WINDOW: int = 10       # nb de patchs où chercher le précédent
    SYNC_DELAY_SECONDS: float = 0.5 # pause entre deux téléchargements (politesse)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
