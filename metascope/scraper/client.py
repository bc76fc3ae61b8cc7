# scraper/client.py – pages patch notes (leagueoflegends.com) + Data Dragon

import asyncio
import logging
import re
from typing import Any, List, Optional, Tuple

import aiohttp

from metascope.config import settings
from metascope.errors import NetworkError

log = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
}

PATCH_LINK_RE = re.compile(r"patch-(\d+)-(\d+)-notes")
TAG_PAGE_LOCALES = ("ru-ru", "en-us")

# Patchs connus, ajoutés si les pages de tags ne répondent pas
FALLBACK_PATCHES = [
    "25.23", "25.22", "25.21", "25.20", "25.19",
    "25.18", "25.17", "25.16", "25.15", "25.14",
    "25.13", "25.12", "25.11", "25.10", "25.09",
    "25.08", "25.07", "25.06", "25.05", "25.04",
]


def patch_sort_key(version: str) -> Tuple[int, int]:
    parts = version.split(".")
    try:
        major = int(parts[0])
    except (ValueError, IndexError):
        major = 0
    try:
        minor = int(parts[1])
    except (ValueError, IndexError):
        minor = 0
    return major, minor


def map_patch_version(patch: str) -> str:
    """Version des patch notes (25.24) → version du jeu / Data Dragon (15.24.0)."""
    match = re.match(r"^(\d{2})\.(\d{2})", patch)
    if not match:
        return patch
    major = int(match.group(1))
    return f"{max(0, major - 10)}.{match.group(2)}.0"


def patch_versions_in(html: str) -> List[str]:
    """Versions "25.12" trouvées dans les liens d'une page (ordre d'apparition, sans doublons)."""
    seen = []
    for major, minor in PATCH_LINK_RE.findall(html or ""):
        version = f"{major}.{minor}"
        if version not in seen:
            seen.append(version)
    return seen


class PatchNotesClient:
    """Async fetcher for patch-notes pages and Data Dragon metadata."""

    def __init__(self, base_url: str = settings.PATCH_NOTES_BASE_URL,
                 locale: str = settings.PATCH_NOTES_LOCALE,
                 ddragon_url: str = settings.DDRAGON_URL,
                 timeout: int = settings.HTTP_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.locale = locale
        self.ddragon_url = ddragon_url.rstrip("/")
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=HEADERS,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                cookie_jar=aiohttp.CookieJar(),
            )
        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(self, url: str, as_json: bool = False, max_retries: int = 3) -> Any:
        """
        GET with retry on 5xx and network errors.

        Returns:
            Body (text or decoded JSON), or None on 404.

        Raises:
            NetworkError: For other HTTP statuses or when retries are exhausted.
        """
        session = await self._get_session()

        for attempt in range(max_retries):
            try:
                async with session.get(url) as resp:
                    if resp.status == 404:
                        log.debug(f"404 Not Found: {url}")
                        return None

                    resp.raise_for_status()
                    if as_json:
                        return await resp.json(content_type=None)
                    return await resp.text()

            except aiohttp.ClientResponseError as e:
                if e.status >= 500 and attempt < max_retries - 1:
                    wait = 2 ** attempt
                    log.warning(f"Server error {e.status} on {url}, retrying in {wait}s")
                    await asyncio.sleep(wait)
                    continue
                raise NetworkError(f"HTTP {e.status} for {url}: {e.message}") from e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt < max_retries - 1:
                    wait = 2 ** attempt
                    log.warning(f"Network error on {url}, retrying in {wait}s: {e}")
                    await asyncio.sleep(wait)
                    continue
                raise NetworkError(f"Network error for {url}: {e}") from e

        raise NetworkError(f"Failed after {max_retries} attempts: {url}")

    async def fetch_page(self, url: str) -> Optional[str]:
        """Raw page text, None on 404."""
        return await self._request(url)

    def patch_notes_url(self, version: str, locale: Optional[str] = None) -> str:
        slug = f"patch-{version.replace('.', '-')}-notes"
        return f"{self.base_url}/{locale or self.locale}/news/game-updates/{slug}/"

    def tags_url(self, locale: str) -> str:
        return f"{self.base_url}/{locale}/news/tags/patch-notes/"

    async def fetch_patch_notes(self, version: str) -> Optional[str]:
        """HTML of the patch-notes article for ``version`` (None if not published)."""
        return await self.fetch_page(self.patch_notes_url(version))

    async def _listed_versions(self) -> List[str]:
        versions: List[str] = []
        for locale in TAG_PAGE_LOCALES:
            try:
                html = await self.fetch_page(self.tags_url(locale))
            except NetworkError as e:
                log.warning(f"Patch list unavailable for {locale}: {e}")
                continue
            for version in patch_versions_in(html or ""):
                if version not in versions:
                    versions.append(version)
        return versions

    async def fetch_available_patches(self) -> List[str]:
        """Versions listed on the tag pages plus the fallback list, newest first."""
        patches = await self._listed_versions()
        for version in FALLBACK_PATCHES:
            if version not in patches:
                patches.append(version)
        patches.sort(key=patch_sort_key, reverse=True)
        return patches

    async def check_patch_notes_exists(self, version: str) -> bool:
        return version in await self._listed_versions()

    async def fetch_latest_ddragon_version(self) -> Optional[str]:
        try:
            versions = await self._request(f"{self.ddragon_url}/api/versions.json", as_json=True)
        except NetworkError as e:
            log.warning(f"Data Dragon versions unavailable: {e}")
            return None
        return versions[0] if versions else None

    async def fetch_all_champions(self) -> List[Tuple[str, str, str]]:
        """
        All champions from Data Dragon.

        Returns:
            list[tuple[str, str, str]]: (russian name, english name, icon URL),
            sorted by russian name.
        """
        latest = await self.fetch_latest_ddragon_version() or settings.DDRAGON_FALLBACK_VERSION
        base = f"{self.ddragon_url}/cdn/{latest}/data"
        ru_json, en_json = await asyncio.gather(
            self._request(f"{base}/ru_RU/champion.json", as_json=True),
            self._request(f"{base}/en_US/champion.json", as_json=True),
        )

        data_ru = (ru_json or {}).get("data") or {}
        data_en = (en_json or {}).get("data") or {}

        champs = []
        for key, val_ru in data_ru.items():
            val_en = data_en.get(key) or {}
            champ_id = val_ru.get("id", "")
            icon_url = f"{self.ddragon_url}/cdn/{latest}/img/champion/{champ_id}.png"
            champs.append((val_ru.get("name", ""), val_en.get("name", ""), icon_url))
        champs.sort(key=lambda c: c[0])
        return champs
