"""Resolve a Pokémon name to an artwork URL via PokeAPI.

ArtworkResolver.resolve() is total: lookups that fail for any reason (unknown name,
HTTP error, timeout, unexpected body) return the placeholder URL.
"""

import logging
import re
import unicodedata

import requests

from pokiface.core.config import PLACEHOLDER_ARTWORK_URL, Settings

_log = logging.getLogger(__name__)

DEFAULT_POKEAPI_BASE_URL = "https://pokeapi.co/api/v2"

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, fold accents, collapse non-alphanumeric runs to '-', trim '-'. Idempotent."""
    folded = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG_RE.sub("-", folded.lower()).strip("-")


def _pick_artwork(data: object) -> str | None:
    """Official artwork first, then the default sprite."""
    if not isinstance(data, dict):
        return None
    sprites = data.get("sprites")
    if not isinstance(sprites, dict):
        return None
    other = sprites.get("other")
    if isinstance(other, dict):
        official = other.get("official-artwork")
        if isinstance(official, dict) and official.get("front_default"):
            return str(official["front_default"])
    if sprites.get("front_default"):
        return str(sprites["front_default"])
    return None


class ArtworkResolver:
    """Looks up artwork for a creature name. Uses one requests.Session for all lookups."""

    def __init__(
        self,
        base_url: str = DEFAULT_POKEAPI_BASE_URL,
        placeholder_url: str = PLACEHOLDER_ARTWORK_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.placeholder_url = placeholder_url
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArtworkResolver":
        return cls(
            base_url=settings.pokeapi_base_url,
            placeholder_url=settings.placeholder_url,
            timeout=settings.request_timeout_seconds,
        )

    def lookup_url(self, slug: str) -> str:
        return f"{self._base_url}/pokemon/{slug}"

    def resolve(self, creature_name: str) -> str:
        slug = slugify(creature_name or "")
        if not slug:
            _log.warning("Empty slug for creature name %r; using placeholder", creature_name)
            return self.placeholder_url
        try:
            resp = self._session.get(self.lookup_url(slug), timeout=self._timeout)
            resp.raise_for_status()
            url = _pick_artwork(resp.json())
        except (requests.RequestException, ValueError) as e:
            _log.warning("Failed to fetch artwork for %s: %s", creature_name, e)
            return self.placeholder_url
        if url is None:
            _log.info("No artwork fields for %s; using placeholder", slug)
            return self.placeholder_url
        return url
