# src/storage/client_cache.py

"""Long-lived client-side listing cache persisted as JSON files."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from src.config.settings import Settings
from src.models.parse_response import ClientCachePayload

logger = logging.getLogger("kaspi_catalog.client_cache")

_LEGACY_LINK_MARKER = "kaspi.kz/p/"


def compute_expires_at(now: datetime | None = None) -> datetime:
    """The earlier of 24 hours from *now* and the end of the local day."""
    current = now or datetime.now().astimezone()
    if current.tzinfo is None:
        current = current.astimezone()
    in_ttl = current + timedelta(seconds=Settings.CLIENT_CACHE_TTL)
    end_of_day = current.replace(
        hour=23, minute=59, second=59, microsecond=999000
    )
    return min(in_ttl, end_of_day)


def to_iso(moment: datetime) -> str:
    """UTC ISO 8601 with a ``Z`` suffix and millisecond precision."""
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def parse_iso(value: str) -> datetime | None:
    """Parse an ISO timestamp, ``None`` when malformed."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ClientCache:
    """One JSON file per category under ``Settings.CACHE_DIR``.

    Independent of the server response cache: its own keys, its own
    TTL, its own storage, and it survives process restarts.
    """

    def __init__(self, cache_dir: Path | None = None) -> None:
        self.cache_dir: Path = cache_dir or Settings.CACHE_DIR
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("ClientCache initialised, cache_dir=%s", self.cache_dir)

    def _path(self, category: str) -> Path:
        key = f"{Settings.CLIENT_CACHE_KEY_PREFIX}_{category}"
        return self.cache_dir / f"{key}.json"

    def read(self, category: str) -> ClientCachePayload | None:
        """Return the stored payload, or ``None`` if absent or corrupt."""
        path = self._path(category)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data: object = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable client cache %s: %s", path, exc)
            return None
        if not ClientCachePayload.has_valid_shape(data):
            logger.warning("Client cache %s has an unexpected shape", path)
            return None
        assert isinstance(data, dict)
        return ClientCachePayload.from_dict(data)

    @staticmethod
    def is_valid(
        payload: ClientCachePayload, now: datetime | None = None,
    ) -> bool:
        """Fresh, non-empty, a sane page, and no legacy product links."""
        expires = parse_iso(payload.expires_at_iso)
        current = now or datetime.now(timezone.utc)
        if expires is None or current >= expires:
            return False
        if not payload.products or payload.page < 1:
            return False
        return not any(
            _LEGACY_LINK_MARKER in p.link for p in payload.products
        )

    def write(self, category: str, payload: ClientCachePayload) -> Path:
        """Persist *payload* for *category*."""
        path = self._path(category)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload.to_dict(), f, ensure_ascii=False, indent=2)
        logger.info(
            "Saved %d products for category '%s' to %s",
            len(payload.products),
            category,
            path,
        )
        return path

    def clear(self, category: str) -> bool:
        """Delete the stored payload; True if something was removed."""
        path = self._path(category)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Cleared client cache for '%s'", category)
        return True
