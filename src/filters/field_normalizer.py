# src/filters/field_normalizer.py

"""Per-record cleanup shared by every extraction strategy."""

import logging
import math
import re
from urllib.parse import urlsplit, urlunsplit

from src.config.settings import Settings
from src.filters.url_validator import is_allowed_host
from src.models.product import ProductRecord, RawCard

logger = logging.getLogger("kaspi_catalog.normalizer")


class FieldNormalizer:
    """Turn a :class:`RawCard` into a sanitized :class:`ProductRecord`.

    Link, image, price, rating and id handling are all static so the
    extraction strategies and tests can use them piecemeal.
    """

    _WHITESPACE_RE = re.compile(r"\s+")
    _NON_DIGIT_RE = re.compile(r"[^\d]")
    _NUMERIC_ID_RE = re.compile(r"(\d{4,})")

    # Highest score wins when two images share an identity
    _QUALITY_MARKERS: tuple[tuple[str, int], ...] = (
        ("preview-large", 3),
        ("preview-medium", 2),
        ("preview-small", 1),
    )

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_text(value: str | None) -> str:
        """Collapse whitespace runs and strip."""
        if not value:
            return ""
        return FieldNormalizer._WHITESPACE_RE.sub(" ", value).strip()

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    @staticmethod
    def to_absolute_url(value: str | None) -> str:
        """Resolve protocol-relative, root-relative and bare paths.

        Legacy ``/p/...`` and ``p/...`` paths are moved under ``/shop``.
        Absolute URLs pass through, except the legacy form on the
        allowed origin itself.
        """
        origin = Settings.ALLOWED_ORIGIN
        legacy = Settings.LEGACY_PATH_PREFIX
        current = Settings.CURRENT_PATH_PREFIX
        text = (value or "").strip()
        if not text:
            return ""
        if text.startswith("//"):
            return f"https:{text}"
        if text.startswith(legacy):
            return f"{origin}{current}{text[len(legacy):]}"
        if text.startswith("/"):
            return f"{origin}{text}"
        if text.startswith(legacy.lstrip("/")):
            return f"{origin}{current}{text[len(legacy) - 1:]}"
        if text.startswith(("http://", "https://")):
            if text.startswith(f"{origin}{legacy}"):
                return text.replace(
                    f"{origin}{legacy}", f"{origin}{current}", 1
                )
            return text
        return f"{origin}/{text.lstrip('/')}"

    @staticmethod
    def normalize_product_link(link: str | None) -> str:
        """Absolutize *link* and rewrite legacy paths.

        Links off the allowed origin are treated like a missing href and
        give ``""``.
        """
        absolute = FieldNormalizer.to_absolute_url(link)
        if not absolute:
            return ""
        try:
            parts = urlsplit(absolute)
            host = parts.hostname or ""
        except ValueError:
            return ""
        if not is_allowed_host(host):
            logger.debug("Discarded off-origin product link %s", absolute)
            return ""
        legacy = Settings.LEGACY_PATH_PREFIX
        if parts.path.startswith(legacy):
            path = Settings.CURRENT_PATH_PREFIX + parts.path[len(legacy):]
            return urlunsplit(
                (parts.scheme, parts.netloc, path, parts.query, parts.fragment)
            )
        return absolute

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_image_url(url: str | None) -> str:
        """Return *url* if it is an absolute http(s) URL, else ``""``."""
        if not url:
            return ""
        try:
            parts = urlsplit(url.strip())
            host = parts.hostname
        except ValueError:
            return ""
        if parts.scheme.lower() not in ("http", "https") or not host:
            return ""
        return urlunsplit(
            (parts.scheme.lower(), parts.netloc, parts.path or "/",
             parts.query, parts.fragment)
        )

    @staticmethod
    def image_identity_key(url: str) -> str:
        """Origin plus path; query strings and fragments are ignored."""
        try:
            parts = urlsplit(url)
        except ValueError:
            return url
        return f"{parts.scheme}://{parts.netloc.lower()}{parts.path}"

    @staticmethod
    def image_quality_score(url: str) -> int:
        """Score size variants: large 3, medium 2, small 1, unknown 0."""
        for marker, score in FieldNormalizer._QUALITY_MARKERS:
            if marker in url:
                return score
        return 0

    @staticmethod
    def canonical_images(candidates: list[str]) -> list[str]:
        """Deduplicate image candidates by identity and cap the result.

        Unparsable entries are dropped.  When two candidates share an
        identity the higher-quality one replaces the earlier one in its
        original position.  The result is never empty: the placeholder
        asset is used when nothing survives.
        """
        by_identity: dict[str, str] = {}
        for candidate in candidates:
            normalized = FieldNormalizer.normalize_image_url(candidate)
            if not normalized:
                continue
            key = FieldNormalizer.image_identity_key(normalized)
            existing = by_identity.get(key)
            if existing is None or (
                FieldNormalizer.image_quality_score(normalized)
                > FieldNormalizer.image_quality_score(existing)
            ):
                by_identity[key] = normalized

        images = list(by_identity.values())[: Settings.MAX_IMAGES]
        if not images:
            images = [Settings.PLACEHOLDER_IMAGE]
        return images

    # ------------------------------------------------------------------
    # Numbers
    # ------------------------------------------------------------------

    @staticmethod
    def parse_price(value: int | float | str | None) -> int:
        """Parse a price into a non-negative integer, ``0`` on failure.

        Strings lose every non-digit character first, so ``"1 299 ₸"``
        and ``"1,299"`` both give ``1299``.
        """
        if value is None or isinstance(value, bool):
            return 0
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                return 0
            return max(0, math.floor(value))
        digits = FieldNormalizer._NON_DIGIT_RE.sub("", value)
        return int(digits) if digits else 0

    @staticmethod
    def clamp_rating(value: float | None) -> float:
        """Round to one decimal and clamp into the rating range."""
        if value is None or isinstance(value, bool):
            return Settings.DEFAULT_RATING
        try:
            rating = float(value)
        except (TypeError, ValueError):
            return Settings.DEFAULT_RATING
        if not math.isfinite(rating):
            return Settings.DEFAULT_RATING
        rounded = math.floor(rating * 10 + 0.5) / 10
        return max(Settings.MIN_RATING, min(Settings.MAX_RATING, rounded))

    @staticmethod
    def extract_numeric_id(value: str | None) -> int | None:
        """Return the first run of four or more digits in *value*."""
        if not value:
            return None
        match = FieldNormalizer._NUMERIC_ID_RE.search(value)
        if not match:
            return None
        return int(match.group(1))

    @staticmethod
    def resolve_id(
        source_id: str, link: str, href: str, position: int,
    ) -> int:
        """Pick an id: explicit id, link digits, href digits, position."""
        explicit = (source_id or "").strip()
        if explicit:
            match = re.match(r"^[+-]?\d+", explicit)
            if match and int(match.group(0)) != 0:
                return int(match.group(0))
        return (
            FieldNormalizer.extract_numeric_id(link)
            or FieldNormalizer.extract_numeric_id(href)
            or position
        )

    # ------------------------------------------------------------------
    # Whole record
    # ------------------------------------------------------------------

    @staticmethod
    def fallback_name(position: int, label: str | None = None) -> str:
        """Placeholder name for a card with no extractable title."""
        return f"{label or Settings.FALLBACK_CATEGORY_LABEL} module {position}"

    @staticmethod
    def normalize(
        card: RawCard, position: int, fallback_label: str | None = None,
    ) -> ProductRecord:
        """Build a sanitized record from *card* at 1-based *position*."""
        link = FieldNormalizer.normalize_product_link(card.href)
        name = FieldNormalizer.normalize_text(
            card.name
        ) or FieldNormalizer.fallback_name(position, fallback_label)
        images = FieldNormalizer.canonical_images(card.image_candidates)
        return ProductRecord(
            id=FieldNormalizer.resolve_id(
                card.source_id, link, card.href, position
            ),
            name=name,
            description="",
            price=FieldNormalizer.parse_price(card.price),
            rating=FieldNormalizer.clamp_rating(card.rating),
            image=images[0],
            images=images,
            link=link,
        )
