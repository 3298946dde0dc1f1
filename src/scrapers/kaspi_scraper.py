# src/scrapers/kaspi_scraper.py

"""Scraper for kaspi.kz category listing pages."""

import math
import re
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from bs4 import BeautifulSoup, Tag

from src.filters.field_normalizer import FieldNormalizer
from src.models.product import ProductRecord, RawCard
from src.scrapers.base_scraper import BaseScraper
from src.scrapers.embedded_json import extract_embedded_object


class KaspiScraper(BaseScraper):
    """Scraper for kaspi.kz category pages.

    Two extraction strategies are tried in order and the first one that
    yields any card wins:

    1. Server-rendered ``.item-card`` markup, parsed with BeautifulSoup.
    2. The ``productListData:`` JSON object embedded in a script block,
       used when the page ships no rendered cards.

    Both produce :class:`RawCard` objects that go through the same
    :class:`FieldNormalizer`, so records look identical whichever path
    produced them.
    """

    _RATING_CLASS_RE = re.compile(r"_(\d{2})\b")
    _RATING_TEXT_RE = re.compile(r"(\d(?:[.,]\d)?)")

    def __init__(self, category_label: str | None = None) -> None:
        super().__init__("kaspi")
        self.category_label = category_label
        self._strategies: tuple[
            Callable[[str, int], list[RawCard]], ...
        ] = (
            self._extract_from_markup,
            self._extract_from_embedded_json,
        )

    def _get_homepage(self) -> str:
        """Return the kaspi.kz homepage URL."""
        return self.settings.ALLOWED_ORIGIN

    # ------------------------------------------------------------------
    # Strategy A: rendered card markup
    # ------------------------------------------------------------------

    def _first_text(self, card: Tag, *selector_keys: str) -> str:
        """Normalized text of the first matching selector with content."""
        for key in selector_keys:
            selector = self.selectors.get(key, "")
            if not selector:
                continue
            el = card.select_one(selector)
            if el is None:
                continue
            text = FieldNormalizer.normalize_text(el.get_text())
            if text:
                return text
        return ""

    def _parse_rating(self, card: Tag) -> float | None:
        """Rating from a ``_NN`` class suffix, else from the visible text."""
        rating_el = card.select_one(self.selectors.get("rating", ".rating"))
        if rating_el is None:
            return None

        raw_class = rating_el.get("class") or []
        class_text = (
            " ".join(raw_class)
            if isinstance(raw_class, list)
            else str(raw_class)
        )
        class_match = self._RATING_CLASS_RE.search(class_text)
        if class_match:
            return int(class_match.group(1)) / 10

        text = FieldNormalizer.normalize_text(rating_el.get_text())
        text_match = self._RATING_TEXT_RE.search(text)
        if text_match:
            return float(text_match.group(1).replace(",", "."))
        return None

    def _collect_images(self, card: Tag) -> list[str]:
        """Every image URL referenced by the card's image elements."""
        seen: dict[str, None] = {}
        for img in card.select(self.selectors.get("image", "img")):
            srcset = str(img.get("srcset") or "").split(",")[0].strip()
            candidates = [
                img.get("src"),
                img.get("data-src"),
                img.get("data-original"),
                srcset.split(" ")[0] if srcset else "",
            ]
            for candidate in candidates:
                absolute = FieldNormalizer.to_absolute_url(
                    str(candidate or "")
                )
                if absolute:
                    seen.setdefault(absolute, None)
        return list(seen)

    def _parse_card(self, card: Tag) -> RawCard:
        """Pull raw fields out of one ``.item-card`` element."""
        link_el = card.select_one(
            self.selectors.get("title_link", "a.item-card__name-link")
        )
        href = ""
        name = ""
        if link_el is not None:
            href = str(link_el.get("href") or "")
            name = FieldNormalizer.normalize_text(link_el.get_text())
        if not name:
            name = self._first_text(card, "title")

        id_attr = self.selectors.get("product_id_attr", "data-product-id")
        return RawCard(
            source_id=str(card.get(id_attr) or ""),
            name=name,
            href=href,
            price=self._first_text(
                card, "price", "price_alt", "price_fallback"
            ),
            rating=self._parse_rating(card),
            image_candidates=self._collect_images(card),
        )

    def _extract_from_markup(
        self, html: str, count: int,
    ) -> list[RawCard]:
        """Parse rendered listing cards, truncated before per-card work."""
        soup = BeautifulSoup(html, "lxml")
        card_sel = self.selectors.get(
            "product_card", ".item-card.ddl_product, .item-card"
        )
        cards = soup.select(card_sel)[:count]
        self.logger.debug(
            "[kaspi] Markup strategy found %d cards", len(cards)
        )
        return [self._parse_card(c) for c in cards]

    # ------------------------------------------------------------------
    # Strategy B: embedded productListData JSON
    # ------------------------------------------------------------------

    @staticmethod
    def _is_number(value: object) -> bool:
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
        )

    @staticmethod
    def _resolve_embedded_price(
        card: dict[str, Any],
    ) -> int | float | str:
        """Sale price, then list price, then the formatted price string."""
        for key in ("unitSalePrice", "unitPrice"):
            value = card.get(key)
            if KaspiScraper._is_number(value):
                return value
        return str(card.get("priceFormatted") or "")

    @staticmethod
    def _embedded_images(card: dict[str, Any]) -> list[str]:
        """Image candidates per preview group, large before medium before small."""
        previews = card.get("previewImages")
        if not isinstance(previews, list):
            return []
        candidates: list[str] = []
        for preview in previews:
            if not isinstance(preview, dict):
                continue
            for size in ("large", "medium", "small"):
                absolute = FieldNormalizer.to_absolute_url(
                    str(preview.get(size) or "")
                )
                if absolute:
                    candidates.append(absolute)
        return candidates

    @staticmethod
    def _parse_embedded_card(card: dict[str, Any]) -> RawCard:
        """Map one embedded JSON card onto the shared raw shape."""
        rating = card.get("rating")
        return RawCard(
            source_id=str(card.get("id") or ""),
            name=str(card.get("title") or card.get("shortNameText") or ""),
            href=str(card.get("shopLink") or ""),
            price=KaspiScraper._resolve_embedded_price(card),
            rating=float(rating) if KaspiScraper._is_number(rating) else None,
            image_candidates=KaspiScraper._embedded_images(card),
        )

    def _extract_from_embedded_json(
        self, html: str, count: int,
    ) -> list[RawCard]:
        """Parse the embedded product list; empty on any structural problem."""
        data = extract_embedded_object(
            html, self.settings.EMBEDDED_MARKER
        )
        if data is None:
            return []
        cards = data.get("cards")
        if not isinstance(cards, list):
            self.logger.warning(
                "[kaspi] Embedded product list has no 'cards' array"
            )
            return []
        self.logger.debug(
            "[kaspi] Embedded strategy found %d cards", len(cards)
        )
        return [
            self._parse_embedded_card(c)
            for c in cards[:count]
            if isinstance(c, dict)
        ]

    # ------------------------------------------------------------------
    # Public entry-point
    # ------------------------------------------------------------------

    def _unique_by_id(
        self, products: list[ProductRecord],
    ) -> list[ProductRecord]:
        """Keep ids unique within one batch.

        A card repeating an earlier card's id and link is the same
        product listed twice and is dropped.  Any other id clash gets
        the next integer not used anywhere in the batch.
        """
        links_by_id: dict[int, str] = {}
        taken = {p.id for p in products}
        kept: list[ProductRecord] = []
        for product in products:
            if product.id in links_by_id:
                if links_by_id[product.id] == product.link:
                    self.logger.debug(
                        "[kaspi] Dropped repeated card id=%d", product.id
                    )
                    continue
                new_id = product.id + 1
                while new_id in taken:
                    new_id += 1
                self.logger.info(
                    "[kaspi] Card '%s' clashes on id=%d, using id=%d",
                    product.name,
                    product.id,
                    new_id,
                )
                taken.add(new_id)
                product = replace(product, id=new_id)
            links_by_id[product.id] = product.link
            kept.append(product)
        return kept

    def parse_products(
        self, html: str, count: int,
    ) -> list[ProductRecord]:
        """Run the strategies in order and normalize the first non-empty batch."""
        for strategy in self._strategies:
            raw_cards = strategy(html, count)
            if raw_cards:
                return self._unique_by_id([
                    FieldNormalizer.normalize(
                        raw, position, self.category_label
                    )
                    for position, raw in enumerate(raw_cards, 1)
                ])
        self.logger.info("[kaspi] No products found by any strategy")
        return []
