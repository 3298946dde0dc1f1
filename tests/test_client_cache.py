# tests/test_client_cache.py

"""Tests for the file-backed client freshness cache."""

import json
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from src.models.parse_response import ClientCachePayload
from src.models.product import ProductRecord
from src.storage.client_cache import (
    ClientCache,
    compute_expires_at,
    parse_iso,
    to_iso,
)

NOW = datetime(2026, 3, 10, 10, 0, tzinfo=timezone.utc)


def _payload(
    expires: datetime | None = None,
    page: int = 1,
    link: str = "https://kaspi.kz/shop/p/item-100200300/",
    products: list[ProductRecord] | None = None,
) -> ClientCachePayload:
    return ClientCachePayload(
        url="https://kaspi.kz/shop/c/ram/",
        page=page,
        has_more=True,
        fetched_at_iso=to_iso(NOW),
        expires_at_iso=to_iso(expires or NOW + timedelta(hours=1)),
        products=(
            products
            if products is not None
            else [ProductRecord(id=100200300, name="Module", link=link)]
        ),
    )


class TestExpiry(unittest.TestCase):

    def test_end_of_day_wins_in_the_morning(self) -> None:
        self.assertEqual(
            compute_expires_at(NOW),
            NOW.replace(hour=23, minute=59, second=59, microsecond=999000),
        )

    def test_never_later_than_ttl(self) -> None:
        expires = compute_expires_at(NOW)
        self.assertLessEqual(expires - NOW, timedelta(hours=24))

    def test_iso_round_trip_keeps_milliseconds(self) -> None:
        text = to_iso(NOW)
        self.assertEqual(text, "2026-03-10T10:00:00.000Z")
        self.assertEqual(parse_iso(text), NOW)

    def test_parse_iso_malformed(self) -> None:
        self.assertIsNone(parse_iso("yesterday"))


class TestClientCache(unittest.TestCase):

    def setUp(self) -> None:
        self.tmpdir = Path(tempfile.mkdtemp())
        self.cache = ClientCache(cache_dir=self.tmpdir)

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_write_then_read(self) -> None:
        path = self.cache.write("ram", _payload())
        self.assertEqual(path.name, "kaspi_category_cache_v3_ram.json")

        loaded = self.cache.read("ram")
        assert loaded is not None
        self.assertEqual(loaded.page, 1)
        self.assertTrue(loaded.has_more)
        self.assertEqual(loaded.products[0].id, 100200300)

    def test_file_uses_camel_case_keys(self) -> None:
        path = self.cache.write("ram", _payload())
        data = json.loads(path.read_text(encoding="utf-8"))
        for key in ("url", "page", "hasMore", "fetchedAtISO", "expiresAtISO", "products"):
            self.assertIn(key, data)

    def test_missing_file_reads_none(self) -> None:
        self.assertIsNone(self.cache.read("cpus"))

    def test_corrupt_file_reads_none(self) -> None:
        (self.tmpdir / "kaspi_category_cache_v3_ram.json").write_text(
            "{not json", encoding="utf-8"
        )
        self.assertIsNone(self.cache.read("ram"))

    def test_wrong_shape_reads_none(self) -> None:
        (self.tmpdir / "kaspi_category_cache_v3_ram.json").write_text(
            json.dumps({"url": "x", "page": "1", "products": []}),
            encoding="utf-8",
        )
        self.assertIsNone(self.cache.read("ram"))

    def test_clear(self) -> None:
        self.cache.write("ram", _payload())
        self.assertTrue(self.cache.clear("ram"))
        self.assertFalse(self.cache.clear("ram"))
        self.assertIsNone(self.cache.read("ram"))


class TestIsValid(unittest.TestCase):

    def test_fresh_payload_is_valid(self) -> None:
        self.assertTrue(ClientCache.is_valid(_payload(), now=NOW))

    def test_expired_payload(self) -> None:
        payload = _payload(expires=NOW - timedelta(seconds=1))
        self.assertFalse(ClientCache.is_valid(payload, now=NOW))

    def test_empty_products(self) -> None:
        self.assertFalse(ClientCache.is_valid(_payload(products=[]), now=NOW))

    def test_bad_page(self) -> None:
        self.assertFalse(ClientCache.is_valid(_payload(page=0), now=NOW))

    def test_legacy_link_invalidates(self) -> None:
        payload = _payload(link="https://kaspi.kz/p/item-100200300/")
        self.assertFalse(ClientCache.is_valid(payload, now=NOW))

    def test_unparsable_expiry(self) -> None:
        payload = _payload()
        payload.expires_at_iso = "soon"
        self.assertFalse(ClientCache.is_valid(payload, now=NOW))


if __name__ == "__main__":
    unittest.main()
