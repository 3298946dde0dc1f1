# tests/test_field_normalizer.py

"""Tests for FieldNormalizer link, image, number and record handling."""

import unittest

from src.config.settings import Settings
from src.filters.field_normalizer import FieldNormalizer
from src.models.product import RawCard

CDN = "https://resources.cdn-kaspi.kz/img/m/p"


class TestLinks(unittest.TestCase):

    def test_to_absolute_url_variants(self) -> None:
        cases = {
            "": "",
            "//resources.cdn-kaspi.kz/a.jpg": "https://resources.cdn-kaspi.kz/a.jpg",
            "/p/item-1234/": "https://kaspi.kz/shop/p/item-1234/",
            "/shop/c/ram/": "https://kaspi.kz/shop/c/ram/",
            "p/item-1234/": "https://kaspi.kz/shop/p/item-1234/",
            "https://kaspi.kz/p/item-1234/": "https://kaspi.kz/shop/p/item-1234/",
            "https://example.com/p/x": "https://example.com/p/x",
            "item-1234": "https://kaspi.kz/item-1234",
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(FieldNormalizer.to_absolute_url(raw), expected)

    def test_legacy_path_rewritten_on_subdomain(self) -> None:
        self.assertEqual(
            FieldNormalizer.normalize_product_link(
                "https://www.kaspi.kz/p/item-1234/?c=1"
            ),
            "https://www.kaspi.kz/shop/p/item-1234/?c=1",
        )

    def test_off_origin_link_is_discarded(self) -> None:
        for raw in (
            "https://example.com/p/x",
            "https://evil.example/p/x-5555/",
            "//evil.example/shop/p/x-5555/",
            "https://kaspi.kz.evil.com/shop/p/x-5555/",
        ):
            with self.subTest(raw=raw):
                self.assertEqual(
                    FieldNormalizer.normalize_product_link(raw), ""
                )

    def test_off_origin_card_keeps_href_digits_as_id(self) -> None:
        record = FieldNormalizer.normalize(
            RawCard(name="X", href="https://evil.example/p/x-5555/"), 1
        )
        self.assertEqual(record.link, "")
        self.assertEqual(record.id, 5555)

    def test_current_path_is_stable(self) -> None:
        link = "https://kaspi.kz/shop/p/item-1234/"
        self.assertEqual(FieldNormalizer.normalize_product_link(link), link)


class TestImages(unittest.TestCase):

    def test_normalize_image_url_rejects_non_http(self) -> None:
        for raw in ("", None, "data:image/png;base64,xx", "/rel.jpg", "ftp://h/x.jpg"):
            with self.subTest(raw=raw):
                self.assertEqual(FieldNormalizer.normalize_image_url(raw), "")

    def test_identity_ignores_query(self) -> None:
        a = FieldNormalizer.image_identity_key(f"{CDN}/1.jpg?format=preview-small")
        b = FieldNormalizer.image_identity_key(f"{CDN}/1.jpg?format=preview-large")
        self.assertEqual(a, b)

    def test_quality_scores(self) -> None:
        self.assertEqual(FieldNormalizer.image_quality_score("x?format=preview-large"), 3)
        self.assertEqual(FieldNormalizer.image_quality_score("x?format=preview-medium"), 2)
        self.assertEqual(FieldNormalizer.image_quality_score("x?format=preview-small"), 1)
        self.assertEqual(FieldNormalizer.image_quality_score("x.jpg"), 0)

    def test_better_variant_replaces_in_place(self) -> None:
        images = FieldNormalizer.canonical_images([
            f"{CDN}/1.jpg?format=preview-small",
            f"{CDN}/2.jpg?format=preview-medium",
            f"{CDN}/1.jpg?format=preview-large",
        ])
        self.assertEqual(images, [
            f"{CDN}/1.jpg?format=preview-large",
            f"{CDN}/2.jpg?format=preview-medium",
        ])

    def test_worse_variant_does_not_replace(self) -> None:
        images = FieldNormalizer.canonical_images([
            f"{CDN}/1.jpg?format=preview-large",
            f"{CDN}/1.jpg?format=preview-small",
        ])
        self.assertEqual(images, [f"{CDN}/1.jpg?format=preview-large"])

    def test_images_are_capped(self) -> None:
        images = FieldNormalizer.canonical_images(
            [f"{CDN}/{i}.jpg" for i in range(25)]
        )
        self.assertEqual(len(images), Settings.MAX_IMAGES)
        self.assertEqual(images[0], f"{CDN}/0.jpg")

    def test_empty_candidates_give_placeholder(self) -> None:
        self.assertEqual(
            FieldNormalizer.canonical_images(["", "not-a-url"]),
            [Settings.PLACEHOLDER_IMAGE],
        )


class TestNumbers(unittest.TestCase):

    def test_parse_price(self) -> None:
        cases = [
            ("18 990 ₸", 18990),
            ("1,299", 1299),
            ("", 0),
            ("нет в наличии", 0),
            (None, 0),
            (1999.99, 1999),
            (-5, 0),
            (float("nan"), 0),
        ]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                self.assertEqual(FieldNormalizer.parse_price(raw), expected)

    def test_clamp_rating(self) -> None:
        cases = [
            (None, 4.7),
            (float("nan"), 4.7),
            (4.44, 4.4),
            (4.25, 4.3),
            (0, 1.0),
            (0.2, 1.0),
            (7, 5.0),
            (5.0, 5.0),
        ]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                self.assertEqual(FieldNormalizer.clamp_rating(raw), expected)

    def test_extract_numeric_id(self) -> None:
        self.assertEqual(
            FieldNormalizer.extract_numeric_id("/shop/p/x-100200300/"), 100200300
        )
        self.assertIsNone(FieldNormalizer.extract_numeric_id("/shop/p/x-123/"))
        self.assertIsNone(FieldNormalizer.extract_numeric_id(""))

    def test_resolve_id_priority(self) -> None:
        resolve = FieldNormalizer.resolve_id
        self.assertEqual(resolve("42abc", "/p/x-55555/", "", 1), 42)
        self.assertEqual(resolve("0", "/p/x-55555/", "", 1), 55555)
        self.assertEqual(resolve("", "", "/p/x-77777/", 1), 77777)
        self.assertEqual(resolve("", "", "", 4), 4)


class TestNormalize(unittest.TestCase):

    def test_full_record(self) -> None:
        card = RawCard(
            source_id="100200300",
            name="  Kingston\n  FURY  ",
            href="/p/kingston-100200300/",
            price="18 990 ₸",
            rating=4.56,
            image_candidates=[f"{CDN}/1.jpg?format=preview-medium"],
        )
        record = FieldNormalizer.normalize(card, 1)

        self.assertEqual(record.id, 100200300)
        self.assertEqual(record.name, "Kingston FURY")
        self.assertEqual(record.price, 18990)
        self.assertEqual(record.rating, 4.6)
        self.assertEqual(record.link, "https://kaspi.kz/shop/p/kingston-100200300/")
        self.assertEqual(record.image, record.images[0])
        self.assertEqual(record.description, "")

    def test_empty_card_uses_fallbacks(self) -> None:
        record = FieldNormalizer.normalize(RawCard(), 5)
        self.assertEqual(record.id, 5)
        self.assertEqual(record.name, "RAM module 5")
        self.assertEqual(record.price, 0)
        self.assertEqual(record.rating, Settings.DEFAULT_RATING)
        self.assertEqual(record.link, "")
        self.assertEqual(record.images, [Settings.PLACEHOLDER_IMAGE])

    def test_fallback_label(self) -> None:
        record = FieldNormalizer.normalize(RawCard(), 2, "GPU")
        self.assertEqual(record.name, "GPU module 2")


if __name__ == "__main__":
    unittest.main()
