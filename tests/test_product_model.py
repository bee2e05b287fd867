# tests/test_product_model.py

"""Tests for the ProviderResult and Session dataclasses."""

import dataclasses
import unittest

from diy_search.models.product import ProviderResult, Retailer
from diy_search.models.session import Session


class TestProviderResult(unittest.TestCase):
    """ProviderResult dataclass unit tests."""

    def test_init_with_all_fields(self) -> None:
        result = ProviderResult(
            retailer=Retailer.SCREWFIX,
            title="Stanley FatMax Tape 8m",
            price=19.99,
            url="https://www.screwfix.com/p/12345",
            image_url="https://media.screwfix.com/is/image/ae235/12345_P",
        )
        self.assertEqual(result.retailer, Retailer.SCREWFIX)
        self.assertEqual(result.price, 19.99)

    def test_defaults(self) -> None:
        result = ProviderResult(Retailer.BQ, "Top result")
        self.assertIsNone(result.price)
        self.assertIsNone(result.url)
        self.assertIsNone(result.image_url)

    def test_blank_title_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ProviderResult(Retailer.BQ, "   ")

    def test_frozen(self) -> None:
        result = ProviderResult(Retailer.BQ, "Drill", 10.0)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            result.price = 5.0  # type: ignore[misc]

    def test_equality(self) -> None:
        self.assertEqual(
            ProviderResult(Retailer.BQ, "A", 10.0),
            ProviderResult(Retailer.BQ, "A", 10.0),
        )
        self.assertNotEqual(
            ProviderResult(Retailer.BQ, "A", 10.0),
            ProviderResult(Retailer.TOOLSTATION, "A", 10.0),
        )

    def test_to_dict_keys(self) -> None:
        data = ProviderResult(
            Retailer.TOOLSTATION, "Drill", 49.98, "u", "i"
        ).to_dict()
        self.assertEqual(
            data,
            {
                "retailer": "Toolstation",
                "title": "Drill",
                "price": 49.98,
                "url": "u",
                "imageUrl": "i",
            },
        )

    def test_placeholder(self) -> None:
        result = ProviderResult.placeholder(
            Retailer.BQ, "combi drill", "https://www.diy.com/search?term=combi%20drill"
        )
        self.assertEqual(result.title, 'Open B&Q results for "combi drill"')
        self.assertIsNone(result.price)
        self.assertTrue(result.url.startswith("https://www.diy.com/search"))
        self.assertTrue(result.is_placeholder)
        self.assertFalse(ProviderResult(Retailer.BQ, "Drill", 1.0).is_placeholder)


class TestSession(unittest.TestCase):

    def test_fresh_outside_margin(self) -> None:
        session = Session("tok", "a=1", expires_at=1000.0)
        self.assertTrue(session.is_fresh(now=900.0, margin=60.0))

    def test_stale_inside_margin(self) -> None:
        session = Session("tok", "a=1", expires_at=1000.0)
        self.assertFalse(session.is_fresh(now=940.0, margin=60.0))
        self.assertFalse(session.is_fresh(now=1001.0, margin=0.0))


if __name__ == "__main__":
    unittest.main()
