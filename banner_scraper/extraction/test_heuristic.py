"""
Heuristic Extraction Tests
==========================

Run:
    python -m unittest banner_scraper.extraction.test_heuristic
"""

import unittest
from unittest.mock import AsyncMock, MagicMock

from playwright.async_api import Error as PlaywrightError

from banner_scraper.extraction.heuristic import build_auto_elements, extract_auto


class TestBuildAutoElements(unittest.TestCase):

    def test_text_image_button_triple(self):
        elements = build_auto_elements({
            "hasBody": True, "text": "  Great\n\n Deal ",
            "imageSrc": "foo.jpg", "buttonText": " Buy ",
        })
        self.assertEqual([el.to_dict() for el in elements], [
            {"type": "text", "value": "Great Deal"},
            {"type": "image", "value": "foo.jpg"},
            {"type": "button", "value": "Buy"},
        ])
        self.assertTrue(all(el.locator is None for el in elements))

    def test_sentinels_when_nothing_found(self):
        elements = build_auto_elements({"hasBody": True, "text": "", "imageSrc": None, "buttonText": None})
        self.assertEqual([el.value for el in elements],
                         ["No visible content available", "No images found", "No buttons found"])

    def test_text_truncated_to_500(self):
        elements = build_auto_elements({"hasBody": True, "text": "word " * 400})
        self.assertEqual(len(elements[0].value), 500)

    def test_missing_body_is_single_error(self):
        elements = build_auto_elements({"hasBody": False})
        self.assertEqual([el.to_dict() for el in elements],
                         [{"type": "error", "value": "No body content found"}])


class TestExtractAuto(unittest.IsolatedAsyncioTestCase):

    async def test_reads_facts_from_page(self):
        page = MagicMock()
        page.evaluate = AsyncMock(return_value={
            "hasBody": True, "text": "Great Deal", "imageSrc": "foo.jpg", "buttonText": "Buy",
        })
        elements = await extract_auto(page)
        self.assertEqual(len(elements), 3)
        page.evaluate.assert_awaited_once()

    async def test_destroyed_context_degrades_to_error_entry(self):
        page = MagicMock()
        page.evaluate = AsyncMock(side_effect=PlaywrightError("Execution context was destroyed"))
        elements = await extract_auto(page)
        self.assertEqual([el.to_dict() for el in elements],
                         [{"type": "error", "value": "Auto-scraping failed"}])


if __name__ == '__main__':
    unittest.main()
