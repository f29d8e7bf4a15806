"""
Selector Replay Tests
=====================

Run:
    python -m unittest banner_scraper.extraction.test_replay
"""

import unittest
from unittest.mock import AsyncMock, MagicMock

from playwright.async_api import Error as PlaywrightError

from banner_scraper.extraction.replay import replay
from banner_scraper.models import Category, SelectorEntry


def make_handle(text=None, record=None):
    handle = MagicMock()
    handle.text_content = AsyncMock(return_value=text)
    handle.evaluate = AsyncMock(return_value=record)
    return handle


def make_page(matches):
    """matches: locator -> handle, None, or an exception to raise."""
    page = MagicMock()
    page.evaluate = AsyncMock(return_value=0)

    async def query_selector(locator):
        found = matches.get(locator)
        if isinstance(found, Exception):
            raise found
        return found

    page.query_selector = AsyncMock(side_effect=query_selector)
    return page


class TestReplay(unittest.IsolatedAsyncioTestCase):

    async def test_text_and_image_values(self):
        page = make_page({
            "h1#name": make_handle(text="  Runner 2  "),
            "img.hero": make_handle(record={"src": "https://x.example/a.jpg", "alt": None,
                                            "role": None, "class": "hero", "id": None}),
        })
        elements = await replay(page, [
            SelectorEntry(Category.TITLE, "h1#name"),
            SelectorEntry(Category.IMAGE, "img.hero"),
        ])
        self.assertEqual(elements[0].to_dict(), {"type": "title", "selector": "h1#name", "value": "Runner 2"})
        self.assertEqual(elements[1].value["src"], "https://x.example/a.jpg")
        self.assertEqual(elements[1].value["alt"], "No alt text")

    async def test_unresolved_locator_produces_nothing(self):
        page = make_page({})
        elements = await replay(page, [SelectorEntry(Category.PRICE, "span#gone")])
        self.assertEqual(elements, [])

    async def test_empty_text_gets_sentinel(self):
        page = make_page({"div.price": make_handle(text="   ")})
        elements = await replay(page, [SelectorEntry(Category.PRICE, "div.price")])
        self.assertEqual(elements[0].value, "No content available")

    async def test_image_without_source_skipped(self):
        page = make_page({"img.x": make_handle(record={"src": None})})
        self.assertEqual(await replay(page, [SelectorEntry(Category.IMAGE, "img.x")]), [])

    async def test_evaluation_error_skips_only_that_locator(self):
        page = make_page({
            "div#bad": PlaywrightError("DOMException: not a valid selector"),
            "p.lead": make_handle(text="Still here"),
        })
        elements = await replay(page, [
            SelectorEntry(Category.DESCRIPTION, "div#bad"),
            SelectorEntry(Category.DESCRIPTION, "p.lead"),
        ])
        self.assertEqual([el.locator for el in elements], ["p.lead"])

    async def test_empty_set_skips_page_work(self):
        page = make_page({})
        self.assertEqual(await replay(page, []), [])
        page.evaluate.assert_not_awaited()


if __name__ == '__main__':
    unittest.main()
