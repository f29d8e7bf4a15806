"""
Orchestrator Tests
==================

Path selection, merging, persistence side effects and unconditional browser
cleanup. The browser session and page-level extractors are faked.

Run:
    python -m unittest banner_scraper.extraction.test_orchestrator
"""

import tempfile
import time
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import AsyncMock, MagicMock, patch

from playwright.async_api import Error as PlaywrightError

from banner_scraper.config import Config
from banner_scraper.errors import PageLoadFailure, PersistenceFailure, ValidationError
from banner_scraper.extraction import heuristic
from banner_scraper.extraction import orchestrator as orchestrator_module
from banner_scraper.extraction.orchestrator import Orchestrator, merge_results
from banner_scraper.extraction.session import PageHandle
from banner_scraper.models import (
    Category, ExtractedElement, ExtractionMode, ExtractionRequest, SelectorEntry, normalize_domain,
)
from banner_scraper.storage import ResultDatabase, SelectorStore

URL = "https://www.shop.example/item"

HEURISTIC = [
    ExtractedElement(Category.TEXT, "Great Deal"),
    ExtractedElement(Category.IMAGE, "foo.jpg"),
    ExtractedElement(Category.BUTTON, "Buy"),
]


class FakeSession:
    def __init__(self, fail=None):
        self.fail = fail
        self.page = MagicMock()
        self.closed = False
        self.images_waited = False

    async def open(self, url):
        if self.fail:
            raise self.fail
        return PageHandle(url=url, domain=normalize_domain(url), page=self.page)

    async def wait_for_images(self):
        self.images_waited = True
        return True

    async def close(self):
        self.closed = True


class FakeAnnotation:
    def __init__(self, selections, finished=True):
        self._selections = selections
        self._finished = finished
        self.installed = False

    async def install(self):
        self.installed = True

    async def wait_until_finished(self):
        return self._finished

    @property
    def selections(self):
        return list(self._selections)


class TestMergeResults(unittest.TestCase):

    def test_heuristic_first_then_new_locators(self):
        h = [ExtractedElement(Category.TEXT, "a"), ExtractedElement(Category.TITLE, "t", "h1#name")]
        r = [
            ExtractedElement(Category.TITLE, "t2", "h1#name"),
            ExtractedElement(Category.PRICE, "$5", "span.price"),
            ExtractedElement(Category.PRICE, "$6", "span.price"),
        ]
        merged = merge_results(h, r)
        self.assertEqual([el.value for el in merged], ["a", "t", "$5"])

    def test_entries_without_locator_never_collide(self):
        h = [ExtractedElement(Category.TEXT, "a")]
        r = [ExtractedElement(Category.TEXT, "b")]
        self.assertEqual(len(merge_results(h, r)), 2)


class TestOrchestrator(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store = SelectorStore(self.tmp.name)
        self.sink = ResultDatabase(":memory:")
        self.session = FakeSession()
        self.factory_calls = 0

        extract_patch = patch.object(orchestrator_module, "extract_auto",
                                     AsyncMock(return_value=list(HEURISTIC)))
        replay_patch = patch.object(orchestrator_module, "replay", AsyncMock(return_value=[]))
        self.extract_auto = extract_patch.start()
        self.replay = replay_patch.start()
        self.addCleanup(extract_patch.stop)
        self.addCleanup(replay_patch.stop)

    def tearDown(self):
        self.sink.close()
        self.tmp.cleanup()

    def make_orchestrator(self, annotation=None):
        def session_factory(request):
            self.factory_calls += 1
            return self.session

        return Orchestrator(
            Config, selector_store=self.store, result_sink=self.sink,
            session_factory=session_factory,
            annotation_factory=lambda page: annotation,
        )

    async def test_auto_without_stored_selectors(self):
        outcome = await self.make_orchestrator().run(ExtractionRequest.parse(URL, "auto"))

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.to_dict()["content"], [
            {"type": "text", "value": "Great Deal"},
            {"type": "image", "value": "foo.jpg"},
            {"type": "button", "value": "Buy"},
        ])
        self.assertEqual(outcome.suggestions, [])
        self.assertTrue(self.session.images_waited)
        self.replay.assert_not_awaited()
        self.assertEqual(len(self.sink.recent()), 1)
        self.assertTrue(self.session.closed)

    async def test_auto_merges_replayed_selectors(self):
        stored = [SelectorEntry(Category.PRICE, "span.price")]
        self.store.save("shop.example", stored)
        self.replay.return_value = [ExtractedElement(Category.PRICE, "$5", "span.price")]

        outcome = await self.make_orchestrator().run(ExtractionRequest.parse(URL, "auto"))

        self.assertEqual(len(outcome.content), 4)
        self.assertEqual(outcome.content[-1].locator, "span.price")
        self.assertEqual(self.replay.await_args.args[1], stored)
        self.assertEqual(outcome.suggestions, [])

    async def test_heuristic_page_error_keeps_replayed_content(self):
        stored = [SelectorEntry(Category.PRICE, "span.price")]
        self.store.save("shop.example", stored)
        self.replay.return_value = [ExtractedElement(Category.PRICE, "$5", "span.price")]
        self.session.page.evaluate = AsyncMock(
            side_effect=PlaywrightError("Execution context was destroyed"))

        with patch.object(orchestrator_module, "extract_auto", heuristic.extract_auto):
            outcome = await self.make_orchestrator().run(ExtractionRequest.parse(URL, "auto"))

        self.assertTrue(outcome.success)
        self.assertEqual([el.to_dict() for el in outcome.content], [
            {"type": "error", "value": "Auto-scraping failed"},
            {"type": "price", "selector": "span.price", "value": "$5"},
        ])
        self.assertTrue(self.session.closed)

    async def test_manual_returns_selections_and_suggestions(self):
        stored = [SelectorEntry(Category.TITLE, "h1#name")]
        self.store.save("shop.example", stored)
        selections = [ExtractedElement(Category.PRICE, "$19", "div#price")]
        annotation = FakeAnnotation(selections)

        outcome = await self.make_orchestrator(annotation).run(ExtractionRequest.parse(URL, "manual"))

        self.assertTrue(outcome.success)
        self.assertTrue(annotation.installed)
        self.assertEqual(outcome.content, selections)
        self.assertEqual(outcome.suggestions, stored)
        self.extract_auto.assert_not_awaited()
        self.assertEqual(self.store.load("shop.example"), [SelectorEntry(Category.PRICE, "div#price")])

    async def test_manual_aborted_is_failure(self):
        annotation = FakeAnnotation([], finished=False)
        outcome = await self.make_orchestrator(annotation).run(ExtractionRequest.parse(URL, "manual"))
        self.assertFalse(outcome.success)
        self.assertTrue(self.session.closed)
        self.assertEqual(self.sink.recent(), [])

    async def test_page_load_failure_is_structured(self):
        self.session = FakeSession(fail=PageLoadFailure(URL, 3, "timeout"))
        outcome = await self.make_orchestrator().run(ExtractionRequest.parse(URL, "auto"))
        self.assertEqual(outcome.to_dict(), {"error": "Failed to load page after 3 attempts"})
        self.assertTrue(self.session.closed)

    async def test_unexpected_error_still_closes_browser(self):
        self.extract_auto.side_effect = RuntimeError("boom")
        outcome = await self.make_orchestrator().run(ExtractionRequest.parse(URL, "auto"))
        self.assertFalse(outcome.success)
        self.assertNotIn("boom", outcome.error)
        self.assertTrue(self.session.closed)

    async def test_empty_result_is_failure(self):
        self.extract_auto.return_value = []
        outcome = await self.make_orchestrator().run(ExtractionRequest.parse(URL, "auto"))
        self.assertEqual(outcome.error, "Failed to extract content")

    async def test_sink_failure_does_not_fail_request(self):
        sink = MagicMock()
        sink.insert.side_effect = PersistenceFailure("disk full")
        orchestrator = self.make_orchestrator()
        orchestrator._result_sink = sink

        outcome = await orchestrator.run(ExtractionRequest.parse(URL, "auto"))
        self.assertTrue(outcome.success)
        sink.insert.assert_called_once()


class TestRunSync(unittest.TestCase):

    def test_invalid_request_rejected_before_browser_launch(self):
        factory = MagicMock()
        orchestrator = Orchestrator(Config, selector_store=MagicMock(), result_sink=MagicMock(),
                                    session_factory=factory)
        with self.assertRaises(ValidationError):
            orchestrator.run_sync("ftp://shop.example", "auto")
        with self.assertRaises(ValidationError):
            orchestrator.run_sync(URL, "semi")
        factory.assert_not_called()

    def test_result_sink_opened_once_across_threads(self):
        def slow_open(path):
            time.sleep(0.05)
            return MagicMock()

        orchestrator = Orchestrator(Config, selector_store=MagicMock())
        with patch.object(orchestrator_module, "ResultDatabase", side_effect=slow_open) as opener:
            with ThreadPoolExecutor(max_workers=8) as pool:
                sinks = list(pool.map(lambda _: orchestrator.result_sink, range(8)))

        opener.assert_called_once_with(Config.DATABASE_PATH)
        self.assertTrue(all(sink is sinks[0] for sink in sinks))

    def test_mode_headless_choice(self):
        class Settings(Config):
            HEADLESS = True
            INTERACTIVE_HEADLESS = False

        orchestrator = Orchestrator(Settings, selector_store=MagicMock(), result_sink=MagicMock())
        manual = orchestrator.session_factory(ExtractionRequest(URL, ExtractionMode.INTERACTIVE))
        auto = orchestrator.session_factory(ExtractionRequest(URL, ExtractionMode.AUTO))
        self.assertFalse(manual.headless)
        self.assertTrue(auto.headless)


if __name__ == '__main__':
    unittest.main()
