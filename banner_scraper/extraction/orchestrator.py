"""
Extraction orchestrator.

Runs one request end to end:

    validate -> open page -> annotate (manual) | heuristic + replay (auto)
             -> persist -> close browser

Whatever happens, the caller gets an ``ExtractionOutcome`` and the browser
is released. Only page-load failures and an empty or crashed extraction
become failure outcomes; readiness timeouts, unresolvable locators and
storage errors are logged and the request carries on.
"""

import asyncio
import sqlite3
import threading
from typing import Callable, List, Optional

from banner_scraper.config import config as default_config
from banner_scraper.errors import PageLoadFailure, PersistenceFailure
from banner_scraper.logger import get_logger
from banner_scraper.models import (
    ExtractedElement, ExtractionMode, ExtractionOutcome, ExtractionRequest, SelectorEntry,
)
from banner_scraper.storage import ResultDatabase, SelectorStore
from banner_scraper.extraction.annotation import AnnotationSession
from banner_scraper.extraction.heuristic import extract_auto
from banner_scraper.extraction.replay import replay
from banner_scraper.extraction.session import PageHandle, PageSession

log = get_logger('orchestrator')

EMPTY_RESULT_ERROR = "Failed to extract content"
ANNOTATION_ABORTED_ERROR = "Selection session ended before it was finished"
SERVER_ERROR = "Server error while scraping"


def merge_results(heuristic: List[ExtractedElement],
                  replayed: List[ExtractedElement]) -> List[ExtractedElement]:
    """
    Heuristic entries first, then replayed entries whose locator is not
    already present. Entries without a locator never collide.
    """
    seen = {el.locator for el in heuristic if el.locator}
    merged = list(heuristic)
    for el in replayed:
        if el.locator and el.locator in seen:
            continue
        if el.locator:
            seen.add(el.locator)
        merged.append(el)
    return merged


class Orchestrator:
    """
    Top-level extraction state machine.

    Args:
        settings: Config-like object (default: global ``config``)
        selector_store: Per-domain selector sets
        result_sink: Raw result database; created lazily from settings
        session_factory: ``request -> PageSession``; one fresh session per run
        annotation_factory: ``page -> AnnotationSession``
    """

    def __init__(self, settings=None, selector_store: Optional[SelectorStore] = None,
                 result_sink: Optional[ResultDatabase] = None,
                 session_factory: Optional[Callable[[ExtractionRequest], PageSession]] = None,
                 annotation_factory: Callable = AnnotationSession):
        self.settings = settings or default_config
        self.selector_store = selector_store or SelectorStore(self.settings.DATA_DIR)
        self._result_sink = result_sink
        self._sink_lock = threading.Lock()
        self.session_factory = session_factory or self._new_session
        self.annotation_factory = annotation_factory

    @property
    def result_sink(self) -> ResultDatabase:
        # Shared across Flask worker threads; open the database once
        with self._sink_lock:
            if self._result_sink is None:
                self._result_sink = ResultDatabase(self.settings.DATABASE_PATH)
            return self._result_sink

    def _new_session(self, request: ExtractionRequest) -> PageSession:
        headless = (self.settings.INTERACTIVE_HEADLESS
                    if request.mode is ExtractionMode.INTERACTIVE
                    else self.settings.HEADLESS)
        return PageSession(self.settings, headless=headless)

    def run_sync(self, url, mode) -> ExtractionOutcome:
        """
        Validate and run a request from synchronous code.

        Raises:
            ValidationError: before any browser is launched
        """
        return self.run_sync_request(ExtractionRequest.parse(url, mode))

    def run_sync_request(self, request: ExtractionRequest) -> ExtractionOutcome:
        """Sync wrapper for run()."""
        return asyncio.run(self.run(request))

    async def run(self, request: ExtractionRequest) -> ExtractionOutcome:
        """Run one extraction request. Never raises for extraction errors."""
        domain = request.domain
        log.info(f"Scraping requested for: {request.target_url} (Mode: {request.mode.value})")

        stored = list(self.selector_store.load(domain))
        suggestions: List[SelectorEntry] = []
        if stored and request.mode is ExtractionMode.INTERACTIVE:
            log.info(f"Found {len(stored)} stored selectors for {domain}, sending as suggestions")
            suggestions = list(stored)

        session = self.session_factory(request)
        try:
            try:
                handle = await session.open(request.target_url)
            except PageLoadFailure as e:
                log.error(f"{e} for {request.target_url}: {e.last_error}")
                return ExtractionOutcome.failure(str(e))

            if request.mode is ExtractionMode.INTERACTIVE:
                content = await self._annotate(handle)
                if content is None:
                    return ExtractionOutcome.failure(ANNOTATION_ABORTED_ERROR)
            else:
                await session.wait_for_images()
                content = await self._auto(handle, stored)

            if not content:
                log.warning(f"No elements extracted for {request.target_url}")
                return ExtractionOutcome.failure(EMPTY_RESULT_ERROR)

            self._persist(request, content)
            return ExtractionOutcome(success=True, content=content, suggestions=suggestions)

        except Exception:
            log.exception(f"Error scraping {request.target_url}")
            return ExtractionOutcome.failure(SERVER_ERROR)

        finally:
            await session.close()

    async def _annotate(self, handle: PageHandle) -> Optional[List[ExtractedElement]]:
        annotation = self.annotation_factory(handle.page)
        await annotation.install()
        if not await annotation.wait_until_finished():
            return None
        return annotation.selections

    async def _auto(self, handle: PageHandle, stored: List[SelectorEntry]) -> List[ExtractedElement]:
        heuristic = await extract_auto(handle.page)
        if not stored:
            return heuristic

        log.info(f"Merging {len(stored)} stored selectors with auto-scraped data")
        replayed = await replay(handle.page, stored, image_timeout=self.settings.IMAGE_SETTLE_MS)
        return merge_results(heuristic, replayed)

    def _persist(self, request: ExtractionRequest, content: List[ExtractedElement]):
        """Side-effect writes; failures are logged and never fail the request."""
        try:
            self.result_sink.insert(request.target_url, [el.to_dict() for el in content])
        except (PersistenceFailure, OSError, sqlite3.Error) as e:
            log.error(str(e))

        if request.mode is ExtractionMode.INTERACTIVE and self.settings.AUTO_SAVE_SELECTIONS:
            try:
                self.selector_store.save_elements(request.domain, content)
            except PersistenceFailure as e:
                log.error(str(e))
