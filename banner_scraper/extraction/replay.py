"""
Replay of stored selectors.

Re-resolves each learned locator on the current page and reads its current
value. A locator that matches nothing is skipped without a trace in the
result; the site may simply have changed since it was annotated.
"""

from typing import List

from playwright.async_api import Page, Error as PlaywrightError

from banner_scraper.logger import get_logger
from banner_scraper.models import Category, ExtractedElement, SelectorEntry
from banner_scraper.extraction.annotation import NO_ALT

log = get_logger('replay')

NO_CONTENT = "No content available"

IMAGE_RECORD_JS = """
(el) => ({
    src: el.src || el.getAttribute('data-src') || null,
    alt: el.getAttribute('alt'),
    role: el.getAttribute('role'),
    class: typeof el.className === 'string' ? (el.className || null) : null,
    id: el.id || null,
})
"""

# Resolves once every pending image has loaded or errored, or after timeoutMs
PENDING_IMAGES_JS = """
async (timeoutMs) => {
    const pending = Array.from(document.querySelectorAll('img'))
        .filter(img => !img.complete)
        .map(img => new Promise(resolve => {
            img.addEventListener('load', resolve, {once: true});
            img.addEventListener('error', resolve, {once: true});
        }));
    const timeout = new Promise(resolve => setTimeout(resolve, timeoutMs));
    await Promise.race([Promise.all(pending), timeout]);
    return pending.length;
}
"""


async def wait_for_pending_images(page: Page, timeout: int) -> None:
    try:
        pending = await page.evaluate(PENDING_IMAGES_JS, timeout)
        log.debug(f"Waited on {pending} pending images")
    except PlaywrightError as e:
        log.warning(f"Image wait failed, continuing anyway: {e}")


async def extract_one(page: Page, entry: SelectorEntry):
    """
    Read the current value behind one stored locator.

    Returns:
        ExtractedElement, or None if the locator matches nothing or an
        image has no source
    """
    handle = await page.query_selector(entry.locator)
    if handle is None:
        log.debug(f"No match for {entry.locator}")
        return None

    if entry.category is Category.IMAGE:
        record = await handle.evaluate(IMAGE_RECORD_JS)
        if not record or not record.get("src"):
            log.warning(f"Skipping image with no source: {entry.locator}")
            return None
        record["alt"] = record.get("alt") or NO_ALT
        return ExtractedElement(category=entry.category, value=record, locator=entry.locator)

    text = ((await handle.text_content()) or "").strip()
    return ExtractedElement(category=entry.category, value=text or NO_CONTENT,
                            locator=entry.locator)


async def replay(page: Page, selector_set: List[SelectorEntry],
                 image_timeout: int = 10000) -> List[ExtractedElement]:
    """Extract the current value for every stored locator that still resolves."""
    if not selector_set:
        return []

    await wait_for_pending_images(page, image_timeout)

    extracted = []
    for entry in selector_set:
        try:
            element = await extract_one(page, entry)
        except PlaywrightError as e:
            log.error(f"Failed to extract {entry.locator}: {e}")
            continue
        if element is not None:
            extracted.append(element)

    log.info(f"Replayed {len(extracted)}/{len(selector_set)} stored selectors")
    return extracted
