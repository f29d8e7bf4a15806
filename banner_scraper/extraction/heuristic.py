"""
Heuristic extraction for auto mode.

Picks one text block, one image and one button with plain DOM queries. The
entries carry no locator; they are a best-effort preview, not something to
replay on the next visit.
"""

from typing import List

from playwright.async_api import Error as PlaywrightError, Page

from banner_scraper.logger import get_logger
from banner_scraper.models import Category, ExtractedElement

log = get_logger('heuristic')

TEXT_LIMIT = 500
NO_VISIBLE_CONTENT = "No visible content available"
NO_IMAGES = "No images found"
NO_BUTTONS = "No buttons found"
NO_BODY = "No body content found"
AUTO_FAILED = "Auto-scraping failed"

PAGE_FACTS_JS = """
() => {
    if (!document.body) return {hasBody: false};
    const img = document.querySelector('img');
    const button = document.querySelector('button');
    return {
        hasBody: true,
        text: document.body.innerText || '',
        imageSrc: img ? img.src : null,
        buttonText: button ? button.innerText : null,
    };
}
"""


def build_auto_elements(facts: dict) -> List[ExtractedElement]:
    """Turn raw page facts into the text / image / button triple."""
    if not facts or not facts.get("hasBody"):
        return [ExtractedElement(category=Category.ERROR, value=NO_BODY)]

    text = " ".join((facts.get("text") or "").split())[:TEXT_LIMIT]
    button = (facts.get("buttonText") or "").strip()

    return [
        ExtractedElement(category=Category.TEXT, value=text or NO_VISIBLE_CONTENT),
        ExtractedElement(category=Category.IMAGE, value=facts.get("imageSrc") or NO_IMAGES),
        ExtractedElement(category=Category.BUTTON, value=button or NO_BUTTONS),
    ]


async def extract_auto(page: Page) -> List[ExtractedElement]:
    """Run the heuristic pass on an open page."""
    try:
        facts = await page.evaluate(PAGE_FACTS_JS)
    except PlaywrightError as e:
        log.error(f"Error auto-scraping: {e}")
        return [ExtractedElement(category=Category.ERROR, value=AUTO_FAILED)]

    elements = build_auto_elements(facts)
    log.info(f"Auto-classified {len(elements)} elements")
    return elements
