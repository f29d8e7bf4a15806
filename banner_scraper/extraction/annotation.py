"""
Interactive annotation.

A small state machine is injected into the controlled page:

    Idle -> WelcomeShown -> AwaitingSelection -> CategoryMenuOpen
         -> AwaitingSelection | Finished

The page and the host talk over one Playwright binding. Every accepted
click is sent to the host as a discrete ``selection`` event; the host
derives the locator, reads the value and answers with the finished element
(or ``null`` to reject it). "Done" is a ``finish`` event that the host only
accepts once at least one element has been collected. The host-side list
built from those events is the result; the in-page list is private to the
state machine and exists only to feed the live ``postMessage`` preview.
"""

import asyncio
import json
from typing import List, Optional

from playwright.async_api import Page

from banner_scraper.logger import get_logger
from banner_scraper.models import Category, ElementKind, ElementValue, ExtractedElement
from banner_scraper.extraction.locator import SNAPSHOT_JS, derive_from_snapshot

log = get_logger('annotation')

BINDING_NAME = '__bannerScraperEmit'
NO_TEXT = "No text"
NO_ALT = "No alt text"
NO_TEXT_AVAILABLE = "No text available"


def extract_value(kind: ElementKind, snapshot: dict) -> Optional[ElementValue]:
    """
    Read the value of an annotated element. One rule per element kind.

    Returns None when the element has nothing worth keeping (an image
    without any source).
    """
    if kind is ElementKind.IMAGE:
        src = snapshot.get("src") or snapshot.get("dataSrc")
        if not src:
            return None
        return {
            "src": src,
            "alt": snapshot.get("alt") or NO_ALT,
            "role": snapshot.get("role"),
            "class": snapshot.get("className"),
            "id": snapshot.get("id"),
        }

    if kind is ElementKind.BUTTON:
        return {
            "text": snapshot.get("text") or NO_TEXT,
            "href": snapshot.get("formaction") or snapshot.get("ancestorHref"),
            "onclick": snapshot.get("onclick"),
            "class": snapshot.get("className"),
            "id": snapshot.get("id"),
        }

    if kind is ElementKind.LINK:
        return {
            "text": snapshot.get("text") or NO_TEXT,
            "href": snapshot.get("href"),
            "class": snapshot.get("className"),
            "id": snapshot.get("id"),
        }

    text = (snapshot.get("text") or snapshot.get("title")
            or snapshot.get("alt") or NO_TEXT_AVAILABLE)
    if snapshot.get("backgroundImage"):
        return {"backgroundImage": snapshot["backgroundImage"], "text": text}
    return text


def build_selection(category: Category, snapshot: dict) -> Optional[ExtractedElement]:
    """Turn a clicked element snapshot into an ExtractedElement, or None."""
    kind = ElementKind.from_tag(snapshot.get("tag", ""))
    value = extract_value(kind, snapshot)
    if value is None:
        return None
    return ExtractedElement(category=category, value=value,
                            locator=derive_from_snapshot(snapshot))


ANNOTATOR_JS = """
(config) => {
    const root = document.documentElement;
    if (root.hasAttribute('data-banner-annotator')) return false;
    root.setAttribute('data-banner-annotator', 'on');

    const emit = window[config.binding];
    const UI_CLASS = 'banner-scraper-ui';
    const PASS_THROUGH = ['INPUT', 'TEXTAREA', 'SELECT', 'BUTTON', 'A'];
    %(helpers)s

    let state = 'Idle';
    let target = null;
    const accepted = (config.seed || []).slice();

    function ui(tag, styles, text) {
        const el = document.createElement(tag);
        el.className = UI_CLASS;
        Object.assign(el.style, styles);
        if (text) el.innerText = text;
        return el;
    }

    const panelStyle = {
        position: 'fixed', top: '50%%', left: '50%%',
        transform: 'translate(-50%%, -50%%)', background: 'white',
        padding: '20px', borderRadius: '10px', width: '400px',
        boxShadow: '0px 4px 8px rgba(0,0,0,0.3)', textAlign: 'center',
        fontSize: '16px', fontFamily: 'Arial, sans-serif', color: '#222',
    };
    const buttonStyle = {
        padding: '8px 12px', cursor: 'pointer', border: 'none',
        borderRadius: '5px', background: '#007BFF', color: 'white',
        fontSize: '14px', flex: '1 1 45%%',
    };

    // Warning toast
    const toast = ui('div', {
        position: 'fixed', bottom: '20px', left: '50%%',
        transform: 'translateX(-50%%)', background: '#DC3545', color: 'white',
        padding: '10px 16px', borderRadius: '5px', zIndex: '10006',
        display: 'none', fontFamily: 'Arial, sans-serif',
    });
    document.body.appendChild(toast);
    function warn(message) {
        toast.innerText = message;
        toast.style.display = 'block';
        setTimeout(() => { toast.style.display = 'none'; }, 3000);
    }

    // Category menu
    const menu = ui('div', Object.assign({}, panelStyle, {
        zIndex: '10002', display: 'none', flexWrap: 'wrap',
        justifyContent: 'center', gap: '10px', padding: '15px',
    }));
    menu.appendChild(ui('p', {fontWeight: 'bold', width: '100%%', margin: '0 0 10px'},
                        'Select a category for this element:'));
    config.categories.forEach(cat => {
        const btn = ui('button', buttonStyle, cat.label);
        btn.addEventListener('click', () => select(cat.value));
        menu.appendChild(btn);
    });
    const ignore = ui('button', Object.assign({}, buttonStyle,
                      {background: '#DC3545', flex: '1 1 100%%'}), 'Ignore');
    ignore.addEventListener('click', () => {
        if (target) target.style.outline = '';
        closeMenu();
    });
    menu.appendChild(ignore);
    document.body.appendChild(menu);

    function openMenu(el) {
        if (target && target !== el) target.style.outline = '';
        target = el;
        target.style.outline = '2px dashed blue';
        menu.style.display = 'flex';
        state = 'CategoryMenuOpen';
    }

    function closeMenu() {
        menu.style.display = 'none';
        target = null;
        state = 'AwaitingSelection';
    }

    async function select(category) {
        const el = target;
        if (!el) return;
        closeMenu();
        const element = await emit({kind: 'selection', category: category,
                                    snapshot: snapshotElement(el)});
        if (!element) {
            el.style.outline = '';
            warn('Nothing to capture here.');
            return;
        }
        accepted.push(element);
        window.postMessage({type: 'scraper-data', payload: accepted.slice()}, '*');
    }

    document.addEventListener('click', (event) => {
        const el = event.target;
        if (!(el instanceof Element)) return;
        if (el.closest('.' + UI_CLASS)) return;
        if (PASS_THROUGH.includes(el.tagName)) return;
        if (state !== 'AwaitingSelection' && state !== 'CategoryMenuOpen') return;

        event.preventDefault();
        event.stopPropagation();
        openMenu(el);
    }, true);

    // Done
    const done = ui('button', Object.assign({}, buttonStyle, {
        position: 'fixed', top: '15px', left: '50%%', transform: 'translateX(-50%%)',
        padding: '10px 20px', zIndex: '10002', background: '#28a745',
        fontSize: '16px', flex: 'none',
    }), 'Done');
    done.addEventListener('click', async () => {
        if (state === 'Finished') return;
        if (accepted.length === 0) {
            warn('No elements selected.');
            return;
        }
        const ok = await emit({kind: 'finish'});
        if (!ok) {
            warn('No elements selected.');
            return;
        }
        state = 'Finished';
        if (target) target.style.outline = '';
        menu.style.display = 'none';
        done.setAttribute('data-done', 'true');
        done.innerText = 'Finished';
    });
    document.body.appendChild(done);

    // Welcome
    if (config.showWelcome) {
        const welcome = ui('div', Object.assign({}, panelStyle, {zIndex: '10005'}));
        welcome.appendChild(ui('h3', {}, 'Select the content for your banner'));
        welcome.appendChild(ui('p', {fontSize: '14px', textAlign: 'left'},
            'Click an element (text, image, price...), pick one category from the menu, ' +
            'and repeat for each element. Press Done when finished.'));
        const start = ui('button', Object.assign({}, buttonStyle, {flex: 'none'}), 'Start');
        start.addEventListener('click', () => {
            welcome.remove();
            state = 'AwaitingSelection';
        });
        welcome.appendChild(start);
        document.body.appendChild(welcome);
        state = 'WelcomeShown';
    } else {
        state = 'AwaitingSelection';
    }
    return true;
}
""" % {"helpers": SNAPSHOT_JS}


class AnnotationSession:
    """
    Host side of an interactive annotation run on one page.

    Usage:
        session = AnnotationSession(page)
        await session.install()
        if await session.wait_until_finished():
            elements = session.selections
    """

    def __init__(self, page: Page):
        self._page = page
        self._selections: List[ExtractedElement] = []
        self._finished = asyncio.Event()
        self._completed = False
        self._installed = False
        self._pending = set()

    @property
    def selections(self) -> List[ExtractedElement]:
        return list(self._selections)

    @property
    def completed(self) -> bool:
        return self._completed

    async def install(self):
        """Register the event channel and inject the annotator UI."""
        await self._page.expose_binding(BINDING_NAME, self._on_binding)
        self._page.on('close', self._on_page_closed)
        self._page.on('domcontentloaded', self._on_navigated)
        await self._inject(show_welcome=True)
        self._installed = True
        log.info("Annotation UI injected, waiting for user selections")

    async def wait_until_finished(self) -> bool:
        """
        Block until the user presses Done. There is no timeout.

        Returns:
            True if the user finished, False if the page went away first
        """
        await self._finished.wait()
        return self._completed

    def handle_event(self, event: dict):
        """
        Apply one event from the page.

        Returns the value the page receives: the accepted element as a dict
        (or None) for ``selection``, a bool for ``finish``.
        """
        kind = event.get("kind") if isinstance(event, dict) else None

        if kind == "selection":
            try:
                category = Category(event.get("category"))
            except ValueError:
                log.warning(f"Unknown category from page: {event.get('category')!r}")
                return None
            element = build_selection(category, event.get("snapshot") or {})
            if element is None:
                log.warning(f"Skipping {category.value} element with nothing to capture")
                return None
            self._selections.append(element)
            log.info(f"Saved selection: {json.dumps(element.to_dict())[:200]}")
            return element.to_dict()

        if kind == "finish":
            if not self._selections:
                log.warning("Finish rejected: no elements selected")
                return False
            self._completed = True
            self._finished.set()
            log.info(f"User finished selection with {len(self._selections)} elements")
            return True

        log.warning(f"Ignoring unknown annotation event: {event!r}")
        return None

    def _on_binding(self, source, event):
        return self.handle_event(event)

    def _on_page_closed(self, *args):
        if not self._finished.is_set():
            log.warning("Page closed before annotation finished")
            self._finished.set()

    def _on_navigated(self, *args):
        # A followed link drops the injected UI; bring it back with the same selections
        if self._installed and not self._finished.is_set():
            task = asyncio.ensure_future(self._reinject())
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _reinject(self):
        try:
            await self._inject(show_welcome=False)
        except Exception as e:
            log.warning(f"Could not re-inject annotation UI after navigation: {e}")

    async def _inject(self, show_welcome: bool):
        await self._page.evaluate(ANNOTATOR_JS, {
            "binding": BINDING_NAME,
            "categories": [
                {"value": c.value, "label": c.value.upper() if c is Category.CTA else c.value.capitalize()}
                for c in Category.annotatable()
            ],
            "showWelcome": show_welcome,
            "seed": [el.to_dict() for el in self._selections],
        })
