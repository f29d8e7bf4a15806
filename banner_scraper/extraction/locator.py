"""
Locator derivation.

A locator is ``tag``, ``tag#id`` or ``tag.class1.class2`` - enough to find the
same logical element on a later visit of the same site. Ids win over classes
because they are assumed unique on the page. No uniqueness check is made:
replay takes the first match, so repeated class names or a reordered DOM can
resolve to a different element than the one that was annotated.
"""

from typing import Iterable, Optional


def derive_locator(tag: str, element_id: Optional[str] = None,
                   class_list: Iterable[str] = ()) -> str:
    """Build the locator for an element from its tag, id and class tokens."""
    locator = (tag or "").lower()
    if element_id:
        return f"{locator}#{element_id}"

    classes = [c for c in class_list if c and c.strip()]
    if classes:
        locator += "." + ".".join(classes)
    return locator


def derive_from_snapshot(snapshot: dict) -> str:
    """Locator for an element snapshot sent from the page (see ``SNAPSHOT_JS``)."""
    return derive_locator(
        snapshot.get("tag", ""),
        snapshot.get("id") or None,
        snapshot.get("classList") or (),
    )


# Serializes the parts of an element the host needs to classify it and read
# a value. Defines ``snapshotElement(el)``.
SNAPSHOT_JS = """
function snapshotElement(el) {
    const attr = (name) => el.getAttribute(name);
    const link = el.closest ? el.closest('a') : null;
    let backgroundImage = null;
    try {
        const bg = window.getComputedStyle(el).backgroundImage;
        if (bg && bg !== 'none') backgroundImage = bg.replace(/url\\(|\\)|"/g, '');
    } catch (e) {}
    return {
        tag: el.tagName.toLowerCase(),
        id: el.id || null,
        classList: Array.from(el.classList || []),
        className: typeof el.className === 'string' ? (el.className || null) : null,
        src: el.src || null,
        dataSrc: attr('data-src'),
        alt: attr('alt'),
        role: attr('role'),
        title: el.title || null,
        text: (el.innerText || '').trim(),
        href: el.href ? String(el.href).trim() : null,
        formaction: attr('formaction'),
        ancestorHref: link ? link.href : null,
        onclick: attr('onclick'),
        backgroundImage: backgroundImage,
    };
}
"""
