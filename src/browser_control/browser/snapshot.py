"""Bounded page digest for downstream language-model consumption.

A snapshot is deliberately truncated: the first ``MAX_TEXT_CHARS`` of
rendered text, up to ``MAX_LINKS`` links and up to ``MAX_ELEMENTS`` visible
interactive elements, each with a best-effort CSS selector. Limits are
re-applied in Python so a misbehaving page script cannot exceed them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger(__name__)

MAX_TEXT_CHARS = 5000
MAX_LINKS = 20
MAX_LINK_TEXT = 100
MAX_ELEMENTS = 10
MAX_ELEMENT_TEXT = 100

# Returns raw descriptors only; selectors are computed in Python.
_EXTRACT_JS = """
(limits) => {
    function isVisible(el) {
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        return (
            rect.width > 0 &&
            rect.height > 0 &&
            style.display !== 'none' &&
            style.visibility !== 'hidden' &&
            style.opacity !== '0'
        );
    }

    const body = document.body;
    const text = ((body && body.innerText) || '').substring(0, limits.text);

    const links = Array.from(document.querySelectorAll('a[href]'))
        .slice(0, limits.links)
        .map(a => ({ text: (a.innerText || '').substring(0, limits.linkText), href: a.href }));

    const elements = [];
    const candidates = document.querySelectorAll(
        'button, input:not([type="hidden"]), textarea, select, [role="button"]'
    );
    for (const el of candidates) {
        if (elements.length >= limits.elements) break;
        if (!isVisible(el)) continue;
        elements.push({
            tag: el.tagName.toLowerCase(),
            id: el.id || '',
            classes: Array.from(el.classList),
            type: el.getAttribute('type') || '',
            name: el.getAttribute('name') || '',
            placeholder: el.getAttribute('placeholder') || '',
            text: (el.innerText || el.value || '').trim().substring(0, limits.elementText),
        });
    }

    return { text, links, elements };
}
"""

_CSS_IDENT_SAFE = re.compile(r"[A-Za-z0-9_-]")


@dataclass
class ElementDescriptor:
    """Minimal description of a DOM element, enough to build a selector."""

    tag: str
    id: str = ""
    classes: list[str] = field(default_factory=list)
    type: str = ""
    name: str = ""
    placeholder: str = ""
    text: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ElementDescriptor:
        classes = raw.get("classes") or []
        if isinstance(classes, str):
            classes = classes.split()
        return cls(
            tag=str(raw.get("tag") or "").lower(),
            id=str(raw.get("id") or ""),
            classes=[str(c) for c in classes],
            type=str(raw.get("type") or ""),
            name=str(raw.get("name") or ""),
            placeholder=str(raw.get("placeholder") or ""),
            text=str(raw.get("text") or "")[:MAX_ELEMENT_TEXT],
        )


def css_escape(ident: str) -> str:
    """Escape *ident* for use as a CSS identifier (like ``CSS.escape``)."""
    out: list[str] = []
    for i, ch in enumerate(ident):
        if ch.isdigit() and (i == 0 or (i == 1 and ident[0] == "-")):
            out.append(f"\\{ord(ch):x} ")
        elif _CSS_IDENT_SAFE.match(ch) or ord(ch) >= 0x80:
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


def css_selector_for(element: ElementDescriptor) -> str:
    """Best-effort selector: ``#id``, then ``tag.firstClass``, then ``tag``."""
    tag = element.tag or "*"
    if element.id:
        return "#" + css_escape(element.id)
    first_class = next((c for c in element.classes if c.strip()), "")
    if first_class:
        return f"{tag}.{css_escape(first_class.strip())}"
    return tag


def collect_snapshot(page: Page) -> dict[str, Any]:
    """Build the bounded snapshot for the current page.

    Args:
        page: Playwright ``Page`` object.

    Returns:
        Dict with ``url``, ``title``, ``content``, ``links`` and ``elements``.
    """
    raw = page.evaluate(
        _EXTRACT_JS,
        {
            "text": MAX_TEXT_CHARS,
            "links": MAX_LINKS,
            "linkText": MAX_LINK_TEXT,
            "elements": MAX_ELEMENTS,
            "elementText": MAX_ELEMENT_TEXT,
        },
    ) or {}

    links = [
        {"text": str(link.get("text") or "")[:MAX_LINK_TEXT], "href": str(link.get("href") or "")}
        for link in (raw.get("links") or [])[:MAX_LINKS]
    ]

    elements = []
    for item in (raw.get("elements") or [])[:MAX_ELEMENTS]:
        desc = ElementDescriptor.from_dict(item)
        entry = {"tag": desc.tag, "selector": css_selector_for(desc), "text": desc.text}
        if desc.type:
            entry["type"] = desc.type
        if desc.name:
            entry["name"] = desc.name
        if desc.placeholder:
            entry["placeholder"] = desc.placeholder
        elements.append(entry)

    content = str(raw.get("text") or "")[:MAX_TEXT_CHARS]
    logger.debug("Snapshot: %d chars, %d links, %d elements", len(content), len(links), len(elements))

    return {
        "url": page.url,
        "title": page.title(),
        "content": content,
        "links": links,
        "elements": elements,
    }
