"""Unit tests for the bounded page snapshot and selector computation."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from browser_control.browser.snapshot import (
    MAX_ELEMENTS,
    MAX_LINK_TEXT,
    MAX_LINKS,
    MAX_TEXT_CHARS,
    ElementDescriptor,
    collect_snapshot,
    css_escape,
    css_selector_for,
)


# ---------------------------------------------------------------------------
# css_selector_for
# ---------------------------------------------------------------------------


class TestSelectorFor:
    def test_id_wins(self) -> None:
        el = ElementDescriptor(tag="button", id="submit", classes=["btn", "primary"])
        assert css_selector_for(el) == "#submit"

    def test_first_class_when_no_id(self) -> None:
        el = ElementDescriptor(tag="button", classes=["btn", "primary"])
        assert css_selector_for(el) == "button.btn"

    def test_bare_tag(self) -> None:
        assert css_selector_for(ElementDescriptor(tag="input")) == "input"

    def test_blank_classes_ignored(self) -> None:
        assert css_selector_for(ElementDescriptor(tag="a", classes=["", "  "])) == "a"

    def test_id_is_escaped(self) -> None:
        el = ElementDescriptor(tag="input", id="user:name")
        assert css_selector_for(el) == "#user\\:name"

    @pytest.mark.parametrize(
        ("ident", "expected"),
        [
            ("plain-id_1", "plain-id_1"),
            ("1st", "\\31 st"),
            ("a.b", "a\\.b"),
            ("with space", "with\\ space"),
        ],
    )
    def test_css_escape(self, ident: str, expected: str) -> None:
        assert css_escape(ident) == expected

    def test_from_dict_accepts_class_string(self) -> None:
        el = ElementDescriptor.from_dict({"tag": "DIV", "classes": "card wide"})
        assert el.tag == "div"
        assert css_selector_for(el) == "div.card"


# ---------------------------------------------------------------------------
# collect_snapshot
# ---------------------------------------------------------------------------


def _page(payload: dict) -> MagicMock:
    page = MagicMock()
    page.url = "https://example.test/"
    page.title.return_value = "Example"
    page.evaluate.return_value = payload
    return page


class TestCollectSnapshot:
    def test_basic_shape(self) -> None:
        page = _page(
            {
                "text": "Hello world",
                "links": [{"text": "Docs", "href": "https://example.test/docs"}],
                "elements": [
                    {"tag": "input", "id": "q", "classes": [], "type": "search", "text": ""},
                    {"tag": "button", "id": "", "classes": ["go"], "type": "submit", "text": "Go"},
                ],
            }
        )

        snap = collect_snapshot(page)

        assert snap["url"] == "https://example.test/"
        assert snap["title"] == "Example"
        assert snap["content"] == "Hello world"
        assert snap["links"] == [{"text": "Docs", "href": "https://example.test/docs"}]
        assert [e["selector"] for e in snap["elements"]] == ["#q", "button.go"]
        assert snap["elements"][0]["type"] == "search"

    def test_limits_enforced_even_if_page_returns_more(self) -> None:
        page = _page(
            {
                "text": "x" * (MAX_TEXT_CHARS * 2),
                "links": [{"text": "y" * 500, "href": f"/l{i}"} for i in range(50)],
                "elements": [{"tag": "button", "id": f"b{i}"} for i in range(30)],
            }
        )

        snap = collect_snapshot(page)

        assert len(snap["content"]) == MAX_TEXT_CHARS
        assert len(snap["links"]) == MAX_LINKS
        assert all(len(link["text"]) <= MAX_LINK_TEXT for link in snap["links"])
        assert len(snap["elements"]) == MAX_ELEMENTS

    def test_limits_passed_to_page_script(self) -> None:
        page = _page({})
        collect_snapshot(page)

        limits = page.evaluate.call_args.args[1]
        assert limits["text"] == MAX_TEXT_CHARS
        assert limits["links"] == MAX_LINKS
        assert limits["elements"] == MAX_ELEMENTS

    def test_empty_page(self) -> None:
        snap = collect_snapshot(_page(None))
        assert snap["content"] == ""
        assert snap["links"] == []
        assert snap["elements"] == []
