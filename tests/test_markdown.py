"""Tests for bookcheck.markdown."""

from __future__ import annotations

from bookcheck.markdown import collect_anchors, normalize_id, tokenize


def _destinations(content: str) -> list[str]:
    return [event.destination for event in tokenize(content) if event.kind == "start"]


def test_tokenize_emits_start_and_end_events_in_order() -> None:
    events = list(tokenize("See [a](x.md) and ![b](y.png)"))

    assert [(e.kind, e.tag, e.destination) for e in events] == [
        ("start", "link", "x.md"),
        ("end", "link", "x.md"),
        ("start", "image", "y.png"),
        ("end", "image", "y.png"),
    ]
    assert [e.offset for e in events if e.kind == "start"] == [5, 20]
    assert events[0].text == "a"


def test_tokenize_ignores_code() -> None:
    content = """Intro [real](real.md)

```text
[fake](fake.md)
```

Use `[also fake](nope.md)` inline.

    [indented](code.md)
"""
    assert _destinations(content) == ["real.md"]


def test_tokenize_treats_indented_block_after_heading_as_code() -> None:
    assert _destinations("# Title\n    [a](code.md)\n") == []
    assert _destinations("Para\n    [lazy](text.md)\n") == ["text.md"]


def test_tokenize_skips_html_blocks() -> None:
    assert _destinations("<div>\n[a](html.md)\n</div>\n") == []
    assert _destinations("<div>\n[a](html.md)\n\n[b](after.md)\n") == ["after.md"]
    assert _destinations("<pre>\n[a](x.md)\n\n[b](y.md)\n</pre>\n[c](z.md)\n") == ["z.md"]
    assert _destinations("<!--\n[hidden](x.md)\n-->\n[shown](y.md)\n") == ["y.md"]
    assert _destinations("<span>\n[a](tag.md)\n") == []


def test_tokenize_inline_html_does_not_open_a_block() -> None:
    assert _destinations("Text\n<span>\n[a](kept.md)\n") == ["kept.md"]
    assert _destinations("<span>inline</span> [a](kept.md)\n") == ["kept.md"]


def test_tokenize_keeps_indented_list_continuations() -> None:
    content = "- item\n\n    continued [here](here.md)\n"
    assert _destinations(content) == ["here.md"]


def test_tokenize_resolves_reference_links() -> None:
    content = (
        "See [the guide][guide], [Guide][] and [guide].\n"
        "Also [missing][nope] and [plain words].\n"
        "\n"
        '[guide]: guide.md "Title"\n'
    )
    events = [event for event in tokenize(content) if event.kind == "start"]

    assert [event.destination for event in events] == ["guide.md", "guide.md", "guide.md"]
    assert all(event.title == "Title" for event in events)


def test_tokenize_handles_autolinks() -> None:
    events = [e for e in tokenize("<https://example.com> and <me@example.com>") if e.kind == "start"]

    assert [e.destination for e in events] == ["https://example.com", "mailto:me@example.com"]
    assert [e.offset for e in events] == [1, 27]


def test_tokenize_reports_images_nested_in_links() -> None:
    events = [e for e in tokenize("[![badge](b.svg)](https://ci.example)") if e.kind == "start"]

    assert [(e.tag, e.destination, e.offset) for e in events] == [
        ("link", "https://ci.example", 1),
        ("image", "b.svg", 3),
    ]


def test_tokenize_drops_links_containing_links() -> None:
    events = [e for e in tokenize("[[inner](b.md)](c.md)") if e.kind == "start"]

    assert [(e.destination, e.offset) for e in events] == [("b.md", 2)]
    assert _destinations("[see <https://example.com>](c.md)") == ["https://example.com"]


def test_tokenize_destination_forms() -> None:
    assert _destinations("[a](<my file.md>)") == ["my file.md"]
    assert _destinations("[w](https://en.wikipedia.org/wiki/Rust_(language))") == [
        "https://en.wikipedia.org/wiki/Rust_(language)"
    ]
    titled = [e for e in tokenize('[a](b.md "Hover")') if e.kind == "start"]
    assert titled[0].title == "Hover"
    assert _destinations(r"[a](b\_c.md)") == ["b_c.md"]


def test_tokenize_skips_malformed_and_hidden_markup() -> None:
    assert _destinations(r"\[not](a link)") == []
    assert _destinations("<!-- [x](y.md) -->") == []
    assert _destinations("[a\n\nb](c.md)") == []
    assert _destinations("[unclosed](nope.md") == []
    assert _destinations("") == []


def test_collect_anchors_covers_headings_and_html_ids() -> None:
    content = """# Hello World

## Hello World

Setext Title
============

### With `code` and [link](x.md)

<a id="custom"></a>

<div id="block">
[not](scanned.md)
</div>

## Renamed {#explicit}
"""
    assert collect_anchors(content) == {
        "hello-world",
        "hello-world-1",
        "setext-title",
        "with-code-and-link",
        "custom",
        "block",
        "explicit",
    }


def test_collect_anchors_ignores_code_blocks() -> None:
    assert collect_anchors("```\n# not a heading\n```\n") == set()


def test_normalize_id() -> None:
    assert normalize_id("Build & Test") == "build--test"
    assert normalize_id("Hello, World!") == "hello-world"
    assert normalize_id("snake_case-id") == "snake_case-id"
    assert normalize_id("Café Menu") == "café-menu"
