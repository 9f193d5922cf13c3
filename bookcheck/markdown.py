"""Markdown scanning for link destinations and heading anchors.

The scanner works in two passes. The block pass splits a chapter into lines and
classifies each one (prose, heading, code, HTML block, link definition, blank)
so that code and raw HTML never contribute links. The inline pass walks each prose block and
emits start/end events for links and images together with the character offset
of the link text, which is where a reader's cursor lands when jumping to it.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

_LINE_PATTERN = re.compile(r"[^\n]*\n|[^\n]+")
_FENCE_OPEN_PATTERN = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_LIST_ITEM_PATTERN = re.compile(r"^ {0,3}(?:[-+*]|\d{1,9}[.)])(?:[ \t]|$)")
_ATX_HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
_SETEXT_UNDERLINE_PATTERN = re.compile(r"^ {0,3}(?:=+|-+)[ \t]*$")
_DEFINITION_PATTERN = re.compile(
    r"^ {0,3}\[((?:[^\]\\]|\\.)+)\]:[ \t]*(?:<([^>\n]*)>|(\S+))"
    r"(?:[ \t]+(?:\"([^\"\n]*)\"|'([^'\n]*)'|\(([^)\n]*)\)))?[ \t]*$"
)
_AUTOLINK_PATTERN = re.compile(r"<([A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>]*)>")
_EMAIL_AUTOLINK_PATTERN = re.compile(
    r"<([A-Za-z0-9.!#$%&'*+/=?^_`{|}~\-]+@[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?)*)>"
)
_ESCAPE_PATTERN = re.compile(r"\\([!-/:-@\[-`{-~])")
_HEADING_ATTRIBUTE_PATTERN = re.compile(r"\s*\{([^{}]*)\}\s*$")
_HTML_ID_PATTERN = re.compile(
    r"<[A-Za-z][A-Za-z0-9\-]*\b[^>]*?\b(?:id|name)\s*=\s*(?:\"([^\"]+)\"|'([^']+)')"
)
_INLINE_LINK_PATTERN = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")

_HTML_BLOCK_TAGS = (
    "address|article|aside|base|basefont|blockquote|body|caption|center|col|colgroup|dd|"
    "details|dialog|dir|div|dl|dt|fieldset|figcaption|figure|footer|form|frame|frameset|"
    "h1|h2|h3|h4|h5|h6|head|header|hr|html|iframe|legend|li|link|main|menu|menuitem|nav|"
    "noframes|ol|optgroup|option|p|param|search|section|summary|table|tbody|td|tfoot|th|"
    "thead|title|tr|track|ul"
)
# (start, end) pairs; an end of None means the block runs until a blank line.
_HTML_BLOCK_RULES: Tuple[Tuple[re.Pattern, Optional[re.Pattern]], ...] = (
    (
        re.compile(r"^ {0,3}<(?:pre|script|style|textarea)(?:[ \t>]|$)", re.IGNORECASE),
        re.compile(r"</(?:pre|script|style|textarea)>", re.IGNORECASE),
    ),
    (re.compile(r"^ {0,3}<!--"), re.compile(r"-->")),
    (re.compile(r"^ {0,3}<\?"), re.compile(r"\?>")),
    (re.compile(r"^ {0,3}<![A-Za-z]"), re.compile(r">")),
    (re.compile(r"^ {0,3}<!\[CDATA\["), re.compile(r"\]\]>")),
    (
        re.compile(rf"^ {{0,3}}</?(?:{_HTML_BLOCK_TAGS})(?:[ \t>]|/>|$)", re.IGNORECASE),
        None,
    ),
)
_HTML_TAG_LINE_PATTERN = re.compile(
    r"^ {0,3}(?:<[A-Za-z][A-Za-z0-9\-]*"
    r"(?:[ \t]+[A-Za-z_:][A-Za-z0-9_.:\-]*"
    r"(?:[ \t]*=[ \t]*(?:[^\s\"'=<>`]+|'[^']*'|\"[^\"]*\"))?)*"
    r"[ \t]*/?>|</[A-Za-z][A-Za-z0-9\-]*[ \t]*>)[ \t]*$"
)


@dataclass(frozen=True)
class Event:
    """Structural event emitted while scanning a Markdown document.

    ``offset`` is a character index into the scanned text: the first character
    of the link text for start events and the character after the closing
    delimiter for end events.
    """

    kind: str
    tag: str
    destination: str
    offset: int
    title: str = ""
    text: str = ""


@dataclass
class _Line:
    start: int
    text: str
    kind: str


@dataclass
class _BlockScan:
    lines: List[_Line] = field(default_factory=list)
    definitions: Dict[str, Tuple[str, str]] = field(default_factory=dict)

    def blocks(self) -> Iterator[Tuple[int, int]]:
        """Yield ``(start, end)`` character ranges of prose blocks."""
        start: Optional[int] = None
        end = 0
        for line in self.lines:
            if line.kind == "text":
                if start is None:
                    start = line.start
                end = line.start + len(line.text)
                continue
            if start is not None:
                yield start, end
                start = None
            if line.kind == "heading":
                yield line.start, line.start + len(line.text)
        if start is not None:
            yield start, end


def tokenize(content: str) -> Iterator[Event]:
    """Yield link and image events for ``content`` in document order."""
    scan = _scan_blocks(content)
    for start, end in scan.blocks():
        scanner = _InlineScanner(content, scan.definitions)
        yield from scanner.scan(start, end)


def collect_anchors(content: str) -> Set[str]:
    """Return every anchor a reader can jump to inside ``content``.

    Anchors come from heading ids (generated with :func:`normalize_id` and
    de-duplicated with ``-1``, ``-2`` suffixes), explicit ``{#id}`` heading
    attributes, and ``id``/``name`` attributes of inline HTML.
    """
    scan = _scan_blocks(content)
    anchors: Set[str] = set()
    counts: Dict[str, int] = {}
    paragraph: List[str] = []

    def _add_heading(raw: str) -> None:
        explicit, text = _split_heading_attributes(raw)
        if explicit:
            anchors.add(explicit)
            return
        base = normalize_id(_heading_text(text))
        seen = counts.get(base, 0)
        counts[base] = seen + 1
        anchors.add(base if seen == 0 else f"{base}-{seen}")

    for line in scan.lines:
        if line.kind in {"code", "definition"}:
            paragraph = []
            continue
        if line.kind == "blank":
            paragraph = []
            continue
        for match in _HTML_ID_PATTERN.finditer(line.text):
            anchors.add(match.group(1) or match.group(2))
        if line.kind == "html":
            paragraph = []
            continue
        if line.kind == "heading":
            match = _ATX_HEADING_PATTERN.match(line.text.rstrip("\r"))
            if match:
                _add_heading(match.group(2) or "")
            paragraph = []
            continue
        stripped = line.text.strip()
        if (
            paragraph
            and _SETEXT_UNDERLINE_PATTERN.match(line.text.rstrip("\r"))
            and not _LIST_ITEM_PATTERN.match(paragraph[0])
        ):
            _add_heading(" ".join(part.strip() for part in paragraph))
            paragraph = []
            continue
        paragraph.append(stripped)
    return anchors


def normalize_id(text: str) -> str:
    """Turn heading text into an HTML id.

    Alphanumerics, ``_`` and ``-`` are kept (ASCII letters lowercased),
    whitespace becomes ``-`` and every other character is dropped.
    """
    chars: List[str] = []
    for char in text:
        if char.isalnum() or char in "_-":
            chars.append(char.lower() if char.isascii() else char)
        elif char.isspace():
            chars.append("-")
    return "".join(chars)


def unescape(value: str) -> str:
    """Resolve backslash escapes and HTML entities in a link destination."""
    return html.unescape(_ESCAPE_PATTERN.sub(r"\1", value))


def normalize_label(label: str) -> str:
    return " ".join(label.split()).casefold()


def _split_heading_attributes(text: str) -> Tuple[Optional[str], str]:
    match = _HEADING_ATTRIBUTE_PATTERN.search(text)
    if not match:
        return None, text
    for part in match.group(1).split():
        if part.startswith("#") and len(part) > 1:
            return part[1:], text[: match.start()]
    return None, text[: match.start()]


def _heading_text(text: str) -> str:
    cleaned = _INLINE_LINK_PATTERN.sub(r"\1", text)
    cleaned = re.sub(r"<[^>]+>", "", cleaned)
    cleaned = cleaned.replace("`", "").replace("*", "")
    return html.unescape(_ESCAPE_PATTERN.sub(r"\1", cleaned)).strip()


def _indent_width(text: str) -> int:
    width = 0
    for char in text:
        if char == " ":
            width += 1
        elif char == "\t":
            width += 4 - (width % 4)
        else:
            break
    return width


def _match_html_block(line: str, prev_kind: str) -> Optional[Tuple[int, Optional[re.Pattern]]]:
    """Return where an HTML block opener ends and the pattern closing it.

    A bare tag on its own line only opens a block when it does not continue a
    paragraph.
    """
    for start, end in _HTML_BLOCK_RULES:
        match = start.match(line)
        if match:
            return match.end(), end
    if prev_kind != "text" and _HTML_TAG_LINE_PATTERN.match(line):
        return len(line), None
    return None


def _scan_blocks(content: str) -> _BlockScan:
    scan = _BlockScan()
    fence: Optional[str] = None
    html_end: Optional[re.Pattern] = None
    in_html = False
    in_list = False
    prev_kind = "blank"

    for match in _LINE_PATTERN.finditer(content):
        raw = match.group(0)
        text = raw[:-1] if raw.endswith("\n") else raw
        matchable = text.rstrip("\r")
        start = match.start()

        if in_html and (html_end is not None or matchable.strip()):
            scan.lines.append(_Line(start, text, "html"))
            if html_end is not None and html_end.search(matchable):
                in_html = False
            prev_kind = "html"
            continue
        in_html = False

        if fence is not None:
            closing = matchable.strip()
            if (
                _indent_width(matchable) < 4
                and closing
                and set(closing) == {fence[0]}
                and len(closing) >= len(fence)
            ):
                fence = None
            scan.lines.append(_Line(start, text, "code"))
            prev_kind = "code"
            continue

        if not matchable.strip():
            scan.lines.append(_Line(start, text, "blank"))
            prev_kind = "blank"
            continue

        indent = _indent_width(matchable)
        if indent >= 4 and prev_kind in {"blank", "code", "heading", "html"} and not in_list:
            kind = "code"
        else:
            fence_match = _FENCE_OPEN_PATTERN.match(matchable)
            definition = _DEFINITION_PATTERN.match(matchable)
            html_rule = _match_html_block(matchable, prev_kind)
            if fence_match and not (
                fence_match.group(1)[0] == "`" and "`" in matchable[fence_match.end():]
            ):
                fence = fence_match.group(1)
                kind = "code"
            elif html_rule is not None:
                opener, html_end = html_rule
                in_html = html_end is None or not html_end.search(matchable, opener)
                kind = "html"
            elif definition and prev_kind in {"blank", "definition", "heading", "html"}:
                label = normalize_label(definition.group(1))
                destination = definition.group(2) if definition.group(2) is not None else definition.group(3)
                title = next((group for group in definition.group(4, 5, 6) if group is not None), "")
                scan.definitions.setdefault(label, (unescape(destination), title))
                kind = "definition"
            elif _ATX_HEADING_PATTERN.match(matchable):
                kind = "heading"
            else:
                kind = "text"
                if _LIST_ITEM_PATTERN.match(matchable):
                    in_list = True
                elif indent == 0 and prev_kind == "blank":
                    in_list = False
        scan.lines.append(_Line(start, text, kind))
        prev_kind = kind
    return scan


class _InlineScanner:
    """Bracket-matching scanner over one prose block."""

    def __init__(self, content: str, definitions: Dict[str, Tuple[str, str]]) -> None:
        self.src = content
        self.definitions = definitions

    def scan(self, start: int, end: int) -> Iterator[Event]:
        src = self.src
        i = start
        while i < end:
            char = src[i]
            if char == "\\":
                i += 2
                continue
            if char == "`":
                i = self._skip_code_span(i, end)
                continue
            if src.startswith("<!--", i):
                close = src.find("-->", i + 4, end)
                i = end if close == -1 else close + 3
                continue
            if char == "<":
                autolink = self._match_autolink(i, end)
                if autolink is not None:
                    destination, close = autolink
                    yield Event("start", "link", destination, i + 1, text=src[i + 1 : close - 1])
                    yield Event("end", "link", destination, close)
                    i = close
                    continue
                i += 1
                continue
            if char == "!" and src.startswith("[", i + 1):
                tag, text_start = "image", i + 2
            elif char == "[":
                tag, text_start = "link", i + 1
            else:
                i += 1
                continue

            resolved = self._match_link(text_start, end)
            if resolved is None:
                i = text_start
                continue
            destination, title, text_end, after = resolved
            inner = list(self.scan(text_start, text_end))
            if tag == "link" and any(e.kind == "start" and e.tag == "link" for e in inner):
                # Links never nest; the outer brackets stay literal text.
                i = text_start
                continue
            yield Event(
                "start",
                tag,
                destination,
                text_start,
                title=title,
                text=src[text_start:text_end],
            )
            yield from inner
            yield Event("end", tag, destination, after)
            i = after

    def _match_link(self, text_start: int, end: int) -> Optional[Tuple[str, str, int, int]]:
        close = self._find_closing_bracket(text_start, end)
        if close == -1:
            return None
        src = self.src
        after = close + 1
        if after < end and src[after] == "(":
            inline = self._parse_inline_destination(after, end)
            if inline is not None:
                return inline[0], inline[1], close, inline[2]
        if after < end and src[after] == "[":
            label_close = src.find("]", after + 1, end)
            if label_close != -1 and "[" not in src[after + 1 : label_close]:
                label = src[after + 1 : label_close]
                key = normalize_label(label) or normalize_label(src[text_start:close])
                if key in self.definitions:
                    destination, title = self.definitions[key]
                    return destination, title, close, label_close + 1
                return None
        key = normalize_label(src[text_start:close])
        if key and key in self.definitions:
            destination, title = self.definitions[key]
            return destination, title, close, after
        return None

    def _find_closing_bracket(self, start: int, end: int) -> int:
        src = self.src
        depth = 1
        k = start
        while k < end:
            char = src[k]
            if char == "\\":
                k += 2
                continue
            if char == "`":
                k = self._skip_code_span(k, end)
                continue
            if char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
                if depth == 0:
                    return k
            k += 1
        return -1

    def _parse_inline_destination(self, paren: int, end: int) -> Optional[Tuple[str, str, int]]:
        src = self.src
        k = self._skip_whitespace(paren + 1, end)
        if k < end and src[k] == "<":
            close = k + 1
            while close < end and src[close] not in "<>\n":
                close += 2 if src[close] == "\\" else 1
            if close >= end or src[close] != ">":
                return None
            destination = src[k + 1 : close]
            k = close + 1
        else:
            begin = k
            depth = 0
            while k < end:
                char = src[k]
                if char == "\\" and k + 1 < end:
                    k += 2
                    continue
                if char.isspace() or ord(char) < 0x20:
                    break
                if char == "(":
                    depth += 1
                elif char == ")":
                    if depth == 0:
                        break
                    depth -= 1
                k += 1
            if depth != 0:
                return None
            destination = src[begin:k]

        before_title = k
        k = self._skip_whitespace(k, end)
        title = ""
        if k < end and src[k] in "\"'(" and k > before_title:
            closer = ")" if src[k] == "(" else src[k]
            close = k + 1
            while close < end and src[close] != closer:
                close += 2 if src[close] == "\\" else 1
            if close >= end:
                return None
            title = unescape(src[k + 1 : close])
            k = self._skip_whitespace(close + 1, end)
        if k >= end or src[k] != ")":
            return None
        return unescape(destination), title, k + 1

    def _skip_whitespace(self, k: int, end: int) -> int:
        newlines = 0
        while k < end and self.src[k] in " \t\r\n":
            if self.src[k] == "\n":
                newlines += 1
                if newlines > 1:
                    break
            k += 1
        return k

    def _skip_code_span(self, k: int, end: int) -> int:
        src = self.src
        run_end = k
        while run_end < end and src[run_end] == "`":
            run_end += 1
        fence = src[k:run_end]
        search = run_end
        while True:
            close = src.find(fence, search, end)
            if close == -1:
                return run_end
            close_end = close + len(fence)
            if close_end < end and src[close_end] == "`":
                search = close_end
                while search < end and src[search] == "`":
                    search += 1
                continue
            return close_end

    def _match_autolink(self, k: int, end: int) -> Optional[Tuple[str, int]]:
        match = _AUTOLINK_PATTERN.match(self.src, k, end)
        if match:
            return match.group(1), match.end()
        match = _EMAIL_AUTOLINK_PATTERN.match(self.src, k, end)
        if match:
            return f"mailto:{match.group(1)}", match.end()
        return None


__all__ = [
    "Event",
    "collect_anchors",
    "normalize_id",
    "normalize_label",
    "tokenize",
    "unescape",
]
