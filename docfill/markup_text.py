# markup_text.py - Visible Text Projection of WordprocessingML
# Walks serialized markup once, skipping tags and decoding entities, and keeps
# for every visible character the markup span it came from

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

# Tags that contribute a visible character to the projection
PARAGRAPH_END_TAGS = ("</w:p>",)
EMPTY_PARAGRAPH_RE = re.compile(r"^<w:p(?:\s[^>]*)?/>$")
# Tab stop definitions (<w:tabs><w:tab w:pos=.../>) are not visible characters
TAB_TAG_RE = re.compile(r"^<w:(?:tab|ptab)\b(?![^>]*\bw:pos=)[^>]*/>$")
BREAK_TAG_RE = re.compile(r"^<w:(?:br|cr)\b[^>]*/>$")
TEXT_OPEN_RE = re.compile(r"^<w:t(?:\s[^>]*[^/])?>$")
TEXT_CLOSE = "</w:t>"

ENTITIES = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
}

# Walker states
TEXT = 0
TAG = 1
ENTITY = 2


@dataclass(frozen=True)
class VisibleChar:
    """One visible character and the markup span [start, end) that encodes it"""
    char: str
    start: int
    end: int
    synthetic: bool = False   # Produced by a tag (paragraph end, tab, break)


@dataclass
class VisibleText:
    """
    Tag-free text of a markup string plus a per-character span map.

    `text[i]` is encoded by `markup[chars[i].start:chars[i].end]`; synthetic
    characters (newline for a paragraph end, tab, line break) have an empty
    span at the tag position.
    """
    markup: str
    text: str
    chars: List[VisibleChar]

    def enclosing_text_tag(self, markup_pos: int) -> Optional[Tuple[int, str]]:
        """Start offset and literal of the <w:t> open tag containing `markup_pos`."""
        open_pos = max(self.markup.rfind("<w:t>", 0, markup_pos), self.markup.rfind("<w:t ", 0, markup_pos))
        if open_pos == -1:
            return None
        close_pos = self.markup.rfind("</w:t>", 0, markup_pos)
        if close_pos > open_pos:
            return None
        tag_end = self.markup.find(">", open_pos)
        return open_pos, self.markup[open_pos:tag_end + 1]


def project(markup: str) -> VisibleText:
    """
    Build the visible text of `markup` with a small state machine:
    TEXT emits characters (only inside <w:t>), TAG skips to '>',
    ENTITY decodes &...; sequences.
    """
    chars: List[VisibleChar] = []
    state = TEXT
    in_run_text = False
    mark = 0
    i = 0
    length = len(markup)

    while i < length:
        ch = markup[i]
        if state == TEXT:
            if ch == "<":
                state = TAG
                mark = i
            elif ch == "&":
                state = ENTITY
                mark = i
            elif in_run_text:
                chars.append(VisibleChar(ch, i, i + 1))
        elif state == TAG:
            if ch == ">":
                tag = markup[mark:i + 1]
                if TEXT_OPEN_RE.match(tag):
                    in_run_text = True
                elif tag == TEXT_CLOSE:
                    in_run_text = False
                else:
                    _emit_for_tag(tag, mark, chars)
                state = TEXT
        elif state == ENTITY:
            if ch == ";":
                decoded = _decode_entity(markup[mark + 1:i])
                if in_run_text:
                    if decoded is None:
                        chars.extend(VisibleChar(markup[p], p, p + 1) for p in range(mark, i + 1))
                    else:
                        chars.append(VisibleChar(decoded, mark, i + 1))
                state = TEXT
            elif ch in "<&" or i - mark > 10:
                # Not an entity after all: emit the raw ampersand and rescan
                if in_run_text:
                    chars.append(VisibleChar("&", mark, mark + 1))
                state = TEXT
                i = mark + 1
                continue
        i += 1

    if state == ENTITY and in_run_text:
        chars.extend(VisibleChar(markup[p], p, p + 1) for p in range(mark, length))

    return VisibleText(markup=markup, text="".join(c.char for c in chars), chars=chars)


def visible_text(markup: str) -> str:
    return project(markup).text


def _emit_for_tag(tag: str, position: int, chars: List[VisibleChar]) -> None:
    if tag in PARAGRAPH_END_TAGS or EMPTY_PARAGRAPH_RE.match(tag):
        chars.append(VisibleChar("\n", position, position, synthetic=True))
    elif TAB_TAG_RE.match(tag):
        chars.append(VisibleChar("\t", position, position, synthetic=True))
    elif BREAK_TAG_RE.match(tag):
        chars.append(VisibleChar("\n", position, position, synthetic=True))


def _decode_entity(name: str) -> Optional[str]:
    """Decoded character, or None for an unknown or malformed entity."""
    try:
        if name[:2] in ("#x", "#X"):
            return chr(int(name[2:], 16))
        if name.startswith("#"):
            return chr(int(name[1:]))
    except (ValueError, OverflowError):
        return None
    return ENTITIES.get(name)
