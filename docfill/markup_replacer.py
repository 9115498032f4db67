# markup_replacer.py - Markup-Safe Placeholder Substitution
# Writes resolved values into WordprocessingML while keeping every tag intact

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Set
from xml.sax.saxutils import escape

from lxml import etree

from config import LOG_LEVEL
from docfill.context_resolver import ContextResolver
from docfill.markup_text import VisibleText, project, visible_text
from docfill.models import ResolvedValues, display_value
from docfill.site_locator import (
    Edit,
    apply_edits,
    assign_literal_occurrences,
    group_literal_sites,
    literal_positions,
    locate_label,
)

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

PRESERVE_ATTR = ' xml:space="preserve"'
SELF_CLOSING_PARAGRAPH_RE = re.compile(r"<w:p(?:\s[^>]*)?/>$")
# Paragraph content that counts as visible even without text
NON_TEXT_CONTENT = ("<w:drawing", "<w:pict", "<w:object", "<w:sectPr", "<m:oMath", "<mc:AlternateContent")


class MarkupIntegrityError(Exception):
    """Rewritten markup is no longer well-formed XML"""
    pass


@dataclass
class MarkupReplacementResult:
    """Result of a markup substitution pass"""
    markup: bytes
    substitutions: int = 0
    filled_keys: Set[str] = field(default_factory=set)
    skipped: List[str] = field(default_factory=list)
    paragraphs_removed: int = 0


class MarkupSafeReplacer:
    """
    Substitutes resolved values into serialized markup (word/document.xml,
    headers, footers).

    Tokens may be split over several runs ("[Com" + "pany Name]"). Matching
    happens on the visible-text projection, so tags between characters are
    skipped; the value goes where the first character was and the other
    characters are removed, leaving every tag in place.
    """

    def __init__(self, context_resolver: Optional[ContextResolver] = None):
        self.context_resolver = context_resolver or ContextResolver()

    def replace(
        self,
        markup: bytes,
        resolved: ResolvedValues,
        include_labels: bool = True,
        strip_trailing: bool = True,
        shared_tokens: bool = True,
    ) -> MarkupReplacementResult:
        """
        Substitute every resolved value into `markup`.

        Args:
            markup: Original serialized markup (UTF-8)
            resolved: Resolved values for the document catalog
            include_labels: Also append values after label lines (body part only)
            strip_trailing: Remove empty paragraphs before the closing body boundary
            shared_tokens: Fill tokens shared by several keys ("$[___]", "[name]"); their
                assignment compares body offsets, so headers and footers pass False

        Returns:
            MarkupReplacementResult with the new markup bytes
        """
        source = markup.decode("utf-8")
        view = project(source)
        result = MarkupReplacementResult(markup=markup)

        edits: List[Edit] = []
        visited: Set[int] = set()
        preserved: Set[int] = set()

        if include_labels:
            edits.extend(self._label_edits(view, resolved, visited, preserved, result))
        edits.extend(self._literal_edits(view, resolved, visited, preserved, result, shared_tokens))

        output = apply_edits(source, edits)
        if strip_trailing:
            output, removed = strip_trailing_empty_paragraphs(output)
            result.paragraphs_removed = removed

        encoded = output.encode("utf-8")
        check_well_formed(encoded)
        result.markup = encoded

        resolved_keys = set(resolved.values)
        if include_labels:
            result.skipped = sorted(resolved_keys - result.filled_keys)
        logger.info(f"Markup: {result.substitutions} substitutions, "
                    f"{result.paragraphs_removed} trailing paragraphs removed")
        return result

    # ---- labels ----------------------------------------------------------

    def _label_edits(
        self,
        view: VisibleText,
        resolved: ResolvedValues,
        visited: Set[int],
        preserved: Set[int],
        result: MarkupReplacementResult,
    ) -> List[Edit]:
        """
        Labels before literals, highest offset first. Party context comes
        from the tag-free projection with the same marker heuristics used
        at scan time.
        """
        label_sites = sorted(
            ((d, v) for d, v in resolved.sites() if d.is_label),
            key=lambda site: site[0].offset or 0,
            reverse=True,
        )
        if not label_sites:
            return []

        occurrences = self.context_resolver.resolve_labels(view.text)
        edits = []
        for descriptor, value in label_sites:
            position = locate_label(descriptor, occurrences, visited)
            if position is None:
                logger.warning(f"No markup site for {descriptor.key!r} at offset {descriptor.offset}")
                continue
            visited.add(position)

            last_char = view.chars[position + len(descriptor.original_token) - 1]
            insert_at = last_char.end
            edits.append(Edit(insert_at, insert_at, escape(" " + display_value(descriptor, value))))
            edits.extend(_preserve_space_edits(view, last_char.start, preserved))

            result.substitutions += 1
            result.filled_keys.add(descriptor.key)
            logger.debug(f"Label {descriptor.key!r} filled at markup offset {insert_at}")
        return edits

    # ---- literal delimiters ----------------------------------------------

    def _literal_edits(
        self,
        view: VisibleText,
        resolved: ResolvedValues,
        visited: Set[int],
        preserved: Set[int],
        result: MarkupReplacementResult,
        shared_tokens: bool = True,
    ) -> List[Edit]:
        edits = []
        by_token = literal_positions(view.text)
        for token, group in group_literal_sites(resolved).items():
            if not shared_tokens and len({descriptor.key for descriptor, _ in group}) > 1:
                logger.debug(f"Shared token {token!r} left in place outside the body")
                continue
            positions = [p for p in by_token.get(token, []) if p not in visited]
            for position, (descriptor, value) in assign_literal_occurrences(positions, group).items():
                if value is None:
                    continue
                visited.add(position)
                text = display_value(descriptor, value)
                edits.extend(_replacement_edits(view, position, len(token), escape(text)))
                if text != text.strip():
                    edits.extend(_preserve_space_edits(view, view.chars[position].start, preserved))
                result.substitutions += 1
                result.filled_keys.add(descriptor.key)
        return edits


def _replacement_edits(view: VisibleText, position: int, length: int, value: str) -> List[Edit]:
    """Value replaces the first contiguous markup run of the token; other runs are emptied."""
    runs: List[List[int]] = []
    for char in view.chars[position:position + length]:
        if runs and runs[-1][1] == char.start:
            runs[-1][1] = char.end
        else:
            runs.append([char.start, char.end])
    edits = [Edit(runs[0][0], runs[0][1], value)]
    edits.extend(Edit(start, end, "") for start, end in runs[1:])
    return edits


def _preserve_space_edits(view: VisibleText, markup_pos: int, preserved: Set[int]) -> List[Edit]:
    """Mark the enclosing <w:t> with xml:space="preserve" so edge spaces survive."""
    tag = view.enclosing_text_tag(markup_pos)
    if tag is None:
        return []
    open_pos, literal = tag
    if "xml:space" in literal or open_pos in preserved:
        return []
    preserved.add(open_pos)
    insert_at = open_pos + len("<w:t")
    return [Edit(insert_at, insert_at, PRESERVE_ATTR)]


def strip_trailing_empty_paragraphs(markup: str):
    """
    Remove paragraphs with no visible text that sit right before the final
    section properties / closing body tag.

    Returns:
        (markup, number of paragraphs removed)
    """
    body_end = markup.rfind("</w:body>")
    if body_end == -1:
        return markup, 0

    boundary = body_end
    sect_start = markup.rfind("<w:sectPr", 0, body_end)
    if sect_start != -1:
        sect_end = _element_end(markup, sect_start, "</w:sectPr>")
        if sect_end != -1 and not markup[sect_end:body_end].strip():
            boundary = sect_start

    head = markup[:boundary]
    removed = 0
    while True:
        stripped = head.rstrip()
        start = _trailing_paragraph_start(stripped)
        if start is None:
            break
        before = stripped[:start].rstrip()
        # A document must keep a paragraph after a closing table and at least one paragraph
        if before.endswith("</w:tbl>") or before.endswith("<w:body>"):
            break
        paragraph = stripped[start:]
        if any(marker in paragraph for marker in NON_TEXT_CONTENT):
            break
        if visible_text(paragraph).strip():
            break
        head = stripped[:start]
        removed += 1

    if not removed:
        return markup, 0
    return head + markup[boundary:], removed


def _element_end(markup: str, start: int, close_tag: str) -> int:
    """Offset just past the element opened at `start`, or -1."""
    tag_end = markup.find(">", start)
    if tag_end == -1:
        return -1
    if markup[tag_end - 1] == "/":
        return tag_end + 1
    close = markup.find(close_tag, tag_end)
    return close + len(close_tag) if close != -1 else -1


def _trailing_paragraph_start(stripped: str) -> Optional[int]:
    """Start offset of the paragraph that ends `stripped`, if it ends with one."""
    match = SELF_CLOSING_PARAGRAPH_RE.search(stripped)
    if match and match.end() == len(stripped):
        return match.start()
    if not stripped.endswith("</w:p>"):
        return None
    start = max(stripped.rfind("<w:p>"), stripped.rfind("<w:p "))
    if start == -1:
        return None
    # Nested paragraphs (text boxes) are left alone
    if stripped.count("</w:p>", start) > 1:
        return None
    return start


def check_well_formed(markup: bytes) -> None:
    """Raise MarkupIntegrityError unless `markup` parses as XML."""
    try:
        etree.fromstring(markup)
    except etree.XMLSyntaxError as e:
        raise MarkupIntegrityError(f"Substituted markup is not well-formed: {e}") from e


def replace_in_markup(markup: bytes, resolved: ResolvedValues) -> bytes:
    """
    Convenience function for a body part substitution.

    Args:
        markup: Original word/document.xml bytes
        resolved: Resolved values

    Returns:
        New markup bytes
    """
    replacer = MarkupSafeReplacer()
    return replacer.replace(markup, resolved).markup
