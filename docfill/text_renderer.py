# text_renderer.py - Preview Rendering
# Substitutes resolved values into the plain text snapshot

import logging
from typing import List, Optional, Set

from config import LOG_LEVEL
from docfill.context_resolver import ContextResolver
from docfill.models import ResolvedValues, display_value
from docfill.site_locator import (
    Edit,
    apply_edits,
    assign_literal_occurrences,
    find_occurrences,
    group_literal_sites,
    literal_positions,
    locate_label,
)

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


class TextRenderer:
    """
    Renders the preview text.

    Literal tokens are replaced by their value; labels are kept and the value
    is appended after them ("Address:" -> "Address: 123 Main St"). Every
    offset refers to the original snapshot, so rendering is repeatable.
    """

    def __init__(self, context_resolver: Optional[ContextResolver] = None):
        self.context_resolver = context_resolver or ContextResolver()

    def render(self, text: str, resolved: ResolvedValues) -> str:
        if not text or not len(resolved):
            return text

        edits: List[Edit] = []
        visited: Set[int] = set()

        edits.extend(self._label_edits(text, resolved, visited))
        edits.extend(self._literal_edits(text, resolved, visited))

        logger.debug(f"Preview: {len(edits)} substitutions")
        return apply_edits(text, edits)

    def _label_edits(self, text: str, resolved: ResolvedValues, visited: Set[int]) -> List[Edit]:
        label_sites = sorted(
            ((d, v) for d, v in resolved.sites() if d.is_label),
            key=lambda site: site[0].offset or 0,
            reverse=True,
        )
        if not label_sites:
            return []

        occurrences = self.context_resolver.resolve_labels(text)
        edits = []
        for descriptor, value in label_sites:
            position = locate_label(descriptor, occurrences, visited, fallback_to_first=True)
            if position is None:
                position = self._first_unvisited(text, descriptor.original_token, visited)
            if position is None:
                logger.warning(f"No preview site for {descriptor.key!r} ({descriptor.original_token!r})")
                continue
            visited.add(position)
            insert_at = position + len(descriptor.original_token)
            edits.append(Edit(insert_at, insert_at, " " + display_value(descriptor, value)))
        return edits

    def _literal_edits(self, text: str, resolved: ResolvedValues, visited: Set[int]) -> List[Edit]:
        edits = []
        by_token = literal_positions(text)
        for token, group in group_literal_sites(resolved).items():
            positions = [p for p in by_token.get(token, []) if p not in visited]
            for position, (descriptor, value) in assign_literal_occurrences(positions, group).items():
                if value is None:
                    continue
                visited.add(position)
                edits.append(Edit(position, position + len(token), display_value(descriptor, value)))
        return edits

    @staticmethod
    def _first_unvisited(text: str, token: str, visited: Set[int]) -> Optional[int]:
        for position in find_occurrences(text, token):
            if position not in visited:
                return position
        return None


def render_preview(text: str, resolved: ResolvedValues) -> str:
    """
    Convenience function to render the preview text.

    Args:
        text: Original text snapshot
        resolved: Resolved values for the document catalog

    Returns:
        Text with every resolved placeholder substituted
    """
    renderer = TextRenderer()
    return renderer.render(text, resolved)
