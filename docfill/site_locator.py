# site_locator.py - Substitution Site Assignment
# Maps resolved values to physical occurrences; shared by both renderers

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from docfill.context_resolver import LabelOccurrence
from docfill.models import PlaceholderDescriptor, ResolvedValues
from docfill.patterns import find_currency_blanks, find_literal_tokens

Site = Tuple[PlaceholderDescriptor, Optional[str]]


@dataclass(frozen=True)
class Edit:
    """Replace text[start:end] with `text`"""
    start: int
    end: int
    text: str


def apply_edits(source: str, edits: Sequence[Edit]) -> str:
    """
    Apply edits from the highest offset down so earlier offsets stay valid.
    An edit overlapping one already applied is dropped.
    """
    result = source
    floor = len(source)
    for edit in sorted(edits, key=lambda e: (e.start, e.end), reverse=True):
        if edit.end > floor:
            continue
        result = result[:edit.start] + edit.text + result[edit.end:]
        floor = edit.start
    return result


def find_occurrences(text: str, token: str) -> List[int]:
    """Non-overlapping offsets of `token` in `text`."""
    positions = []
    if not token:
        return positions
    index = text.find(token)
    while index != -1:
        positions.append(index)
        index = text.find(token, index + len(token))
    return positions


def literal_positions(text: str) -> Dict[str, List[int]]:
    """
    Start offsets of every literal token, keyed by token text.

    Uses the same claimed-span scan as detection, so "{Name}" inside
    "{{Name}}" is not an occurrence of "{Name}".
    """
    positions: Dict[str, List[int]] = {}
    matches = [match for _, match in find_literal_tokens(text)] + find_currency_blanks(text)
    for match in sorted(matches, key=lambda m: m.start):
        positions.setdefault(match.token, []).append(match.start)
    return positions


def group_literal_sites(resolved: ResolvedValues) -> "OrderedDict[str, List[Site]]":
    """
    Literal-kind catalog descriptors grouped by original token, each group
    sorted by offset. Unresolved descriptors stay in their group with a None
    value so they still claim their own occurrences.
    """
    groups: "OrderedDict[str, List[Site]]" = OrderedDict()
    resolved_tokens = {d.original_token for d, _ in resolved.sites() if not d.is_label}
    for descriptor in resolved.catalog.descriptors():
        if descriptor.is_label or descriptor.original_token not in resolved_tokens:
            continue
        groups.setdefault(descriptor.original_token, []).append((descriptor, resolved.get(descriptor.key)))
    for token in groups:
        groups[token].sort(key=lambda site: site[0].offset if site[0].offset is not None else -1)
    return groups


def assign_literal_occurrences(
    positions: Sequence[int],
    group: Sequence[Site],
) -> Dict[int, Site]:
    """
    Decide which site fills each occurrence of one literal token.

    A token owned by a single key fills every occurrence. When several keys
    share a token ("$[____]" for amount and cap, "[name]" per signature
    block) an occurrence goes to the site at the same offset, else to the
    site with the nearest offset.
    """
    assignment: Dict[int, Site] = {}
    if not group:
        return assignment
    keys = {descriptor.key for descriptor, _ in group}
    if len(keys) == 1:
        for position in positions:
            assignment[position] = group[0]
        return assignment

    for position in positions:
        exact = next((site for site in group if site[0].offset == position), None)
        if exact is not None:
            assignment[position] = exact
            continue
        assignment[position] = min(
            group,
            key=lambda site: abs((site[0].offset if site[0].offset is not None else 0) - position),
        )
    return assignment


def locate_label(
    descriptor: PlaceholderDescriptor,
    occurrences: Sequence[LabelOccurrence],
    visited: Set[int],
    fallback_to_first: bool = False,
) -> Optional[int]:
    """
    Offset of the label occurrence `descriptor` should fill.

    Preference: same offset and party, then same party nearest by offset,
    then (optionally) the first unvisited occurrence of the label text.
    """
    candidates = [
        o for o in occurrences
        if o.token == descriptor.original_token and o.offset not in visited
    ]
    if not candidates:
        return None

    for occurrence in candidates:
        if occurrence.offset == descriptor.offset and occurrence.party == descriptor.party:
            return occurrence.offset

    same_party = [o for o in candidates if o.party == descriptor.party]
    if same_party:
        target = descriptor.offset if descriptor.offset is not None else 0
        return min(same_party, key=lambda o: abs(o.offset - target)).offset

    if fallback_to_first:
        return candidates[0].offset
    return None
