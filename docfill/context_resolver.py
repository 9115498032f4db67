# context_resolver.py - Party Context Resolution for Label Placeholders
# Decides whether an "Address:"/"Email:"/"Name:"/"Title:" line belongs to the company or the investor

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from config import (
    LABEL_KEYS,
    LAST_MARKER_WINDOW_AFTER,
    LAST_MARKER_WINDOW_BEFORE,
    LOG_LEVEL,
    MARKER_AFTER_RANGE,
    MARKER_SEARCH_RANGE,
)
from docfill.models import COMPANY, INVESTOR, PlaceholderDescriptor
from docfill.patterns import PARTY_MARKER_PATTERN, PlaceholderKind, find_labels, label_name

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartyMarker:
    """A "COMPANY"/"INVESTOR" heading found in the text"""
    offset: int
    party: str
    text: str


@dataclass(frozen=True)
class LabelOccurrence:
    """A label line with the party it was assigned to"""
    label: str          # Canonical label name, e.g. "Address"
    token: str          # Literal text, e.g. "Address:"
    offset: int
    party: Optional[str]

    @property
    def key(self) -> Optional[str]:
        if self.party is None:
            return None
        return LABEL_KEYS[self.party][self.label]


# A strategy looks at one label offset and the sorted marker list
PartyStrategy = Callable[[int, Sequence[PartyMarker]], Optional[str]]


def find_party_markers(text: str) -> List[PartyMarker]:
    """Scan once for every party marker, sorted by offset."""
    markers = []
    for m in PARTY_MARKER_PATTERN.finditer(text):
        party = COMPANY if "company" in m.group(0).lower() else INVESTOR
        markers.append(PartyMarker(offset=m.start(), party=party, text=m.group(0)))
    markers.sort(key=lambda marker: marker.offset)
    return markers


def _in_range(label_offset: int, markers: Sequence[PartyMarker]) -> List[PartyMarker]:
    return [m for m in markers if abs(m.offset - label_offset) < MARKER_SEARCH_RANGE]


def nearest_marker_before(label_offset: int, markers: Sequence[PartyMarker]) -> Optional[str]:
    """Signature blocks list the party name first, then the label lines."""
    before = [m for m in _in_range(label_offset, markers) if m.offset < label_offset]
    if not before:
        return None
    return max(before, key=lambda m: m.offset).party


def nearest_marker_after(label_offset: int, markers: Sequence[PartyMarker]) -> Optional[str]:
    """Only used when nothing precedes the label; the closest following heading wins."""
    nearby = _in_range(label_offset, markers)
    if not nearby or any(m.offset < label_offset for m in nearby):
        return None
    closest = min(nearby, key=lambda m: abs(m.offset - label_offset))
    if label_offset < closest.offset + MARKER_AFTER_RANGE:
        return closest.party
    return None


def last_marker_window(label_offset: int, markers: Sequence[PartyMarker]) -> Optional[str]:
    """Document-level fallback based on the last company and last investor markers."""
    last_company = next((m for m in reversed(markers) if m.party == COMPANY), None)
    last_investor = next((m for m in reversed(markers) if m.party == INVESTOR), None)

    def near(marker: PartyMarker) -> bool:
        return (marker.offset - LAST_MARKER_WINDOW_BEFORE
                < label_offset
                < marker.offset + LAST_MARKER_WINDOW_AFTER)

    if last_company and last_investor:
        if label_offset > last_investor.offset:
            return INVESTOR
        if last_company.offset < label_offset < last_investor.offset:
            return COMPANY
        if near(last_company):
            return COMPANY
        return None
    if last_investor and near(last_investor):
        return INVESTOR
    if last_company and near(last_company):
        return COMPANY
    return None


DEFAULT_STRATEGIES: Sequence[PartyStrategy] = (
    nearest_marker_before,
    nearest_marker_after,
    last_marker_window,
)


class ContextResolver:
    """
    Assigns a party to each label-style placeholder.

    Strategies are tried in order; the first one returning a party wins.
    Labels no strategy can place are dropped rather than guessed.
    """

    def __init__(self, strategies: Sequence[PartyStrategy] = DEFAULT_STRATEGIES):
        self.strategies = list(strategies)

    def resolve_party(self, label_offset: int, markers: Sequence[PartyMarker]) -> Optional[str]:
        for strategy in self.strategies:
            party = strategy(label_offset, markers)
            if party is not None:
                logger.debug(f"Label at {label_offset}: {strategy.__name__} -> {party}")
                return party
        return None

    def resolve_labels(self, text: str, markers: Optional[Sequence[PartyMarker]] = None) -> List[LabelOccurrence]:
        """Every label occurrence in `text`, with its party (None when unresolvable)."""
        if markers is None:
            markers = find_party_markers(text)
        logger.debug(f"Party markers: {[(m.party, m.offset) for m in markers]}")

        occurrences = []
        for match in find_labels(text):
            occurrences.append(LabelOccurrence(
                label=label_name(match.name),
                token=match.token,
                offset=match.start,
                party=self.resolve_party(match.start, markers),
            ))
        return occurrences

    def label_descriptors(self, text: str) -> List[PlaceholderDescriptor]:
        """One label descriptor per resolvable label occurrence."""
        descriptors = []
        seen = set()
        for occurrence in self.resolve_labels(text):
            if occurrence.party is None:
                logger.debug(f"Dropping {occurrence.token!r} at {occurrence.offset}: no party context")
                continue
            identity = (occurrence.key, occurrence.offset)
            if identity in seen:
                continue
            seen.add(identity)
            descriptors.append(PlaceholderDescriptor(
                key=occurrence.key,
                original_token=occurrence.token,
                kind=PlaceholderKind.LABEL,
                party=occurrence.party,
                offset=occurrence.offset,
            ))
            logger.debug(f"Added {occurrence.party} field {occurrence.key!r} at {occurrence.offset}")
        return descriptors
