# patterns.py - Placeholder Syntax Catalog
# Enumerates the supported placeholder syntaxes and the pure span finders over them

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern, Tuple

from config import LABEL_NAMES


class PlaceholderKind(str, Enum):
    """Placeholder syntaxes understood by the scanner"""
    SQUARE = "square-bracket"
    CURLY = "curly"
    DOUBLE_CURLY = "double-curly"
    ANGLE = "angle-bracket"
    CURRENCY_BLANK = "currency-blank"
    LABEL = "label"


@dataclass(frozen=True)
class PatternSpec:
    """A literal-delimiter syntax: group 1 captures the embedded name"""
    kind: PlaceholderKind
    regex: Pattern
    prefix: str = ""


@dataclass(frozen=True)
class TokenMatch:
    """One regex hit over an immutable text snapshot"""
    start: int
    end: int
    token: str
    name: str = ""


# Applied in this order; later patterns never claim characters of earlier hits.
# Delimited names may not cross a line break.
LITERAL_PATTERNS: Tuple[PatternSpec, ...] = (
    PatternSpec(PlaceholderKind.DOUBLE_CURLY, re.compile(r"\{\{([^{}\n]+)\}\}")),
    PatternSpec(PlaceholderKind.ANGLE, re.compile(r"<<([^<>\n]+)>>")),
    PatternSpec(PlaceholderKind.SQUARE, re.compile(r"\[([^\[\]\n]+)\]")),
    PatternSpec(PlaceholderKind.CURLY, re.compile(r"\{([^{}\n]+)\}")),
)

CURRENCY_BLANK_PATTERN = re.compile(r"\$\[\s*_+\s*\]")

# "Address:" style labels, only when nothing but spaces follows on the line
LABEL_PATTERN = re.compile(
    r"\b(" + "|".join(LABEL_NAMES) + r"):[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

BLANK_NAME_PATTERN = re.compile(r"^[_\s]+$")

# Party markers: upper-case standalone tokens, optionally bracketed or followed by a colon
PARTY_MARKER_PATTERN = re.compile(r"\[COMPANY\]|\[INVESTOR\]|\bCOMPANY\b:?|\bINVESTOR\b:?")


def normalize_key(name: str) -> str:
    """Trim and collapse internal whitespace"""
    return re.sub(r"\s+", " ", name).strip()


def is_blank_name(name: str) -> bool:
    """True for names made only of underscores/spaces, e.g. '[_____]'"""
    return bool(BLANK_NAME_PATTERN.match(name))


def find_spans(regex: Pattern, text: str) -> List[TokenMatch]:
    """Return every match of `regex` over `text`, left to right."""
    matches = []
    for m in regex.finditer(text):
        name = m.group(1) if regex.groups else ""
        matches.append(TokenMatch(start=m.start(), end=m.end(), token=m.group(0), name=name or ""))
    return matches


def find_literal_tokens(text: str) -> List[Tuple[PatternSpec, TokenMatch]]:
    """
    Apply the literal-delimiter patterns in catalog order.

    A hit overlapping characters already claimed by an earlier pattern is
    discarded, so "{{Name}}" never also yields "{Name}" or "{{Name}".
    Blank names ("[____]") are skipped here as well.
    """
    claimed: List[Tuple[int, int]] = []
    found = []
    for spec in LITERAL_PATTERNS:
        for match in find_spans(spec.regex, text):
            if _overlaps(match.start, match.end, claimed):
                continue
            claimed.append((match.start, match.end))
            if is_blank_name(match.name):
                continue
            found.append((spec, match))
    found.sort(key=lambda item: item[1].start)
    return found


def find_currency_blanks(text: str) -> List[TokenMatch]:
    return find_spans(CURRENCY_BLANK_PATTERN, text)


def find_labels(text: str) -> List[TokenMatch]:
    """Label hits; `token` is the label text itself ("Address:") without trailing spaces."""
    labels = []
    for m in LABEL_PATTERN.finditer(text):
        token = m.group(0).rstrip()
        labels.append(TokenMatch(start=m.start(), end=m.start() + len(token), token=token, name=m.group(1)))
    return labels


def label_name(raw: str) -> Optional[str]:
    """Canonical label name for a matched label ("ADDRESS" -> "Address")."""
    for name in LABEL_NAMES:
        if name.lower() == raw.lower():
            return name
    return None


def _overlaps(start: int, end: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start < s_end and end > s_start for s_start, s_end in spans)
