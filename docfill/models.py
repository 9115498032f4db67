# models.py - Placeholder Catalog and Resolved Value Models
# Arena-style catalog: descriptors have a stable id, keys are lookup labels

from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from config import (
    COMPANY_IDENTITY_KEYS,
    COMPANY_SIGNATURE_KEYS,
    DATE_HINTS,
    INVESTOR_IDENTITY_KEYS,
    INVESTOR_SIGNATURE_KEYS,
    JURISDICTION_HINTS,
    MONETARY_HINTS,
)
from docfill.patterns import PlaceholderKind

COMPANY = "company"
INVESTOR = "investor"


@dataclass(frozen=True)
class PlaceholderDescriptor:
    """One detected placeholder slot"""
    key: str                       # Normalized display name, e.g. "Company Name"
    original_token: str            # Literal text as found, e.g. "[Company Name]" or "Email:"
    kind: PlaceholderKind
    prefix: str = ""               # Prepended to the formatted value ("$")
    party: Optional[str] = None    # "company" | "investor", label kind only
    offset: Optional[int] = None   # Position in the text snapshot
    id: int = -1                   # Arena index, assigned by Catalog.add

    @property
    def is_label(self) -> bool:
        return self.kind is PlaceholderKind.LABEL

    @property
    def value_kind(self) -> str:
        """'currency', 'date' or 'text' - drives ValueFormatter"""
        lowered = self.key.lower()
        if self.prefix == "$" or self.kind is PlaceholderKind.CURRENCY_BLANK:
            return "currency"
        if "amount" in lowered or "valuation" in lowered:
            return "currency"
        if "date" in lowered:
            return "date"
        return "text"

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "key": self.key,
            "original_token": self.original_token,
            "kind": self.kind.value,
            "prefix": self.prefix,
            "party": self.party,
            "offset": self.offset,
        }


class Catalog:
    """
    All placeholders detected in one document.

    Descriptors live in an append-only arena; several descriptors may share a
    key (aliases such as "[COMPANY]" for "Company Name", or repeated signature
    pages). Keys are unique as answer slots: one value fills every descriptor
    of its key.
    """

    def __init__(self, descriptors: Iterable[PlaceholderDescriptor] = ()):
        self._arena: List[PlaceholderDescriptor] = []
        self._by_key: "OrderedDict[str, List[int]]" = OrderedDict()
        for descriptor in descriptors:
            self.add(descriptor)

    def add(self, descriptor: PlaceholderDescriptor) -> PlaceholderDescriptor:
        stored = replace(descriptor, id=len(self._arena))
        self._arena.append(stored)
        self._by_key.setdefault(stored.key, []).append(stored.id)
        return stored

    def keys(self) -> List[str]:
        return list(self._by_key.keys())

    def get(self, key: str) -> Optional[PlaceholderDescriptor]:
        """Primary (first detected) descriptor for a key"""
        ids = self._by_key.get(key)
        return self._arena[ids[0]] if ids else None

    def occurrences(self, key: str) -> List[PlaceholderDescriptor]:
        return [self._arena[i] for i in self._by_key.get(key, [])]

    def descriptors(self) -> List[PlaceholderDescriptor]:
        return list(self._arena)

    def original_tokens(self) -> Set[str]:
        return {d.original_token for d in self._arena}

    def __contains__(self, key: str) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_key)

    def __bool__(self) -> bool:
        return bool(self._arena)


@dataclass(frozen=True)
class ResolvedValue:
    """An answer for one key, paired with the key's primary descriptor"""
    descriptor: PlaceholderDescriptor
    value: str


@dataclass
class ResolvedValues:
    """
    Accumulating key -> ResolvedValue map threaded through rendering.

    Re-resolving a key overwrites its prior value. Renderers read it through
    `sites()`, which expands every key to all of its catalog descriptors.
    """
    catalog: Catalog
    values: "OrderedDict[str, ResolvedValue]" = field(default_factory=OrderedDict)
    skipped: Set[str] = field(default_factory=set)

    def set(self, key: str, value: str) -> ResolvedValue:
        """Store an already-formatted value for `key`."""
        descriptor = self.catalog.get(key)
        if descriptor is None:
            raise KeyError(f"Unknown placeholder key: {key}")
        resolved = ResolvedValue(descriptor=descriptor, value=value)
        self.values[key] = resolved
        self.skipped.discard(key)
        return resolved

    def resolve(self, key: str, raw_answer: str) -> ResolvedValue:
        """Format a raw answer for `key` and store it."""
        from docfill.value_formatter import ValueFormatter

        descriptor = self.catalog.get(key)
        if descriptor is None:
            raise KeyError(f"Unknown placeholder key: {key}")
        return self.set(key, ValueFormatter.format(raw_answer, descriptor))

    def discard(self, key: str) -> None:
        self.values.pop(key, None)

    def skip(self, key: str) -> None:
        if key not in self.catalog:
            raise KeyError(f"Unknown placeholder key: {key}")
        self.values.pop(key, None)
        self.skipped.add(key)

    def get(self, key: str) -> Optional[str]:
        resolved = self.values.get(key)
        return resolved.value if resolved else None

    def pending_keys(self) -> List[str]:
        """Unanswered, unskipped keys in display priority order"""
        return sort_by_priority(
            k for k in self.catalog.keys() if k not in self.values and k not in self.skipped
        )

    def is_complete(self) -> bool:
        return not self.pending_keys()

    def sites(self) -> List[Tuple[PlaceholderDescriptor, str]]:
        """(descriptor, value) for every catalog descriptor whose key is resolved"""
        return [
            (descriptor, resolved.value)
            for key, resolved in self.values.items()
            for descriptor in self.catalog.occurrences(key)
        ]

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def __len__(self) -> int:
        return len(self.values)

    @classmethod
    def from_answers(cls, catalog: Catalog, answers: Dict[str, str], format_values: bool = True) -> "ResolvedValues":
        resolved = cls(catalog)
        for key, answer in answers.items():
            if answer is None or key not in catalog:
                continue
            if format_values:
                resolved.resolve(key, answer)
            else:
                resolved.set(key, answer)
        return resolved


def display_value(descriptor: PlaceholderDescriptor, value: str) -> str:
    """Apply the descriptor prefix unless the value already carries it."""
    if descriptor.prefix and not value.startswith(descriptor.prefix):
        return descriptor.prefix + value.lstrip("$")
    return value


def priority_rank(key: str) -> Tuple[int, int]:
    """
    Sort rank: company identity, investor identity, monetary terms, dates,
    jurisdiction, other fields, company signature block, investor signature block.
    """
    lowered = key.lower()
    if key in COMPANY_SIGNATURE_KEYS:
        return 6, COMPANY_SIGNATURE_KEYS.index(key)
    if key in INVESTOR_SIGNATURE_KEYS:
        return 7, INVESTOR_SIGNATURE_KEYS.index(key)
    if key in COMPANY_IDENTITY_KEYS:
        return 0, COMPANY_IDENTITY_KEYS.index(key)
    if key in INVESTOR_IDENTITY_KEYS:
        return 1, INVESTOR_IDENTITY_KEYS.index(key)
    if any(hint in lowered for hint in MONETARY_HINTS):
        return 2, 0
    if any(hint in lowered for hint in DATE_HINTS):
        return 3, 0
    if any(hint in lowered for hint in JURISDICTION_HINTS):
        return 4, 0
    if "company" in lowered:
        return 0, len(COMPANY_IDENTITY_KEYS)
    if "investor" in lowered:
        return 1, len(INVESTOR_IDENTITY_KEYS)
    return 5, 0


def sort_by_priority(keys: Iterable[str]) -> List[str]:
    """Stable display ordering; ties break alphabetically."""
    return sorted(keys, key=lambda k: (priority_rank(k), k.lower()))
