# placeholder_scanner.py - Placeholder Detection
# Walks the extracted document text and builds the placeholder catalog

import logging
import re
from typing import List, Optional

from config import (
    COMPANY_NAME_KEY,
    COMPANY_TOKEN_NAME,
    CURRENCY_KEYWORD_WINDOW,
    CURRENCY_PREFIX,
    LOG_LEVEL,
    PURCHASE_AMOUNT_KEY,
    PURCHASE_KEYWORDS,
    SCOPED_TOKEN_KEYS,
    SIGNATURE_BLOCK_PATTERNS,
    SIGNATURE_LOOKAHEAD_WINDOW,
    SIGNATURE_LOOKBACK_WINDOW,
    VALUATION_CAP_KEY,
    VALUATION_KEYWORDS,
)
from docfill.context_resolver import ContextResolver
from docfill.models import COMPANY, INVESTOR, Catalog, PlaceholderDescriptor
from docfill.patterns import (
    PlaceholderKind,
    TokenMatch,
    find_currency_blanks,
    find_literal_tokens,
    normalize_key,
)

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

_SIGNATURE_BLOCK_RES = [re.compile(p, re.MULTILINE) for p in SIGNATURE_BLOCK_PATTERNS]
_PARTY_WORD_RE = re.compile(r"company|investor", re.IGNORECASE)


class PlaceholderScanner:
    """
    Detects placeholders in plain document text.

    Supports [Name], {Name}, {{Name}}, <<Name>>, $[____] and end-of-line
    labels (Address:, Email:, Name:, Title:). The result is a Catalog whose
    descriptors are added in document order.
    """

    def __init__(self, context_resolver: Optional[ContextResolver] = None):
        self.context_resolver = context_resolver or ContextResolver()

    def scan(self, text: str) -> Catalog:
        """
        Build the catalog for `text`.

        Args:
            text: Immutable text snapshot of the document

        Returns:
            Catalog (empty when nothing is found)
        """
        if not text:
            return Catalog()

        descriptors: List[PlaceholderDescriptor] = []
        descriptors.extend(self._scan_currency_blanks(text))
        descriptors.extend(self._scan_literal_tokens(text))
        descriptors.extend(self.context_resolver.label_descriptors(text))
        descriptors.sort(key=lambda d: d.offset)

        catalog = Catalog(descriptors)
        logger.info(f"Found {len(catalog)} placeholder keys ({len(descriptors)} sites)")
        return catalog

    # ---- currency blanks -------------------------------------------------

    def _scan_currency_blanks(self, text: str) -> List[PlaceholderDescriptor]:
        """
        $[_____] has no embedded name: keyword proximity decides between the
        valuation cap and the purchase amount, otherwise document order does.
        """
        descriptors = []
        assigned = set()
        for match in find_currency_blanks(text):
            key = self._currency_key_by_keyword(text, match)
            if key is None:
                if PURCHASE_AMOUNT_KEY not in assigned:
                    key = PURCHASE_AMOUNT_KEY
                elif VALUATION_CAP_KEY not in assigned:
                    key = VALUATION_CAP_KEY
                else:
                    logger.debug(f"Unassignable currency blank at {match.start}")
                    continue
            assigned.add(key)
            descriptors.append(PlaceholderDescriptor(
                key=key,
                original_token=match.token,
                kind=PlaceholderKind.CURRENCY_BLANK,
                prefix=CURRENCY_PREFIX,
                offset=match.start,
            ))
            logger.debug(f"Currency blank at {match.start} -> {key}")
        return descriptors

    @staticmethod
    def _currency_key_by_keyword(text: str, match: TokenMatch) -> Optional[str]:
        start = max(0, match.start - CURRENCY_KEYWORD_WINDOW)
        end = min(len(text), match.end + CURRENCY_KEYWORD_WINDOW)
        context = text[start:end].lower()
        if any(word in context for word in VALUATION_KEYWORDS):
            return VALUATION_CAP_KEY
        if any(word in context for word in PURCHASE_KEYWORDS):
            return PURCHASE_AMOUNT_KEY
        return None

    # ---- literal delimiters ----------------------------------------------

    def _scan_literal_tokens(self, text: str) -> List[PlaceholderDescriptor]:
        descriptors = []
        seen_tokens = set()
        for spec, match in find_literal_tokens(text):
            key = normalize_key(match.name)
            if not key:
                continue

            scoped = self._scoped_key(text, match, key)
            if scoped is not None:
                # One descriptor per occurrence: each signature block gets its own offset
                descriptors.append(PlaceholderDescriptor(
                    key=scoped,
                    original_token=match.token,
                    kind=spec.kind,
                    prefix=spec.prefix,
                    offset=match.start,
                ))
                continue

            if match.token in seen_tokens:
                continue
            seen_tokens.add(match.token)

            if key == COMPANY_TOKEN_NAME and self._in_signature_block(text, match):
                # Same answer as the body-text company name, own literal token
                key = COMPANY_NAME_KEY

            descriptors.append(PlaceholderDescriptor(
                key=key,
                original_token=match.token,
                kind=spec.kind,
                prefix=spec.prefix,
                offset=match.start,
            ))
        return descriptors

    @staticmethod
    def _scoped_key(text: str, match: TokenMatch, key: str) -> Optional[str]:
        """
        [name] / [title] take the party of the nearest preceding "company" or
        "investor" mention within the look-back window.
        """
        party_keys = SCOPED_TOKEN_KEYS.get(key.lower())
        if party_keys is None:
            return None
        window = text[max(0, match.start - SIGNATURE_LOOKBACK_WINDOW):match.start]
        mentions = _PARTY_WORD_RE.findall(window)
        if not mentions:
            return None
        party = COMPANY if mentions[-1].lower() == COMPANY else INVESTOR
        return party_keys[party]

    @staticmethod
    def _in_signature_block(text: str, match: TokenMatch) -> bool:
        """Signature-block hints around the match, not counting the match itself."""
        before = text[max(0, match.start - SIGNATURE_LOOKBACK_WINDOW):match.start]
        after = text[match.end:match.end + SIGNATURE_LOOKAHEAD_WINDOW]
        surrounding = before + "\n" + after
        return any(regex.search(surrounding) for regex in _SIGNATURE_BLOCK_RES)


def scan_placeholders(text: str) -> Catalog:
    """
    Convenience function to scan text for placeholders.

    Args:
        text: Extracted document text

    Returns:
        Catalog of detected placeholders
    """
    scanner = PlaceholderScanner()
    return scanner.scan(text)
