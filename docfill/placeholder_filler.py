# placeholder_filler.py - Fill Placeholders in DOCX Documents
# Scan -> resolve -> render pipeline over one immutable document snapshot

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from config import LOG_LEVEL
from docfill.document_parser import DOCUMENT_PART, DocumentParser, ParsedDocument
from docfill.document_rebuilder import DocumentRebuilder
from docfill.markup_replacer import MarkupSafeReplacer
from docfill.models import Catalog, ResolvedValues, sort_by_priority
from docfill.placeholder_scanner import PlaceholderScanner
from docfill.text_renderer import TextRenderer

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

Answers = Union[Dict[str, str], ResolvedValues]


@dataclass
class ScanResult:
    """Result of placeholder detection"""
    success: bool
    catalog: Catalog = field(default_factory=Catalog)
    text: str = ""
    document: Optional[ParsedDocument] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ordered_keys(self) -> List[str]:
        return sort_by_priority(self.catalog.keys())


@dataclass
class FillerResult:
    """Result of placeholder filling operation"""
    success: bool
    placeholders_found: int
    placeholders_filled: int
    output_path: Optional[str] = None
    document_bytes: Optional[bytes] = None
    preview_text: Optional[str] = None
    unfilled: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class PlaceholderFiller:
    """
    Fills placeholders in DOCX documents with provided answers.

    Every call re-parses the original bytes, so filling after an edit never
    compounds earlier substitutions.
    """

    def __init__(self, format_values: bool = True):
        self.format_values = format_values
        self.parser = DocumentParser()
        self.scanner = PlaceholderScanner()
        self.renderer = TextRenderer()
        self.replacer = MarkupSafeReplacer()
        self.rebuilder = DocumentRebuilder()

    def scan(self, docx_path: str) -> ScanResult:
        with open(docx_path, 'rb') as f:
            return self.scan_bytes(f.read())

    def scan_bytes(self, docx_bytes: bytes) -> ScanResult:
        """
        Detect placeholders. An unreadable document yields an empty catalog
        with success=False; an empty catalog on its own is not a failure.
        """
        try:
            document = self.parser.parse_bytes(docx_bytes)
        except Exception as e:
            logger.error(f"Error reading document: {e}")
            return ScanResult(success=False, errors=[str(e)])

        catalog = self.scanner.scan(document.text)
        return ScanResult(success=True, catalog=catalog, text=document.text, document=document)

    def resolve(self, catalog: Catalog, answers: Answers) -> ResolvedValues:
        if isinstance(answers, ResolvedValues):
            return answers
        # JSON answers may carry numbers; every value is filled as text
        answers = {str(key): str(value) for key, value in answers.items() if value is not None}
        unknown = [key for key in answers if key not in catalog]
        if unknown:
            logger.warning(f"Answers for unknown placeholders ignored: {unknown}")
        return ResolvedValues.from_answers(catalog, answers, format_values=self.format_values)

    def preview_bytes(self, docx_bytes: bytes, answers: Answers) -> str:
        """Preview text with every answered placeholder substituted."""
        scan = self.scan_bytes(docx_bytes)
        if not scan.success:
            return ""
        return self.renderer.render(scan.text, self.resolve(scan.catalog, answers))

    def fill(
        self,
        docx_path: str,
        answers: Answers,
        output_path: Optional[str] = None
    ) -> FillerResult:
        """
        Fill placeholders in a DOCX document.

        Args:
            docx_path: Path to DOCX template with placeholders
            answers: Dict mapping placeholder keys to raw answers
                     e.g., {"Company Name": "Acme Inc.", "Purchase Amount": "100k"}
            output_path: Optional path to save filled document

        Returns:
            FillerResult with status and output
        """
        logger.info(f"Filling placeholders in: {docx_path}")
        with open(docx_path, 'rb') as f:
            return self.fill_from_bytes(f.read(), answers, output_path)

    def fill_from_bytes(
        self,
        docx_bytes: bytes,
        answers: Answers,
        output_path: Optional[str] = None,
        scan: Optional[ScanResult] = None
    ) -> FillerResult:
        """
        Fill placeholders in a DOCX document from bytes.

        Args:
            docx_bytes: DOCX file as bytes
            answers: Dict mapping placeholder keys to raw answers, or ResolvedValues
            output_path: Optional path to save filled document
            scan: Result of scan_bytes for these same bytes, when already computed

        Returns:
            FillerResult with document bytes
        """
        if scan is None:
            scan = self.scan_bytes(docx_bytes)
        if not scan.success:
            return FillerResult(success=False, placeholders_found=0, placeholders_filled=0, errors=scan.errors)

        catalog = scan.catalog
        document = scan.document
        try:
            resolved = self.resolve(catalog, answers)
            logger.info(f"Answers provided for: {list(resolved.values.keys())}")

            body = self.replacer.replace(document.markup, resolved)
            parts = {DOCUMENT_PART: body.markup}
            filled_keys = set(body.filled_keys)

            for name, markup in document.extra_parts.items():
                part = self.replacer.replace(
                    markup, resolved, include_labels=False, strip_trailing=False, shared_tokens=False
                )
                if part.substitutions:
                    parts[name] = part.markup
                    filled_keys |= part.filled_keys

            rebuild = self.rebuilder.rebuild_from_bytes(docx_bytes, parts, output_path)
            if not rebuild.success:
                return FillerResult(
                    success=False,
                    placeholders_found=len(catalog),
                    placeholders_filled=len(filled_keys),
                    errors=rebuild.errors
                )

            unfilled = [key for key in sort_by_priority(catalog.keys()) if key not in filled_keys]
            for key in unfilled:
                if key in resolved:
                    logger.warning(f"No substitution site found for: {key}")

            return FillerResult(
                success=True,
                placeholders_found=len(catalog),
                placeholders_filled=len(filled_keys),
                output_path=rebuild.output_path,
                document_bytes=rebuild.document_bytes,
                preview_text=self.renderer.render(document.text, resolved),
                unfilled=unfilled
            )

        except Exception as e:
            logger.error(f"Error filling placeholders: {e}")
            return FillerResult(
                success=False,
                placeholders_found=len(catalog),
                placeholders_filled=0,
                errors=[str(e)]
            )


def fill_document_placeholders(
    docx_path: str,
    answers: Dict[str, str],
    output_path: Optional[str] = None
) -> FillerResult:
    """
    Convenience function to fill placeholders in a document.

    Args:
        docx_path: Path to DOCX template
        answers: Dict of placeholder key -> raw answer
        output_path: Optional output path

    Returns:
        FillerResult
    """
    filler = PlaceholderFiller()
    return filler.fill(docx_path, answers, output_path)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Fill placeholders in DOCX")
    parser.add_argument("--template", required=True, help="Path to DOCX template")
    parser.add_argument("--values", help="JSON file mapping placeholder keys to answers")
    parser.add_argument("--output", help="Output path for filled document")
    parser.add_argument("--preview", action="store_true", help="Print the filled text preview")
    args = parser.parse_args()

    filler = PlaceholderFiller()

    if not args.values:
        scan = filler.scan(args.template)
        print(f"\nPlaceholders found: {len(scan.catalog)}")
        for key in scan.ordered_keys:
            print(f"  {key}: {scan.catalog.get(key).original_token}")
        raise SystemExit(0 if scan.success else 1)

    with open(args.values, encoding="utf-8") as f:
        answers = json.load(f)

    result = filler.fill(args.template, answers, args.output)

    print(f"\nPlaceholders found: {result.placeholders_found}")
    print(f"Placeholders filled: {result.placeholders_filled}")
    if result.unfilled:
        print(f"Unfilled placeholders: {result.unfilled}")
    if result.output_path:
        print(f"Output saved to: {result.output_path}")
    if args.preview and result.preview_text:
        print("\n" + result.preview_text)
    if result.errors:
        print(f"Errors: {result.errors}")
