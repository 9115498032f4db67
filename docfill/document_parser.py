# document_parser.py - DOCX Document Decoding Module
# Extracts the body markup, the header/footer parts and the plain text snapshot

import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from lxml import etree

from config import LOG_LEVEL
from docfill.markup_text import visible_text

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

DOCUMENT_PART = "word/document.xml"
HEADER_FOOTER_PREFIXES = ("word/header", "word/footer")


class DocumentDecodeError(Exception):
    """Bytes are not a readable DOCX package"""
    pass


@dataclass
class ParsedDocument:
    """Immutable snapshot of one uploaded document"""
    text: str                     # Plain text of the body, one line per paragraph
    markup: bytes                 # word/document.xml as stored
    source_bytes: bytes           # The whole original package
    extra_parts: Dict[str, bytes] = field(default_factory=dict)  # headers and footers
    paragraph_count: int = 0
    table_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


class DocumentParser:
    """
    Decodes DOCX packages.

    The text snapshot is the visible-text projection of the body markup, so
    character offsets found in the text line up with the markup projection
    used at substitution time.
    """

    def parse(self, docx_path: str) -> ParsedDocument:
        """
        Parse a DOCX file.

        Args:
            docx_path: Path to the DOCX file

        Returns:
            ParsedDocument snapshot
        """
        logger.info(f"Parsing document: {docx_path}")
        with open(docx_path, "rb") as f:
            return self.parse_bytes(f.read())

    def parse_bytes(self, docx_bytes: bytes) -> ParsedDocument:
        if not docx_bytes:
            raise DocumentDecodeError("Empty document")

        try:
            with zipfile.ZipFile(io.BytesIO(docx_bytes)) as package:
                names = package.namelist()
                if DOCUMENT_PART not in names:
                    raise DocumentDecodeError(f"Missing {DOCUMENT_PART}")
                markup = package.read(DOCUMENT_PART)
                extra_parts = {
                    name: package.read(name)
                    for name in names
                    if name.startswith(HEADER_FOOTER_PREFIXES) and name.endswith(".xml")
                }
        except zipfile.BadZipFile as e:
            raise DocumentDecodeError(f"Not a DOCX package: {e}") from e

        try:
            text = visible_text(markup.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise DocumentDecodeError(f"Body markup is not UTF-8: {e}") from e

        parsed = ParsedDocument(
            text=text,
            markup=markup,
            source_bytes=docx_bytes,
            extra_parts=extra_parts,
        )
        self._read_structure(docx_bytes, parsed)

        logger.info(f"Parsed {parsed.paragraph_count} paragraphs, "
                    f"{parsed.table_count} tables, "
                    f"{len(extra_parts)} header/footer parts")
        return parsed

    def _read_structure(self, docx_bytes: bytes, parsed: ParsedDocument) -> None:
        """Counts and core properties through python-docx"""
        try:
            doc = Document(io.BytesIO(docx_bytes))
        except (PackageNotFoundError, etree.XMLSyntaxError, KeyError, ValueError) as e:
            raise DocumentDecodeError(f"Unreadable DOCX: {e}") from e

        parsed.paragraph_count = len(doc.paragraphs)
        parsed.table_count = len(doc.tables)

        core_props = doc.core_properties
        parsed.metadata = {
            'title': core_props.title or '',
            'author': core_props.author or '',
            'created': str(core_props.created) if core_props.created else '',
            'modified': str(core_props.modified) if core_props.modified else '',
            'subject': core_props.subject or '',
        }


def parse_document(docx_bytes: bytes) -> ParsedDocument:
    """
    Convenience function to decode a document.

    Args:
        docx_bytes: Raw DOCX bytes

    Returns:
        ParsedDocument containing text and markup
    """
    parser = DocumentParser()
    return parser.parse_bytes(docx_bytes)
