# document_rebuilder.py - Document Reconstruction Module
# Re-serializes a DOCX package with substituted markup parts

import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from docx import Document

from config import LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@dataclass
class RebuildResult:
    """Result of document rebuilding"""
    success: bool
    parts_replaced: int
    document_bytes: Optional[bytes] = None
    output_path: Optional[str] = None
    errors: List[str] = field(default_factory=list)


class DocumentRebuilder:
    """
    Writes substituted XML parts back into the original package.
    Every other part (styles, media, relationships) is copied unchanged,
    entry order and compression included.
    """

    def rebuild_from_bytes(
        self,
        input_bytes: bytes,
        replaced_parts: Dict[str, bytes],
        output_path: Optional[str] = None
    ) -> RebuildResult:
        """
        Rebuild a document from bytes.

        Args:
            input_bytes: Original DOCX file as bytes
            replaced_parts: Part name -> new XML bytes (e.g. "word/document.xml")
            output_path: Optional path to also save the result

        Returns:
            RebuildResult with document bytes
        """
        logger.info(f"Rebuilding document from bytes ({len(input_bytes)} bytes), "
                    f"{len(replaced_parts)} parts replaced")

        try:
            document_bytes = self._write_package(input_bytes, replaced_parts)
            self._verify(document_bytes)

            if output_path:
                with open(output_path, 'wb') as f:
                    f.write(document_bytes)
                logger.info(f"Saved to: {output_path}")

            return RebuildResult(
                success=True,
                parts_replaced=len(replaced_parts),
                document_bytes=document_bytes,
                output_path=output_path
            )

        except Exception as e:
            logger.error(f"Error rebuilding document: {e}")
            return RebuildResult(
                success=False,
                parts_replaced=0,
                errors=[str(e)]
            )

    def _write_package(self, input_bytes: bytes, replaced_parts: Dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(io.BytesIO(input_bytes)) as zin, \
                zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zout:
            for item in zin.infolist():
                data = replaced_parts.get(item.filename)
                if data is None:
                    data = zin.read(item.filename)
                zout.writestr(item, data)
        return buffer.getvalue()

    def _verify(self, document_bytes: bytes) -> None:
        """The rebuilt package must open again as a Word document."""
        Document(io.BytesIO(document_bytes))


def rebuild_document(
    input_bytes: bytes,
    replaced_parts: Dict[str, bytes],
    output_path: Optional[str] = None
) -> RebuildResult:
    """
    Convenience function to rebuild a document.

    Args:
        input_bytes: Original DOCX bytes
        replaced_parts: Part name -> new XML bytes
        output_path: Optional output path

    Returns:
        RebuildResult
    """
    rebuilder = DocumentRebuilder()
    return rebuilder.rebuild_from_bytes(input_bytes, replaced_parts, output_path)
