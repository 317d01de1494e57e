"""
pypdf helpers for the page-layout session.

PDF sources keep their pages as PDF objects: export copies the kept pages into a
new document and sets their rotation, so vector content and text survive
unchanged. Raster sources go through ``edithistory.raster`` instead.
"""

import io
import logging
from pathlib import Path
from typing import Any, Iterable

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


def is_pdf(source: Any) -> bool:
    """True if ``source`` is a PDF path, PDF bytes or a binary file holding a PDF."""
    if isinstance(source, (str, Path)):
        return Path(source).suffix.lower() == ".pdf"
    if isinstance(source, (bytes, bytearray)):
        return bytes(source[:len(PDF_MAGIC)]) == PDF_MAGIC
    if hasattr(source, "read") and hasattr(source, "seek"):
        position = source.tell()
        header = source.read(len(PDF_MAGIC))
        source.seek(position)
        return header == PDF_MAGIC
    return False


def open_pdf(source: Any) -> PdfReader:
    """Parse a PDF source.

    Raises:
        ValueError: If the document cannot be parsed.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(bytes(source))
    elif isinstance(source, Path):
        source = str(source)
    try:
        reader = PdfReader(source)
        # Page tree is parsed lazily; force it so broken files fail here
        len(reader.pages)
    except (OSError, PyPdfError) as e:
        raise ValueError(f"Cannot read PDF: {e}") from e
    return reader


def write_pages(reader: PdfReader, pages: Iterable) -> bytes:
    """Copy ``pages`` (``PageState`` values, in output order) into a new PDF.

    Each page's rotation is added clockwise on top of the rotation already
    stored in the source page.
    """
    writer = PdfWriter()
    for page in pages:
        added = writer.add_page(reader.pages[page.index])
        if page.rotation:
            added.rotate(page.rotation)
    buffer = io.BytesIO()
    writer.write(buffer)
    logger.debug(f"Wrote {len(writer.pages)} PDF page(s)")
    return buffer.getvalue()
