"""
Paginated-document page-layout session.

State is an ordered tuple of ``PageState``. A page's identity is its original
``index`` in the source document, never its current display position, so
rotate, delete and reorder compose without invalidating references. Deleted
pages stay in the list (flagged) so undo can bring them back.

Export rebuilds a document with only the non-deleted pages, in the session's
current order. PDF sources are rewritten page-for-page with pypdf and each
page's rotation is set on the page object. Raster sources have the rotation
baked into each page image.
"""

import dataclasses
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple

from pypdf.errors import PyPdfError

from edithistory import pdf_pages, raster
from edithistory.artifacts import ExportArtifact, ExportError
from edithistory.session import HistoryControls

logger = logging.getLogger(__name__)

PageLayout = Tuple['PageState', ...]

_DOCUMENT_FORMATS = ("PDF", "TIFF")


@dataclass(frozen=True)
class PageState:
    """One page of the layout, addressed by its original index."""
    index: int
    rotation: int = 0
    deleted: bool = False

    def __post_init__(self):
        if self.rotation % 90 != 0 or not 0 <= self.rotation < 360:
            raise ValueError(f"rotation must be one of 0, 90, 180, 270, got {self.rotation}")


def initial_layout(page_count: int) -> PageLayout:
    return tuple(PageState(index=i) for i in range(page_count))


class PageLayoutSession(HistoryControls[PageLayout]):
    """Rotate, delete and reorder pages with undo/redo.

    ``source`` is a PDF (path, bytes or binary file object), a multi-page
    raster (path, bytes or file object of a multi-frame image such as TIFF)
    or a sequence of page images.

    Example:
        session = PageLayoutSession("scan.pdf")
        session.delete_page(2)
        session.reorder_pages(0, 3)
        artifact = session.export_document()
    """

    def __init__(self, source: Any = None, filename: Optional[str] = None, max_history: Optional[int] = None):
        self._source_pages: List = []
        self._pdf = None
        self._filename = "document.pdf"
        self._pages: PageLayout = ()
        super().__init__((), max_history=max_history)
        if source is not None:
            self.load(source, filename=filename)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def pages(self) -> PageLayout:
        return self._pages

    @property
    def page_count(self) -> int:
        if self._pdf is not None:
            return len(self._pdf.pages)
        return len(self._source_pages)

    @property
    def is_pdf(self) -> bool:
        return self._pdf is not None

    @property
    def active_pages(self) -> PageLayout:
        return tuple(page for page in self._pages if not page.deleted)

    def load(self, source: Any, filename: Optional[str] = None) -> None:
        """Load a new document: one page state per source page, history reseeded.

        Raises:
            ValueError: If the source cannot be decoded.
        """
        if pdf_pages.is_pdf(source):
            reader = pdf_pages.open_pdf(source)
            frames = []
        else:
            reader = None
            try:
                frames = raster.open_frames(source)
            except (OSError, ValueError) as e:
                raise ValueError(f"Cannot read document pages: {e}") from e
        with self._lock:
            self._pdf = reader
            self._source_pages = frames
            if filename:
                self._filename = filename
            elif isinstance(source, (str, Path)):
                self._filename = Path(source).name
            self._pages = initial_layout(self.page_count)
            self._history.init(self._pages)
        logger.debug(f"Loaded {self.page_count} page(s) from {self._filename!r} (pdf={reader is not None})")

    def _apply_state(self, state: PageLayout) -> None:
        self._pages = state

    def _seed_state(self) -> PageLayout:
        return self._pages

    def _position_of(self, index: int) -> int:
        for position, page in enumerate(self._pages):
            if page.index == index:
                return position
        return -1

    def _commit(self, pages: PageLayout, label: str) -> None:
        with self._lock:
            if pages == self._pages:
                return
            self._pages = pages
            self._record(pages, label=label)

    # ------------------------------------------------------------------
    # Page operations (all address the stable original index)
    # ------------------------------------------------------------------

    def rotate_page(self, index: int, degrees: int = 90) -> bool:
        """Rotate page ``index`` clockwise. Returns False for an unknown page."""
        if degrees % 90 != 0:
            raise ValueError(f"Rotation must be a multiple of 90 degrees, got {degrees}")
        if self._position_of(index) == -1:
            logger.debug(f"rotate_page: no page with index {index}")
            return False
        pages = tuple(
            dataclasses.replace(p, rotation=(p.rotation + degrees) % 360) if p.index == index else p
            for p in self._pages
        )
        self._commit(pages, f"rotate page {index}")
        return True

    def delete_page(self, index: int) -> bool:
        """Mark page ``index`` deleted. Returns False for an unknown or already deleted page."""
        position = self._position_of(index)
        if position == -1 or self._pages[position].deleted:
            logger.debug(f"delete_page: nothing to delete at index {index}")
            return False
        pages = tuple(dataclasses.replace(p, deleted=True) if p.index == index else p for p in self._pages)
        self._commit(pages, f"delete page {index}")
        return True

    def reorder_pages(self, from_index: int, to_index: int) -> bool:
        """Move page ``from_index`` to the position currently held by page ``to_index``."""
        from_pos = self._position_of(from_index)
        to_pos = self._position_of(to_index)
        if from_pos == -1 or to_pos == -1:
            logger.debug(f"reorder_pages: unknown page index {from_index} or {to_index}")
            return False
        pages = list(self._pages)
        moved = pages.pop(from_pos)
        pages.insert(to_pos, moved)
        self._commit(tuple(pages), f"move page {from_index}")
        return True

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_plan(self) -> PageLayout:
        """Pages that export will emit, in output order."""
        return self.active_pages

    def render_pages(self) -> list:
        """Pillow images of the exported pages with rotation applied.

        Raises:
            ExportError: If the source is a PDF, whose pages are not rasterized.
        """
        if self._pdf is not None:
            raise ExportError("PDF pages are exported as PDF objects and cannot be rendered")
        return [
            raster.rotate_clockwise(self._source_pages[page.index], page.rotation)
            for page in self.export_plan()
        ]

    def export_document(self, format: str = "PDF", resolution: float = 72.0) -> ExportArtifact:
        """Encode the current layout as a multi-page PDF or TIFF.

        A PDF source only exports to PDF. ``resolution`` applies to raster
        sources written as PDF.

        Raises:
            ExportError: If no pages remain or encoding fails.
        """
        try:
            pil_format, mime, ext = raster.normalize_format(format)
        except ValueError as e:
            raise ExportError(str(e)) from e
        if pil_format not in _DOCUMENT_FORMATS:
            raise ExportError(f"Unsupported document format {format!r}; use one of {_DOCUMENT_FORMATS}")
        if self._pdf is None and not self._source_pages:
            raise ExportError("No document loaded")
        plan = self.export_plan()
        if not plan:
            raise ExportError("Every page is deleted; nothing to export")
        if self._pdf is not None:
            data = self._export_pdf_source(plan, pil_format)
        else:
            data = self._export_raster_source(pil_format, resolution)
        filename = f"{Path(self._filename).stem}.{ext}"
        logger.debug(f"Exported {filename}: pages {[p.index for p in plan]}")
        return ExportArtifact(data=data, mime_type=mime, filename=filename)

    def _export_pdf_source(self, plan: PageLayout, pil_format: str) -> bytes:
        if pil_format != "PDF":
            raise ExportError(f"A PDF source can only be exported as PDF, not {pil_format}")
        try:
            return pdf_pages.write_pages(self._pdf, plan)
        except (OSError, ValueError, PyPdfError) as e:
            raise ExportError(f"Failed to write {self._filename!r}: {e}") from e

    def _export_raster_source(self, pil_format: str, resolution: float) -> bytes:
        pages = self.render_pages()
        save_kwargs = {"save_all": True, "append_images": pages[1:]}
        if pil_format == "PDF":
            pages = [p.convert("RGB") if p.mode not in ("RGB", "L", "CMYK", "1") else p for p in pages]
            save_kwargs.update(append_images=pages[1:], resolution=resolution)
        try:
            return raster.encode(pages[0], pil_format, **save_kwargs)
        except (OSError, ValueError, KeyError) as e:
            raise ExportError(f"Failed to encode {self._filename!r} as {pil_format}: {e}") from e
