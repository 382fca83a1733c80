"""This module rasterizes the pages of PDF documents into RGBA bitmaps."""

from pathlib import Path
from typing import Any, Protocol

import cv2
import numpy as np
import pymupdf

from pagenotes.results import ErrorKind, StepResult
from pagenotes.utils.file_utils import read_params

PDF_USER_SPACE_DPI = 72


class PageRenderer(Protocol):
    """Opens documents and rasterizes their pages.

    A document handle is opaque to the pipeline. It is only passed back to the renderer that produced it.
    """

    def open(self, path: Path) -> Any:
        """Open the document at path and return a handle to it."""
        ...

    def page_count(self, document: Any) -> int:
        """The number of pages of the opened document."""
        ...

    def render(self, document: Any, page_index: int) -> np.ndarray:
        """Rasterize the page with the given zero-based index to an RGBA array of shape (height, width, 4)."""
        ...

    def close(self, document: Any) -> None:
        """Release the resources held by the document."""
        ...


class PymupdfRenderer:
    """PageRenderer backed by PyMuPDF."""

    def __init__(self, dpi: int | None = None):
        """Creates a renderer.

        Args:
            dpi (int | None, optional): Rasterization resolution. Defaults to the value in `pipeline_params.yml`.
        """
        if dpi is None:
            dpi = int(read_params("pipeline_params.yml")["render"]["dpi"])
        self.dpi = dpi
        self.zoom = dpi / PDF_USER_SPACE_DPI

    def open(self, path: Path) -> pymupdf.Document:  # noqa: D102
        return pymupdf.open(path)

    def page_count(self, document: pymupdf.Document) -> int:  # noqa: D102
        return document.page_count

    def render(self, document: pymupdf.Document, page_index: int) -> np.ndarray:
        """Rasterize one page on a white background.

        Args:
            document (pymupdf.Document): The opened document.
            page_index (int): The zero-based page index.

        Returns:
            np.ndarray: The page as an opaque RGBA array.
        """
        page = document.load_page(page_index)
        pix = page.get_pixmap(matrix=pymupdf.Matrix(self.zoom, self.zoom), alpha=False)
        return pixmap_to_rgba(pix)

    def close(self, document: pymupdf.Document) -> None:  # noqa: D102
        document.close()


def pixmap_to_rgba(pix: pymupdf.Pixmap) -> np.ndarray:
    """Convert a pymupdf pixmap to an RGBA numpy array.

    Args:
        pix (pymupdf.Pixmap): The pixmap, either grayscale, RGB or RGBA.

    Returns:
        np.ndarray: Array of shape (height, width, 4) and dtype uint8.
    """
    img_array = np.frombuffer(pix.samples, dtype=np.uint8)
    img_array = img_array.reshape(pix.height, pix.width, pix.n)

    if pix.n == 4:  # RGBA
        return img_array.copy()
    elif pix.n == 3:  # RGB
        return cv2.cvtColor(img_array, cv2.COLOR_RGB2RGBA)
    else:  # Grayscale
        return cv2.cvtColor(img_array, cv2.COLOR_GRAY2RGBA)


def open_document(renderer: PageRenderer, path: Path, filename: str) -> StepResult[Any]:
    """Open a source document.

    Args:
        renderer (PageRenderer): The renderer.
        path (Path): Path to the PDF file.
        filename (str): The file name used in diagnostics.

    Returns:
        StepResult[Any]: The document handle, or an OPEN_FAILED error.
    """
    try:
        return StepResult.success(renderer.open(path))
    except Exception as e:  # FileDataError, FileNotFoundError or a mupdf error
        return StepResult.failure(ErrorKind.OPEN_FAILED, str(e), filename=filename)


def render_page(renderer: PageRenderer, document: Any, filename: str, page_index: int) -> StepResult[np.ndarray]:
    """Rasterize a single page.

    Args:
        renderer (PageRenderer): The renderer that opened the document.
        document (Any): The document handle.
        filename (str): The file name used in diagnostics.
        page_index (int): The zero-based page index.

    Returns:
        StepResult[np.ndarray]: The RGBA bitmap, or a RENDER_FAILED error.
    """
    try:
        return StepResult.success(renderer.render(document, page_index))
    except Exception as e:
        return StepResult.failure(ErrorKind.RENDER_FAILED, str(e), filename=filename, page_index=page_index)
