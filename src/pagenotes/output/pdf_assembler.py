"""This module reassembles stamped page images into a new PDF document."""

from pathlib import Path

import pymupdf

from pagenotes.results import ErrorKind, StepResult


class NotePdfAssembler:
    """Accumulates one PDF page per stamped image, then writes the document once.

    Every page is sized in points to the pixel dimensions of its image, and the image covers the whole page.

    Example usage:
        with NotePdfAssembler() as assembler:
            assembler.add_page(png_path, width, height)
            assembler.save(pdf_path)
    """

    def __init__(self):
        """Creates an empty document."""
        self.document = pymupdf.open()

    @property
    def page_count(self) -> int:
        """Number of pages accumulated so far."""
        return self.document.page_count

    def add_page(
        self,
        image_path: Path,
        width: int,
        height: int,
        filename: str | None = None,
        page_index: int | None = None,
    ) -> StepResult[int]:
        """Append a page showing the image at image_path.

        A page whose image could not be inserted is removed again, so the document only holds complete pages.

        Args:
            image_path (Path): The PNG file to place on the page.
            width (int): Image width in pixels, used as page width in points.
            height (int): Image height in pixels, used as page height in points.
            filename (str | None, optional): The source file name, for diagnostics. Defaults to None.
            page_index (int | None, optional): The source page index, for diagnostics. Defaults to None.

        Returns:
            StepResult[int]: The number of pages after appending, or a PDF_PAGE_FAILED error.
        """
        page = self.document.new_page(width=width, height=height)
        try:
            page.insert_image(page.rect, filename=str(image_path))
        except Exception as e:
            self.document.delete_page(-1)
            return StepResult.failure(ErrorKind.PDF_PAGE_FAILED, str(e), filename=filename, page_index=page_index)
        return StepResult.success(self.page_count)

    def save(self, path: Path, filename: str | None = None) -> StepResult[Path]:
        """Write the accumulated document to path.

        Args:
            path (Path): Destination of the PDF file.
            filename (str | None, optional): The source file name, for diagnostics. Defaults to None.

        Returns:
            StepResult[Path]: The path of the written file, or a PDF_WRITE_FAILED error.
        """
        try:
            self.document.save(path, garbage=4, deflate=True)
        except Exception as e:
            return StepResult.failure(ErrorKind.PDF_WRITE_FAILED, str(e), filename=filename)
        return StepResult.success(path)

    def close(self) -> None:
        """Release the document."""
        self.document.close()

    def __enter__(self) -> "NotePdfAssembler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
