"""This module contains the command line interface and the main pipeline."""

import logging
import sys
from contextlib import nullcontext
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
import numpy as np
from pydantic import ValidationError
from tqdm import tqdm

from pagenotes.annotations.note import FontNoteStamper, NoteStamper, annotate_page
from pagenotes.config import DEFAULT_DST_DIR, DEFAULT_FONTSIZE, DEFAULT_SRC_DIR, RunConfig
from pagenotes.log import setup_logging
from pagenotes.output.pdf_assembler import NotePdfAssembler
from pagenotes.output.png_writer import write_page_png
from pagenotes.rendering.renderer import PageRenderer, PymupdfRenderer, open_document, render_page
from pagenotes.results import ErrorKind, Scope, StepError
from pagenotes.utils.file_utils import note_pdf_path, page_image_path
from pagenotes.walker import DirectoryEntry, classify_entry, list_source_entries

logger = logging.getLogger(__name__)

MESSAGES = {
    ErrorKind.DESTINATION_UNAVAILABLE: "Could not create output directory: {message}",
    ErrorKind.LISTING_FAILED: "Could not read specified directory: {message}",
    ErrorKind.NOT_A_PDF: "[{index}] Skipping {filename}: {message}",
    ErrorKind.OPEN_FAILED: "[{index}] Could not read {filename}: {message}",
    ErrorKind.OUTPUT_DIRECTORY_FAILED: "[{index}] Could not make extraction directory for {filename}: {message}",
    ErrorKind.RENDER_FAILED: "[{index}] Could not extract page as image from {filename}, page {page}: {message}",
    ErrorKind.STAMP_FAILED: "[{index}] Could not add text to {filename}, page {page}: {message}. "
    "Saving without additions...",
    ErrorKind.ENCODE_FAILED: "[{index}] Could not encode {filename}, page {page} to png format: {message}",
    ErrorKind.PDF_PAGE_FAILED: "[{index}] Could not add page {page} of {filename} to the pdf with a note: {message}",
    ErrorKind.PDF_WRITE_FAILED: "[{index}] Could not convert {filename}'s pages back to pdf with a note: {message}",
}


@dataclass
class RunReport:
    """Outcome of a pipeline run."""

    files_processed: int = 0
    files_skipped: int = 0
    pages_written: int = 0
    pdfs_written: int = 0
    errors: list[StepError] = field(default_factory=list)
    aborted: StepError | None = None

    @property
    def exit_code(self) -> int:
        """Process exit status: 1 if the run was aborted, 0 otherwise."""
        return 1 if self.aborted is not None else 0

    def record(self, error: StepError, index: int | None = None) -> Scope:
        """Log a failed step and remember it.

        Args:
            error (StepError): The failure.
            index (int | None, optional): The listing index of the file being processed. Defaults to None.

        Returns:
            Scope: The scope of the failure, which tells the caller which loop to leave.
        """
        message = MESSAGES[error.kind].format(
            index=index, filename=error.filename, page=error.page_index, message=error.message
        )
        if error.kind is ErrorKind.NOT_A_PDF:
            logger.warning(message)
            self.files_skipped += 1
            return error.scope

        logger.error(message)
        self.errors.append(error)
        if error.scope is Scope.RUN:
            self.aborted = error
        elif error.scope is Scope.FILE and error.kind is not ErrorKind.PDF_WRITE_FAILED:
            self.files_skipped += 1
        return error.scope


def process_page(
    entry: DirectoryEntry,
    renderer: PageRenderer,
    document: Any,
    page_index: int,
    output_directory: Path,
    config: RunConfig,
    stamper: NoteStamper,
    assembler: NotePdfAssembler | None,
    report: RunReport,
) -> Scope | None:
    """Render one page, stamp it, write it as PNG and append it to the reassembled PDF.

    Args:
        entry (DirectoryEntry): The source file.
        renderer (PageRenderer): The renderer that opened the document.
        document (Any): The document handle.
        page_index (int): The zero-based page index.
        output_directory (Path): The per-document output directory.
        config (RunConfig): The run configuration.
        stamper (NoteStamper): Draws the note.
        assembler (NotePdfAssembler | None): The PDF being reassembled, if any.
        report (RunReport): Collects the outcome.

    Returns:
        Scope | None: The scope of the last failure on this page, None if the page went through.
    """
    rendered = render_page(renderer, document, entry.name, page_index)
    if not rendered.ok:
        return report.record(rendered.error, entry.index)

    png_path = page_image_path(output_directory, entry.name, page_index)
    annotated = annotate_page(
        rendered.value, config.note, config.fontsize, config.add_note_space, stamper, entry.name, page_index
    )
    if not annotated.ok:
        report.record(annotated.error, entry.index)
        # the unmodified page is still written, but it does not go into the pdf with a note
        written = write_page_png(rendered.value, png_path, entry.name, page_index, config.png_compression)
        if not written.ok:
            return report.record(written.error, entry.index)
        report.pages_written += 1
        return annotated.error.scope

    bitmap: np.ndarray = annotated.value
    written = write_page_png(bitmap, png_path, entry.name, page_index, config.png_compression)
    if not written.ok:
        return report.record(written.error, entry.index)
    report.pages_written += 1

    if assembler is not None:
        height, width = bitmap.shape[:2]
        appended = assembler.add_page(png_path, width, height, entry.name, page_index)
        if not appended.ok:
            return report.record(appended.error, entry.index)
    return None


def process_document(
    entry: DirectoryEntry,
    renderer: PageRenderer,
    document: Any,
    output_directory: Path,
    config: RunConfig,
    stamper: NoteStamper,
    report: RunReport,
) -> Scope | None:
    """Process every page of an opened document, in increasing page order.

    Args:
        entry (DirectoryEntry): The source file.
        renderer (PageRenderer): The renderer that opened the document.
        document (Any): The document handle.
        output_directory (Path): The per-document output directory.
        config (RunConfig): The run configuration.
        stamper (NoteStamper): Draws the note.
        report (RunReport): Collects the outcome.

    Returns:
        Scope | None: FILE or RUN if processing of the document stopped early or its PDF could not be written.
    """
    with NotePdfAssembler() if config.assemble_pdf else nullcontext() as assembler:
        for page_index in range(renderer.page_count(document)):
            scope = process_page(
                entry, renderer, document, page_index, output_directory, config, stamper, assembler, report
            )
            if scope in (Scope.FILE, Scope.RUN):
                return scope

        if assembler is None or assembler.page_count == 0:
            return None

        saved = assembler.save(note_pdf_path(output_directory, entry.name), entry.name)
        if not saved.ok:
            return report.record(saved.error, entry.index)
        report.pdfs_written += 1
        logger.info("[%d] Wrote %s", entry.index, saved.value)
    return None


def process_entry(
    entry: DirectoryEntry, config: RunConfig, renderer: PageRenderer, stamper: NoteStamper, report: RunReport
) -> Scope | None:
    """Process one entry of the source directory.

    Args:
        entry (DirectoryEntry): The directory entry.
        config (RunConfig): The run configuration.
        renderer (PageRenderer): Opens and rasterizes the document.
        stamper (NoteStamper): Draws the note.
        report (RunReport): Collects the outcome.

    Returns:
        Scope | None: The scope of the failure that ended processing of the entry, None if it went through.
    """
    classified = classify_entry(entry)
    if not classified.ok:
        return report.record(classified.error, entry.index)
    logger.info("[%d] Working with %s...", entry.index, entry.name)

    opened = open_document(renderer, entry.path, entry.name)
    if not opened.ok:
        return report.record(opened.error, entry.index)

    document = opened.value
    try:
        output_directory = entry.output_directory(config.dst_dir)
        try:
            output_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            error = StepError(ErrorKind.OUTPUT_DIRECTORY_FAILED, str(e), filename=entry.name)
            return report.record(error, entry.index)

        report.files_processed += 1
        return process_document(entry, renderer, document, output_directory, config, stamper, report)
    finally:
        renderer.close(document)


def start_pipeline(
    config: RunConfig, renderer: PageRenderer | None = None, stamper: NoteStamper | None = None
) -> RunReport:
    """Run the pipeline over every entry of the source directory.

    The run only stops early when the destination directory cannot be created or the source directory cannot be
    listed at all. All other failures are logged and the pipeline moves on to the next page or file.

    Args:
        config (RunConfig): The run configuration.
        renderer (PageRenderer | None, optional): Opens and rasterizes documents. Defaults to PymupdfRenderer.
        stamper (NoteStamper | None, optional): Draws the note. Defaults to FontNoteStamper.

    Returns:
        RunReport: The outcome of the run.
    """
    if renderer is None:
        renderer = PymupdfRenderer(dpi=config.render_dpi)
    if stamper is None:
        stamper = FontNoteStamper()
    report = RunReport()

    try:
        config.dst_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        report.record(StepError(ErrorKind.DESTINATION_UNAVAILABLE, str(e)))
        return report

    listed = list_source_entries(config.src_dir)
    if not listed.ok:
        report.record(listed.error)
        return report

    for entry in tqdm(listed.value, desc="Processing files", unit="file"):
        if process_entry(entry, config, renderer, stamper, report) is Scope.RUN:
            return report

    logger.info(
        "Done: %d file(s) processed, %d skipped, %d page(s) written, %d pdf(s) written, %d error(s).",
        report.files_processed,
        report.files_skipped,
        report.pages_written,
        report.pdfs_written,
        len(report.errors),
    )
    return report


@click.command()
@click.option(
    "-s",
    "--src_dir",
    "--src-dir",
    "src_dir",
    type=click.Path(path_type=Path),
    default=DEFAULT_SRC_DIR,
    show_default=True,
    help="Path to the directory where each found PDF file's pages will be converted to images.",
)
@click.option(
    "-d",
    "--dst_dir",
    "--dst-dir",
    "dst_dir",
    type=click.Path(path_type=Path),
    default=DEFAULT_DST_DIR,
    show_default=True,
    help="Path to the output directory.",
)
@click.option(
    "-n",
    "--note",
    default="",
    help="A note that will be added to the bottom of each extracted image.",
)
@click.option(
    "-f",
    "--fontsize",
    type=float,
    default=DEFAULT_FONTSIZE,
    show_default=True,
    help="Font size of the note.",
)
@click.option(
    "-a",
    "--add_note_space",
    "--add-note-space",
    "add_note_space",
    is_flag=True,
    default=False,
    help="Whether to add white space below the page for the note instead of drawing over the page.",
)
@click.option(
    "-b",
    "--back_to_pdf",
    "--back-to-pdf",
    "back_to_pdf",
    is_flag=True,
    default=False,
    help="Whether to convert the extracted pages with a note back to a PDF. Ignored without a note.",
)
def click_pipeline(
    src_dir: Path,
    dst_dir: Path,
    note: str,
    fontsize: float,
    add_note_space: bool = False,
    back_to_pdf: bool = False,
):
    """Convert every page of the PDF files in a directory to PNG images, optionally with a note."""
    setup_logging()
    try:
        config = RunConfig(
            src_dir=src_dir,
            dst_dir=dst_dir,
            note=note,
            fontsize=fontsize,
            add_note_space=add_note_space,
            back_to_pdf=back_to_pdf,
        )
    except ValidationError as e:
        raise click.UsageError(str(e)) from e

    report = start_pipeline(config)
    sys.exit(report.exit_code)


if __name__ == "__main__":
    click_pipeline()
