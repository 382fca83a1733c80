"""Lists the source directory and decides which entries are treated as PDF documents."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from pagenotes.results import ErrorKind, StepResult
from pagenotes.utils.file_utils import document_output_directory, is_pdf_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryEntry:
    """One immediate entry of the source directory."""

    index: int
    name: str
    path: Path
    is_dir: bool

    @property
    def is_candidate(self) -> bool:
        """Whether the entry is a file with the `.pdf` suffix."""
        return not self.is_dir and is_pdf_name(self.name)

    def output_directory(self, dst_dir: Path) -> Path:
        """The directory that receives the outputs for this entry."""
        return document_output_directory(dst_dir, self.name)


@dataclass(frozen=True)
class Listing:
    """The entries obtained from the source directory, and the error that cut the listing short, if any."""

    entries: list[DirectoryEntry]
    error: OSError | None = None


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


def read_directory(src_dir: Path) -> Listing:
    """Read the immediate entries of a directory, sorted by name.

    Reading stops at the first error. Whatever was obtained up to that point is kept.

    Args:
        src_dir (Path): The directory to list.

    Returns:
        Listing: The entries, indexed in name order, together with the error that interrupted the listing.
    """
    raw_entries = []
    error = None
    try:
        with os.scandir(src_dir) as iterator:
            for entry in iterator:
                raw_entries.append((entry.name, Path(entry.path), _is_dir(entry)))
    except OSError as e:
        error = e

    raw_entries.sort(key=lambda item: item[0])
    entries = [
        DirectoryEntry(index=index, name=name, path=path, is_dir=is_dir)
        for index, (name, path, is_dir) in enumerate(raw_entries)
    ]
    return Listing(entries=entries, error=error)


def list_source_entries(src_dir: Path) -> StepResult[list[DirectoryEntry]]:
    """List the source directory, tolerating partial listings.

    A listing error is only fatal when no entry at all could be read.

    Args:
        src_dir (Path): The source directory.

    Returns:
        StepResult[list[DirectoryEntry]]: The entries, or a LISTING_FAILED error.
    """
    listing = read_directory(src_dir)
    if listing.error is not None:
        if not listing.entries:
            return StepResult.failure(ErrorKind.LISTING_FAILED, f"Could not read {src_dir}: {listing.error}")
        logger.warning("Could not read specified directory fully: %s", listing.error)
    return StepResult.success(listing.entries)


def classify_entry(entry: DirectoryEntry) -> StepResult[DirectoryEntry]:
    """Reject directories and names without the `.pdf` suffix.

    Args:
        entry (DirectoryEntry): The directory entry.

    Returns:
        StepResult[DirectoryEntry]: The entry itself, or a NOT_A_PDF error.
    """
    if not entry.is_candidate:
        return StepResult.failure(ErrorKind.NOT_A_PDF, "not a PDF file", filename=entry.name)
    return StepResult.success(entry)
