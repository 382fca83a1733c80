"""Pytest configuration file."""

import logging
from collections.abc import Callable
from pathlib import Path

import pymupdf
import pytest

PAGE_WIDTH = 200
PAGE_HEIGHT = 300


def make_pdf(path: Path, page_count: int = 2, width: float = PAGE_WIDTH, height: float = PAGE_HEIGHT) -> Path:
    """Write a PDF with one line of text per page.

    Args:
        path (Path): Where to write the document.
        page_count (int, optional): Number of pages. Defaults to 2.
        width (float, optional): Page width in points. Defaults to PAGE_WIDTH.
        height (float, optional): Page height in points. Defaults to PAGE_HEIGHT.

    Returns:
        Path: The path of the written document.
    """
    doc = pymupdf.open()
    for page_number in range(page_count):
        page = doc.new_page(width=width, height=height)
        page.insert_text((20, 50), f"Page {page_number}", fontsize=24)
    doc.save(path)
    doc.close()
    return path


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The command line tool configures the root logger, undo that after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def src_dir(tmp_path: Path) -> Path:
    """An empty source directory."""
    path = tmp_path / "src"
    path.mkdir()
    return path


@pytest.fixture
def dst_dir(tmp_path: Path) -> Path:
    """The (not yet existing) destination root."""
    return tmp_path / "output"


@pytest.fixture
def pdf_factory(src_dir: Path) -> Callable[..., Path]:
    """Create PDF files in the source directory."""

    def _make(name: str, page_count: int = 2, width: float = PAGE_WIDTH, height: float = PAGE_HEIGHT) -> Path:
        return make_pdf(src_dir / name, page_count=page_count, width=width, height=height)

    return _make
